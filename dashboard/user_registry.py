import logging
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from scoring.aggregation import PlayerInfo
from .models import db, User

logger = logging.getLogger(__name__)


class DuplicateAccountError(Exception):
    def __init__(self, account: str):
        self.account = account
        super().__init__(f"Account '{account}' is already registered")


class UserRegistry:
    """
    Manages the user directory:
    - Create/update/delete users
    - Batch lookup of player display data for score statistics
    """

    def list_users(self) -> List[User]:
        return User.query.order_by(User.created_at.desc(), User.id.desc()).all()

    def get_user(self, user_id: int) -> Optional[User]:
        return db.session.get(User, user_id)

    def create_user(self, account: str, nickname: str) -> User:
        user = User(account=account, nickname=nickname)
        db.session.add(user)
        self._commit(account)
        logger.info(f"Created user {user.id} ({account})")
        return user

    def update_user(self, user_id: int, account: str, nickname: str) -> Optional[User]:
        user = self.get_user(user_id)
        if not user:
            return None

        user.account = account
        user.nickname = nickname
        self._commit(account)
        return user

    def delete_user(self, user_id: int) -> Tuple[bool, str]:
        user = self.get_user(user_id)
        if not user:
            return False, "User not found"

        db.session.delete(user)
        db.session.commit()
        logger.info(f"Deleted user {user_id}")
        return True, "User deleted successfully"

    def resolve_players(self, player_ids: Iterable[int]) -> Dict[int, PlayerInfo]:
        """Fetch display data for many players in one query.

        Ids without a user are simply left out of the result.
        """
        ids = set(player_ids)
        if not ids:
            return {}

        users = User.query.filter(User.id.in_(ids)).all()
        found = {user.id: user.to_player_info() for user in users}

        missing = ids - found.keys()
        if missing:
            logger.debug(f"No user for player ids {sorted(missing)}")
        return found

    def _commit(self, account: str):
        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise DuplicateAccountError(account) from e
