import logging
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy.orm.exc import StaleDataError

from scoring.aggregation import ScoreAggregator, TournamentStatistics
from scoring.payload import (
    InvalidPayload,
    MalformedPayload,
    RoundAppendError,
    RoundRecord,
    TournamentCategory,
    TournamentPayload,
    append_round,
    validate_payload,
)
from .models import db, Tournament
from .user_registry import UserRegistry

logger = logging.getLogger(__name__)


class TournamentNotFound(LookupError):
    def __init__(self, tournament_id: int):
        self.tournament_id = tournament_id
        super().__init__(f"Tournament with ID {tournament_id} does not exist")


class ConcurrentUpdateError(RuntimeError):
    def __init__(self, tournament_id: int):
        self.tournament_id = tournament_id
        super().__init__(
            f"Tournament {tournament_id} was modified by another request, retry the update"
        )


class CorruptTournamentInfo(RuntimeError):
    """Stored tournament info can no longer be read, so it cannot be extended."""

    def __init__(self, tournament_id: int, reason: str):
        self.tournament_id = tournament_id
        self.reason = reason
        super().__init__(f"Stored info of tournament {tournament_id} is unreadable: {reason}")


class TournamentRegistry:
    """
    Manages tournament records:
    - Create/update/delete tournaments
    - Append rounds, one writer per tournament at a time
    - Compute score statistics for stored payloads
    """

    def __init__(self, users: UserRegistry = None):
        self.users = users or UserRegistry()
        self.aggregator = ScoreAggregator(self.users.resolve_players)

    def create_tournament(
        self,
        title: str,
        category: TournamentCategory,
        tournament_date: date,
        payload: TournamentPayload = None
    ) -> Tournament:
        """Create a tournament. A payload, if given, must not hold any rounds yet."""
        if payload is not None:
            validate_payload(payload)
            if payload.rounds:
                raise InvalidPayload("a new tournament cannot start with recorded rounds", "rounds")

        tournament = Tournament(
            title=title,
            category=TournamentCategory(category).value,
            date=tournament_date,
            info=payload.to_dict() if payload is not None else None
        )

        db.session.add(tournament)
        db.session.commit()

        logger.info(f"Created tournament {tournament.id} '{title}' ({tournament.category})")
        return tournament

    def get_tournament(self, tournament_id: int) -> Optional[Tournament]:
        return db.session.get(Tournament, tournament_id)

    def list_tournaments(self) -> List[Tournament]:
        return Tournament.query.order_by(Tournament.date.desc(), Tournament.id.desc()).all()

    def update_tournament(
        self,
        tournament_id: int,
        title: str,
        category: TournamentCategory,
        tournament_date: date,
        payload: TournamentPayload = None
    ) -> Tournament:
        """Replace a tournament's fields and payload in one write."""
        if payload is not None:
            validate_payload(payload)

        tournament = self._get_for_update(tournament_id)
        tournament.title = title
        tournament.category = TournamentCategory(category).value
        tournament.date = tournament_date
        tournament.info = payload.to_dict() if payload is not None else None

        self._commit(tournament_id)
        logger.info(f"Updated tournament {tournament_id}")
        return tournament

    def append_round(self, tournament_id: int, record: RoundRecord) -> Tournament:
        """
        Append the next round to a tournament's payload.

        The row is locked for the read-modify-write, and the version column
        rejects a write that lost a race with another writer.

        Raises:
            TournamentNotFound: no tournament with this id
            RoundAppendError: the round is out of order, the tournament is
                full, or the round does not fit the tournament's players
            ConcurrentUpdateError: another writer changed the row first
            CorruptTournamentInfo: the stored info no longer parses
        """
        tournament = self._get_for_update(tournament_id)

        try:
            payload = tournament.payload
        except MalformedPayload as e:
            db.session.rollback()
            logger.error(f"Tournament {tournament_id} has unreadable info: {e}")
            raise CorruptTournamentInfo(tournament_id, str(e)) from e
        if payload is None:
            db.session.rollback()
            raise RoundAppendError("tournament has no players configured")

        try:
            updated = append_round(payload, record)
        except RoundAppendError:
            db.session.rollback()
            raise

        tournament.info = updated.to_dict()
        self._commit(tournament_id)

        logger.info(
            f"Recorded round {record.round}/{updated.round_number} "
            f"for tournament {tournament_id} ({len(record.games)} games)"
        )
        return tournament

    def delete_tournament(self, tournament_id: int) -> Tuple[bool, str]:
        tournament = self.get_tournament(tournament_id)

        if not tournament:
            return False, "Tournament not found"

        db.session.delete(tournament)
        db.session.commit()

        logger.info(f"Deleted tournament {tournament_id}")
        return True, "Tournament deleted successfully"

    def get_statistics(self, tournament: Tournament) -> TournamentStatistics:
        """Score statistics for a tournament; empty when its payload is unreadable."""
        try:
            payload = tournament.payload
        except MalformedPayload as e:
            logger.warning(f"Tournament {tournament.id} has a malformed payload: {e}")
            return TournamentStatistics()
        return self.aggregator.compute_statistics(payload)

    def _get_for_update(self, tournament_id: int) -> Tournament:
        tournament = (
            Tournament.query
            .filter_by(id=tournament_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if tournament is None:
            db.session.rollback()
            raise TournamentNotFound(tournament_id)
        return tournament

    def _commit(self, tournament_id: int):
        try:
            db.session.commit()
        except StaleDataError as e:
            db.session.rollback()
            logger.warning(f"Lost update race on tournament {tournament_id}")
            raise ConcurrentUpdateError(tournament_id) from e
