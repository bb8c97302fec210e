from datetime import datetime
from typing import Optional

from flask_sqlalchemy import SQLAlchemy

from scoring.aggregation import PlayerInfo
from scoring.payload import TournamentPayload, parse_payload

db = SQLAlchemy()


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    account = db.Column(db.String(100), unique=True, nullable=False, index=True)
    nickname = db.Column(db.String(100), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_player_info(self) -> PlayerInfo:
        return PlayerInfo(id=self.id, account=self.account, nickname=self.nickname)

    def to_dict(self):
        return {
            'id': self.id,
            'account': self.account,
            'nickname': self.nickname,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class Tournament(db.Model):
    __tablename__ = 'tournaments'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(20), nullable=False)  # qiaoma | riichi
    date = db.Column(db.Date, nullable=False, index=True)

    # Players, planned rounds and recorded rounds; replaced as a whole on every write
    info = db.Column(db.JSON, nullable=True)

    # Optimistic lock: concurrent writers of the same row fail instead of overwriting
    version_id = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {'version_id_col': version_id}

    __table_args__ = (
        db.CheckConstraint("category IN ('qiaoma', 'riichi')", name='valid_category'),
    )

    @property
    def payload(self) -> Optional[TournamentPayload]:
        """Typed view of ``info``. Raises MalformedPayload on a corrupt blob."""
        return parse_payload(self.info)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'category': self.category,
            'date': self.date.isoformat() if self.date else None,
            'info': self.info,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
