from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Set

from .payload import RoundRecord, Score, TournamentPayload, score_to_json

UNKNOWN_ACCOUNT = "unknown"
UNKNOWN_NICKNAME = "Unknown"


@dataclass
class PlayerInfo:
    id: int
    account: str
    nickname: str

    @classmethod
    def placeholder(cls, player_id: int) -> "PlayerInfo":
        return cls(id=player_id, account=UNKNOWN_ACCOUNT, nickname=UNKNOWN_NICKNAME)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account": self.account,
            "nickname": self.nickname,
        }


@dataclass
class PlayerScore:
    user: PlayerInfo
    score: Score = 0

    def to_dict(self) -> dict:
        return {
            "user": self.user.to_dict(),
            "score": score_to_json(self.score),
        }


@dataclass
class RoundTotal:
    round: int
    player_totals: List[PlayerScore] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "round": self.round,
            "player_totals": [p.to_dict() for p in self.player_totals],
        }


@dataclass
class TournamentStatistics:
    player_count: int = 0
    total_rounds: int = 0
    completed_rounds: int = 0
    is_completed: bool = False
    round_totals: List[RoundTotal] = field(default_factory=list)
    player_totals: List[PlayerScore] = field(default_factory=list)
    champion: Optional[PlayerScore] = None

    def to_dict(self) -> dict:
        champion = None
        if self.champion is not None:
            champion = {**self.champion.user.to_dict(), "score": score_to_json(self.champion.score)}
        return {
            "player_count": self.player_count,
            "total_rounds": self.total_rounds,
            "completed_rounds": self.completed_rounds,
            "is_completed": self.is_completed,
            "round_totals": [r.to_dict() for r in self.round_totals],
            "player_totals": [p.to_dict() for p in self.player_totals],
            "champion": champion,
        }


PlayerResolver = Callable[[Set[int]], Mapping[int, PlayerInfo]]


def referenced_player_ids(payload: TournamentPayload) -> Set[int]:
    """Every player id named by the tournament or by any of its rounds."""
    ids = set(payload.players)
    for record in payload.rounds:
        ids.update(record.players)
    return ids


def round_scores(record: RoundRecord) -> Dict[int, Score]:
    """Sum a round's games per player.

    Score vectors are positional against the round's own player list. Short
    vectors only credit the positions they have; extra entries are ignored.
    """
    totals: Dict[int, Score] = {pid: 0 for pid in record.players}
    for game in record.games:
        for player_id, score in zip(record.players, game):
            totals[player_id] += score
    return totals


def find_champion(player_totals: List[PlayerScore]) -> Optional[PlayerScore]:
    champion = None
    for entry in player_totals:
        # Strict comparison keeps the first player to reach the maximum.
        if champion is None or entry.score > champion.score:
            champion = entry
    return champion


class ScoreAggregator:
    """
    Derives round totals, grand totals and the champion from a tournament payload.

    Holds no state besides the optional player resolver, so one instance can
    serve any number of payloads concurrently.
    """

    def __init__(self, resolve_players: Optional[PlayerResolver] = None):
        self.resolve_players = resolve_players

    def _player_table(self, payload: TournamentPayload) -> Dict[int, PlayerInfo]:
        ids = referenced_player_ids(payload)
        if not ids or self.resolve_players is None:
            return {}
        return dict(self.resolve_players(ids))

    def compute_statistics(self, payload: Optional[TournamentPayload]) -> TournamentStatistics:
        """
        Compute the statistics for one payload snapshot.

        Args:
            payload: Parsed tournament payload, or None when the tournament
                has none yet.

        Returns:
            TournamentStatistics. An absent payload or one without players
            yields the empty statistics.
        """
        if payload is None or not payload.players:
            return TournamentStatistics()

        table = self._player_table(payload)

        def user(player_id: int) -> PlayerInfo:
            return table.get(player_id) or PlayerInfo.placeholder(player_id)

        grand_totals: Dict[int, Score] = {}
        round_totals = []
        for position, record in enumerate(payload.rounds, start=1):
            scores = round_scores(record)
            for player_id, score in scores.items():
                grand_totals[player_id] = grand_totals.get(player_id, 0) + score
            round_totals.append(RoundTotal(
                round=position,
                player_totals=[PlayerScore(user(pid), scores[pid]) for pid in record.players],
            ))

        player_totals = [
            PlayerScore(user(pid), grand_totals.get(pid, 0)) for pid in payload.players
        ]

        return TournamentStatistics(
            player_count=len(payload.players),
            total_rounds=payload.round_number,
            completed_rounds=payload.completed_rounds,
            is_completed=payload.is_completed,
            round_totals=round_totals,
            player_totals=player_totals,
            champion=find_champion(player_totals),
        )


def compute_statistics(
    payload: Optional[TournamentPayload],
    resolve_players: Optional[PlayerResolver] = None,
) -> TournamentStatistics:
    return ScoreAggregator(resolve_players).compute_statistics(payload)
