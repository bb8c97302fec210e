import json
import math
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional, Union

Score = Union[int, Decimal]

DEFAULT_ROUND_NUMBER = 5

# Allowed player counts and the number of rounds each one plays.
ROUND_NUMBER_BY_PLAYER_COUNT = {
    4: 5,
    5: 5,
}


class TournamentCategory(str, Enum):
    QIAOMA = "qiaoma"
    RIICHI = "riichi"


class MalformedPayload(ValueError):
    def __init__(self, reason: str, path: str = None):
        self.reason = reason
        self.path = path
        super().__init__(f"{path}: {reason}" if path else reason)


class InvalidPayload(MalformedPayload):
    """Well-formed payload that breaks a tournament rule."""


class RoundAppendError(Exception):
    def __init__(self, reason: str, expected_round: int = None):
        self.reason = reason
        self.expected_round = expected_round
        super().__init__(reason)


def parse_score(value: Any, path: str = None) -> Score:
    """Parse one game score into an exact number.

    Integral values become ``int``; anything else becomes a ``Decimal`` built
    from its shortest decimal text so that sums never drift.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise MalformedPayload("score must be a number", path)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise MalformedPayload("score must be finite", path)
        if value.is_integer():
            return int(value)
        return Decimal(repr(value))
    if not value.is_finite():
        raise MalformedPayload("score must be finite", path)
    if value == value.to_integral_value():
        return int(value)
    return value


def score_to_json(score: Score) -> Union[int, float, str]:
    """
    JSON form of a score without losing its value.

    Fractional scores come out as floats when the float prints back to the
    same decimal. A sum no float can hold (a large total with a fractional
    part) comes out as its exact decimal string.
    """
    if not isinstance(score, Decimal):
        return score
    if score == score.to_integral_value():
        return int(score)
    as_float = float(score)
    if Decimal(repr(as_float)) == score:
        return as_float
    return str(score)


def _parse_int(value: Any, path: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedPayload("expected an integer", path)
    return value


def _parse_player_ids(value: Any, path: str) -> List[int]:
    if not isinstance(value, list):
        raise MalformedPayload("expected a list of player ids", path)
    return [_parse_int(pid, f"{path}[{i}]") for i, pid in enumerate(value)]


def _parse_game(value: Any, path: str) -> List[Score]:
    # Games are stored either as a bare score vector or as {"game": n, "scores": [...]}
    if isinstance(value, dict):
        if "scores" not in value:
            raise MalformedPayload("game object needs 'scores'", path)
        value = value["scores"]
        path = f"{path}.scores"
    if not isinstance(value, list):
        raise MalformedPayload("expected a list of scores", path)
    return [parse_score(score, f"{path}[{i}]") for i, score in enumerate(value)]


@dataclass
class RoundRecord:
    round: int
    players: List[int] = field(default_factory=list)
    games: List[List[Score]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "round": self.round,
            "players": list(self.players),
            "games": [[score_to_json(s) for s in game] for game in self.games],
        }

    @classmethod
    def from_dict(cls, data: Any, position: int = None, path: str = "round") -> "RoundRecord":
        if not isinstance(data, dict):
            raise MalformedPayload("expected an object", path)

        if "round" in data:
            round_index = _parse_int(data["round"], f"{path}.round")
        elif position is not None:
            round_index = position
        else:
            raise MalformedPayload("round index is required", f"{path}.round")

        if "players" not in data:
            raise MalformedPayload("round players are required", f"{path}.players")
        players = _parse_player_ids(data["players"], f"{path}.players")

        # Older records keep the game list under "scores".
        key = "games" if "games" in data else "scores"
        raw_games = data.get(key, [])
        if not isinstance(raw_games, list):
            raise MalformedPayload("expected a list of games", f"{path}.{key}")
        games = [_parse_game(g, f"{path}.{key}[{i}]") for i, g in enumerate(raw_games)]

        return cls(round=round_index, players=players, games=games)


@dataclass
class TournamentPayload:
    players: List[int] = field(default_factory=list)
    round_number: int = DEFAULT_ROUND_NUMBER
    rounds: List[RoundRecord] = field(default_factory=list)

    @property
    def completed_rounds(self) -> int:
        return len(self.rounds)

    @property
    def is_completed(self) -> bool:
        return self.completed_rounds >= self.round_number

    def to_dict(self) -> dict:
        return {
            "players": list(self.players),
            "round_number": self.round_number,
            "rounds": [r.to_dict() for r in self.rounds],
        }

    @classmethod
    def from_dict(cls, data: Any) -> "TournamentPayload":
        if not isinstance(data, dict):
            raise MalformedPayload("payload must be an object")
        if "players" not in data:
            raise MalformedPayload("players are required", "players")
        players = _parse_player_ids(data["players"], "players")

        if data.get("round_number") is None:
            round_number = ROUND_NUMBER_BY_PLAYER_COUNT.get(len(players), DEFAULT_ROUND_NUMBER)
        else:
            round_number = _parse_int(data["round_number"], "round_number")
            if round_number < 0:
                raise MalformedPayload("must not be negative", "round_number")

        key = "rounds" if "rounds" in data else "scores"
        raw_rounds = data.get(key)
        if raw_rounds is None:
            raw_rounds = []
        if not isinstance(raw_rounds, list):
            raise MalformedPayload("expected a list of rounds", key)
        rounds = [
            RoundRecord.from_dict(r, position=i + 1, path=f"{key}[{i}]")
            for i, r in enumerate(raw_rounds)
        ]

        return cls(players=players, round_number=round_number, rounds=rounds)


def parse_payload(raw: Any) -> Optional[TournamentPayload]:
    """Parse a stored ``info`` blob. ``None`` means the tournament has no payload."""
    if raw is None:
        return None
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise MalformedPayload(f"payload is not valid JSON: {e}") from e
        if raw is None:
            return None
    return TournamentPayload.from_dict(raw)


def round_problem(players: List[int], record: RoundRecord) -> Optional[str]:
    """Return why ``record`` cannot belong to a tournament of ``players``, or None."""
    if not record.players:
        return "a round needs at least one player"
    if len(set(record.players)) != len(record.players):
        return "round players must be unique"
    outsiders = [pid for pid in record.players if pid not in players]
    if outsiders:
        return f"players {outsiders} are not registered in this tournament"
    for i, game in enumerate(record.games):
        if len(game) != len(record.players):
            return (
                f"game {i + 1} has {len(game)} scores "
                f"but the round has {len(record.players)} players"
            )
    return None


def validate_payload(payload: TournamentPayload) -> None:
    """Check the rules a payload must satisfy before it is stored."""
    count = len(payload.players)
    if count not in ROUND_NUMBER_BY_PLAYER_COUNT:
        allowed = " or ".join(str(n) for n in sorted(ROUND_NUMBER_BY_PLAYER_COUNT))
        raise InvalidPayload(f"a tournament needs {allowed} players, got {count}", "players")
    if len(set(payload.players)) != count:
        raise InvalidPayload("players must be unique", "players")
    if any(pid <= 0 for pid in payload.players):
        raise InvalidPayload("player ids must be positive", "players")

    expected_rounds = ROUND_NUMBER_BY_PLAYER_COUNT[count]
    if payload.round_number != expected_rounds:
        raise InvalidPayload(
            f"{count} players play {expected_rounds} rounds, got {payload.round_number}",
            "round_number",
        )
    if payload.completed_rounds > payload.round_number:
        raise InvalidPayload(
            f"{payload.completed_rounds} rounds recorded but only {payload.round_number} planned",
            "rounds",
        )

    for position, record in enumerate(payload.rounds, start=1):
        path = f"rounds[{position - 1}]"
        if record.round != position:
            raise InvalidPayload(f"expected round {position}, got {record.round}", f"{path}.round")
        problem = round_problem(payload.players, record)
        if problem:
            raise InvalidPayload(problem, path)


def append_round(payload: TournamentPayload, record: RoundRecord) -> TournamentPayload:
    """Return a copy of ``payload`` with ``record`` appended as the next round."""
    expected = payload.completed_rounds + 1
    if payload.completed_rounds >= payload.round_number:
        raise RoundAppendError(
            f"all {payload.round_number} rounds have already been recorded"
        )
    if record.round != expected:
        raise RoundAppendError(
            f"expected round {expected}, got {record.round}", expected_round=expected
        )
    problem = round_problem(payload.players, record)
    if problem:
        raise RoundAppendError(problem, expected_round=expected)

    return TournamentPayload(
        players=list(payload.players),
        round_number=payload.round_number,
        rounds=list(payload.rounds) + [record],
    )
