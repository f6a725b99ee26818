from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from .state import GameState


class GamePhase(str, Enum):
    SETUP = "setup"
    THROWING = "throwing"
    MOVING = "moving"
    FINISHED = "finished"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class SquareEffect(str, Enum):
    SAFE = "safe"
    RESTART = "restart"
    EXTRA_TURN = "extra_turn"
    MUST_ROLL_EXACT = "must_roll_exact"
    CANNOT_PASS = "cannot_pass"


@dataclass(frozen=True, slots=True)
class SpecialSquare:
    position: int
    type: str  # house name, e.g. "house_of_beauty"
    symbol: str
    effect: SquareEffect
    description: str = ""


@dataclass(frozen=True, slots=True)
class RollResult:
    """Outcome of one four-stick throw."""

    sticks: Tuple[bool, bool, bool, bool]  # True = marked side up
    value: int
    extra_turn: bool

    @property
    def marked(self) -> int:
        return sum(1 for s in self.sticks if s)


@dataclass(frozen=True, slots=True)
class Move:
    """A legal move candidate for the acting player."""

    player: int
    piece_id: str
    from_position: int
    to_position: int
    roll: int
    captures: Optional[str] = None  # id of the piece that would be captured
    retires: bool = False

    def matches(self, other: "Move") -> bool:
        return (
            self.player == other.player
            and self.piece_id == other.piece_id
            and self.from_position == other.from_position
            and self.to_position == other.to_position
        )


@dataclass(frozen=True, slots=True)
class MoveRecord:
    """Immutable history entry for an applied move."""

    piece_id: str
    from_position: int
    to_position: int
    captured: Optional[str]
    timestamp: float
    roll: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "piece_id": self.piece_id,
            "from_position": self.from_position,
            "to_position": self.to_position,
            "captured": self.captured,
            "timestamp": self.timestamp,
            "roll": self.roll,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "MoveRecord":
        return cls(
            piece_id=str(data["piece_id"]),
            from_position=int(data["from_position"]),
            to_position=int(data["to_position"]),
            captured=data.get("captured"),
            timestamp=float(data.get("timestamp", 0.0)),
            roll=int(data["roll"]),
        )


@dataclass(slots=True)
class MoveEvents:
    captured: Optional[str] = None
    retired: bool = False
    special_squares: List[SpecialSquare] = field(default_factory=list)
    restarted_to: Optional[int] = None
    extra_turn_square: bool = False


@dataclass(slots=True)
class MoveResult:
    state: "GameState"
    record: MoveRecord
    events: MoveEvents
    final_position: int
