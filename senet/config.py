import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet

from dotenv import load_dotenv

from .errors import InvalidConfigError
from .types import SpecialSquare, SquareEffect

load_dotenv()

# --- Constants ---
BOARD_SIZE: int = 30  # squares 0..29
OFF_BOARD: int = -1  # not yet entered, captured back or retired
ENTRY_SQUARE: int = 0
NUM_STICKS: int = 4
PLAYER_IDS: tuple[int, int] = (1, 2)
MAX_PIECES_PER_PLAYER: int = 7

# Opponent runs of this length protect their pieces from capture ...
BLOCKADE_PROTECT_LENGTH: int = 2
# ... and runs of this length cannot be jumped over.
BLOCKADE_PASS_LENGTH: int = 3


class CaptureOnSafeSquare(str, Enum):
    DISALLOWED = "disallowed"
    ALLOWED = "allowed"


class BlockadeRule(str, Enum):
    ENABLED = "enabled"
    DISABLED = "disabled"


class MustRollExactFallback(str, Enum):
    FORFEIT_TURN = "forfeit_turn"
    SKIP = "skip"


class RestartDestination(str, Enum):
    START = "start"
    SAFE_SQUARE = "safe_square"


class StartLayout(str, Enum):
    OFF_BOARD = "off_board"
    ALTERNATING = "alternating"


SPECIAL_SQUARES: Dict[int, SpecialSquare] = {
    14: SpecialSquare(
        position=14,
        type="house_of_beauty",
        symbol="\U000131F3",
        effect=SquareEffect.SAFE,
        description="House of Beauty - Safe haven, pieces cannot be captured here",
    ),
    25: SpecialSquare(
        position=25,
        type="house_of_water",
        symbol="\U00013216",
        effect=SquareEffect.RESTART,
        description="House of Water - Piece returns to start or house of beauty",
    ),
    27: SpecialSquare(
        position=27,
        type="house_of_three_truths",
        symbol="\U000132A8",
        effect=SquareEffect.MUST_ROLL_EXACT,
        description="House of Three Truths - Must roll exact number to exit",
    ),
    28: SpecialSquare(
        position=28,
        type="house_of_re_atoum",
        symbol="\U000131EF",
        effect=SquareEffect.MUST_ROLL_EXACT,
        description="House of Re-Atoum - Must roll exact number to exit",
    ),
    29: SpecialSquare(
        position=29,
        type="house_of_two_truths",
        symbol="\U000132A9",
        effect=SquareEffect.MUST_ROLL_EXACT,
        description="House of Two Truths - Must roll exact number to exit",
    ),
}


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError as e:
        raise InvalidConfigError(f"{name}={raw!r} is not an integer") from e


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError as e:
        raise InvalidConfigError(f"{name}={raw!r} is not a number") from e


def _enum_env(enum_cls, name: str, default):
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return enum_cls(raw.strip().lower())
    except ValueError as e:
        raise InvalidConfigError(f"{name}={raw!r} is not one of {[m.value for m in enum_cls]}") from e


@dataclass(slots=True)
class Ruleset:
    capture_on_safe_square: CaptureOnSafeSquare = field(
        default_factory=lambda: _enum_env(
            CaptureOnSafeSquare, "SENET_CAPTURE_ON_SAFE", CaptureOnSafeSquare.DISALLOWED
        )
    )
    exit_threshold: int = field(
        default_factory=lambda: _int_env("SENET_EXIT_THRESHOLD", BOARD_SIZE - 1)
    )
    blockade_rule: BlockadeRule = field(
        default_factory=lambda: _enum_env(
            BlockadeRule, "SENET_BLOCKADE_RULE", BlockadeRule.ENABLED
        )
    )
    must_roll_exact_fallback: MustRollExactFallback = field(
        default_factory=lambda: _enum_env(
            MustRollExactFallback,
            "SENET_MUST_ROLL_EXACT_FALLBACK",
            MustRollExactFallback.FORFEIT_TURN,
        )
    )
    restart_destination: RestartDestination = field(
        default_factory=lambda: _enum_env(
            RestartDestination,
            "SENET_RESTART_DESTINATION",
            RestartDestination.SAFE_SQUARE,
        )
    )
    zero_marked_value: int = field(
        default_factory=lambda: _int_env("SENET_ZERO_MARKED_VALUE", 6)
    )
    pieces_per_player: int = field(
        default_factory=lambda: _int_env("SENET_PIECES_PER_PLAYER", 5)
    )
    start_layout: StartLayout = field(
        default_factory=lambda: _enum_env(
            StartLayout, "SENET_START_LAYOUT", StartLayout.OFF_BOARD
        )
    )
    special_squares: Dict[int, SpecialSquare] = field(
        default_factory=lambda: dict(SPECIAL_SQUARES)
    )

    def __post_init__(self) -> None:
        # accept plain strings, e.g. from a persisted snapshot
        self.capture_on_safe_square = self._coerce(
            CaptureOnSafeSquare, self.capture_on_safe_square, "capture_on_safe_square"
        )
        self.blockade_rule = self._coerce(
            BlockadeRule, self.blockade_rule, "blockade_rule"
        )
        self.must_roll_exact_fallback = self._coerce(
            MustRollExactFallback,
            self.must_roll_exact_fallback,
            "must_roll_exact_fallback",
        )
        self.restart_destination = self._coerce(
            RestartDestination, self.restart_destination, "restart_destination"
        )
        self.start_layout = self._coerce(StartLayout, self.start_layout, "start_layout")

    @staticmethod
    def _coerce(enum_cls, value, name: str):
        if isinstance(value, enum_cls):
            return value
        try:
            return enum_cls(value)
        except ValueError as e:
            raise InvalidConfigError(
                f"{name}={value!r} is not one of {[m.value for m in enum_cls]}"
            ) from e

    def validate(self) -> "Ruleset":
        if not isinstance(self.exit_threshold, int) or not (
            BOARD_SIZE // 2 <= self.exit_threshold <= BOARD_SIZE - 1
        ):
            raise InvalidConfigError(
                f"exit_threshold must be within [{BOARD_SIZE // 2}, {BOARD_SIZE - 1}], "
                f"got {self.exit_threshold!r}"
            )
        if self.zero_marked_value not in (5, 6):
            raise InvalidConfigError(
                f"zero_marked_value must be 5 or 6, got {self.zero_marked_value!r}"
            )
        if not 1 <= self.pieces_per_player <= MAX_PIECES_PER_PLAYER:
            raise InvalidConfigError(
                f"pieces_per_player must be within [1, {MAX_PIECES_PER_PLAYER}], "
                f"got {self.pieces_per_player!r}"
            )
        for pos, square in self.special_squares.items():
            if not 0 <= pos < BOARD_SIZE or square.position != pos:
                raise InvalidConfigError(f"special square table is inconsistent at {pos}")
        if self.start_layout is StartLayout.ALTERNATING:
            occupied = 2 * self.pieces_per_player
            if any(pos < occupied for pos in self.special_squares):
                raise InvalidConfigError(
                    "alternating start layout overlaps a special square"
                )
        return self

    # --- Special square lookups ---
    def special_at(self, position: int) -> SpecialSquare | None:
        return self.special_squares.get(position)

    def positions_with(self, *effects: SquareEffect) -> list[int]:
        return sorted(
            pos for pos, sq in self.special_squares.items() if sq.effect in effects
        )

    @property
    def exact_group(self) -> FrozenSet[int]:
        """Squares a piece may only leave by exactly reaching the exit."""
        return frozenset(
            pos
            for pos in self.positions_with(
                SquareEffect.MUST_ROLL_EXACT, SquareEffect.CANNOT_PASS
            )
            if pos < self.exit_threshold
        )

    def restart_target(self, landing: int, is_free: Callable[[int], bool]) -> int:
        """Where a piece that landed on a restart square ends up.

        `is_free` reports whether a board square is empty.
        """
        if self.restart_destination is RestartDestination.SAFE_SQUARE:
            for pos in reversed(self.positions_with(SquareEffect.SAFE)):
                if pos < landing and is_free(pos):
                    return pos
        return OFF_BOARD

    def to_dict(self) -> dict:
        return {
            "capture_on_safe_square": self.capture_on_safe_square.value,
            "exit_threshold": self.exit_threshold,
            "blockade_rule": self.blockade_rule.value,
            "must_roll_exact_fallback": self.must_roll_exact_fallback.value,
            "restart_destination": self.restart_destination.value,
            "zero_marked_value": self.zero_marked_value,
            "pieces_per_player": self.pieces_per_player,
            "start_layout": self.start_layout.value,
            "special_squares": {
                str(pos): {
                    "type": sq.type,
                    "symbol": sq.symbol,
                    "effect": sq.effect.value,
                    "description": sq.description,
                }
                for pos, sq in self.special_squares.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Ruleset":
        data = dict(data)
        squares = data.pop("special_squares", None)
        if squares is not None:
            data["special_squares"] = {
                int(pos): SpecialSquare(
                    position=int(pos),
                    type=sq["type"],
                    symbol=sq.get("symbol", ""),
                    effect=SquareEffect(sq["effect"]),
                    description=sq.get("description", ""),
                )
                for pos, sq in squares.items()
            }
        return cls(**data)


@dataclass(slots=True)
class StrategyWeights:
    # Hard policy scoring
    capture_weight: float = field(
        default_factory=lambda: _float_env("SENET_CAPTURE_WEIGHT", 10.0)
    )
    capture_progress_weight: float = 0.3  # per square of victim progress
    vulnerability_weight: float = field(
        default_factory=lambda: _float_env("SENET_VULNERABILITY_WEIGHT", 12.0)
    )
    progress_weight: float = field(
        default_factory=lambda: _float_env("SENET_PROGRESS_WEIGHT", 1.0)
    )
    retire_bonus: float = 15.0
    safe_bonus: float = 4.0
    restart_penalty: float = 20.0
    exact_group_penalty: float = 2.0
    extra_turn_bonus: float = 3.0
    entry_bonus: float = 1.5
    safe_exit_penalty: float = 2.0
