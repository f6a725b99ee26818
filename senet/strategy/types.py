from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

import numpy as np

from ..types import Move, SquareEffect


@dataclass(slots=True)
class MoveOption:
    """Structured metadata about a legal move."""

    move: Move
    piece_id: str
    current_pos: int
    new_pos: int  # landing square (before any restart effect)
    final_pos: int  # where the piece ends up; -1 when retired or washed back
    roll: int
    progress: int
    can_capture: bool
    captured_progress: int  # square the victim is taken from
    retires: bool
    enters_safe_zone: bool
    landing_effect: Optional[SquareEffect]
    restarts: bool
    extra_turn: bool
    risk_before: float
    risk_after: float
    leaving_safe_zone: bool

    @property
    def vulnerability_reduction(self) -> float:
        return self.risk_before - self.risk_after


@dataclass(slots=True)
class StrategyContext:
    """Input payload shared by the difficulty policies."""

    board: np.ndarray  # shape (channels, BOARD_SIZE), acting player's view
    player: int
    roll: int
    moves: List[MoveOption]

    def iter_legal(self) -> Iterable[MoveOption]:
        return iter(self.moves)
