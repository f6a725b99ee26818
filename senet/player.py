from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .config import PLAYER_IDS
from .errors import InvalidConfigError
from .piece import Piece
from .types import Difficulty


def piece_id_for(player_id: int, index: int) -> str:
    return f"p{player_id}_{index}"


@dataclass(slots=True)
class Player:
    id: int  # 1 or 2
    name: str = ""
    is_ai: bool = False
    difficulty: Optional[Difficulty] = None
    pieces: list[Piece] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.id not in PLAYER_IDS:
            raise InvalidConfigError(
                f"Player id must be one of {PLAYER_IDS}, got {self.id}"
            )
        if self.difficulty is not None and not isinstance(self.difficulty, Difficulty):
            try:
                self.difficulty = Difficulty(self.difficulty)
            except ValueError as e:
                raise InvalidConfigError(
                    f"Unknown difficulty {self.difficulty!r}"
                ) from e
        if self.is_ai and self.difficulty is None:
            self.difficulty = Difficulty.MEDIUM
        if not self.name:
            self.name = "AI Opponent" if self.is_ai else f"Player {self.id}"

    @property
    def opponent_id(self) -> int:
        return PLAYER_IDS[1] if self.id == PLAYER_IDS[0] else PLAYER_IDS[0]

    def create_pieces(self, count: int) -> None:
        self.pieces = [
            Piece(piece_id=piece_id_for(self.id, i), player=self.id)
            for i in range(count)
        ]

    def retired_count(self) -> int:
        return sum(1 for p in self.pieces if p.retired)

    def check_won(self) -> bool:
        return bool(self.pieces) and all(p.retired for p in self.pieces)
