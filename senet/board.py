from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional

import numpy as np

from .config import BOARD_SIZE, OFF_BOARD, Ruleset
from .errors import InvariantViolation
from .piece import Piece
from .types import SpecialSquare, SquareEffect

# build_tensor channels
CHANNEL_OWN = 0
CHANNEL_OPPONENT = 1
CHANNEL_SAFE = 2
CHANNEL_SPECIAL = 3
NUM_CHANNELS = 4


@dataclass(slots=True)
class Board:
    """Owns piece placement and square lookups (no rule logic).

    At most one piece occupies a square; breaking that is a defect and
    raises InvariantViolation.
    """

    ruleset: Ruleset = field(default_factory=Ruleset)
    squares: List[Optional[Piece]] = field(
        default_factory=lambda: [None] * BOARD_SIZE
    )

    def __post_init__(self) -> None:
        if len(self.squares) != BOARD_SIZE:
            raise InvariantViolation(
                f"Board must have {BOARD_SIZE} squares, got {len(self.squares)}"
            )

    @staticmethod
    def on_board(position: int) -> bool:
        return 0 <= position < BOARD_SIZE

    # --- Queries ---
    def piece_at(self, position: int) -> Optional[Piece]:
        if not self.on_board(position):
            return None
        return self.squares[position]

    def is_occupied_by_own(self, position: int, player: int) -> bool:
        pc = self.piece_at(position)
        return pc is not None and pc.player == player

    def is_occupied_by_opponent(self, position: int, player: int) -> bool:
        pc = self.piece_at(position)
        return pc is not None and pc.player != player

    def is_special(self, position: int) -> Optional[SpecialSquare]:
        return self.ruleset.special_at(position)

    def is_safe(self, position: int) -> bool:
        sq = self.is_special(position)
        return sq is not None and sq.effect is SquareEffect.SAFE

    def pieces(self) -> Iterator[Piece]:
        return (pc for pc in self.squares if pc is not None)

    def run_length_at(self, position: int, player: int) -> int:
        """Length of the run of consecutive `player` pieces covering `position`."""
        if not self.is_occupied_by_own(position, player):
            return 0
        lo = position
        while self.is_occupied_by_own(lo - 1, player):
            lo -= 1
        hi = position
        while self.is_occupied_by_own(hi + 1, player):
            hi += 1
        return hi - lo + 1

    # --- Mutation primitives ---
    def place(self, piece: Piece, position: int) -> None:
        if not self.on_board(position):
            raise InvariantViolation(f"Cannot place {piece.piece_id} at {position}")
        occupant = self.squares[position]
        if occupant is not None and occupant is not piece:
            raise InvariantViolation(
                f"Square {position} already holds {occupant.piece_id}; "
                f"cannot place {piece.piece_id}"
            )
        if piece.on_board and self.squares[piece.position] is piece:
            self.squares[piece.position] = None
        self.squares[position] = piece
        piece.move_to(position)

    def remove(self, piece: Piece) -> None:
        if not piece.on_board:
            return
        if self.squares[piece.position] is not piece:
            raise InvariantViolation(
                f"Piece {piece.piece_id} claims square {piece.position} "
                "but the board disagrees"
            )
        self.squares[piece.position] = None
        piece.move_to(OFF_BOARD)

    def check_invariants(self, pieces: List[Piece]) -> None:
        """Verify that pieces and squares agree one-to-one."""
        seen: dict[int, str] = {}
        for pc in pieces:
            if not pc.on_board:
                continue
            if pc.position in seen:
                raise InvariantViolation(
                    f"{pc.piece_id} and {seen[pc.position]} share square {pc.position}"
                )
            seen[pc.position] = pc.piece_id
            if self.squares[pc.position] is not pc:
                raise InvariantViolation(
                    f"Board square {pc.position} does not hold {pc.piece_id}"
                )
        if len(seen) != sum(1 for _ in self.pieces()):
            raise InvariantViolation("Board holds pieces unknown to the players")

    # --- Encodings ---
    def build_tensor(self, player: int, out: np.ndarray | None = None) -> np.ndarray:
        """Build a (4, BOARD_SIZE) tensor of the board from `player`'s view.

        Channels:
        0: Own pieces
        1: Opponent pieces
        2: Safe squares
        3: Other special squares
        """
        if out is not None:
            board = out
            if board.shape != (NUM_CHANNELS, BOARD_SIZE):
                raise ValueError("Expected board tensor of shape (4, BOARD_SIZE)")
        else:
            board = np.zeros((NUM_CHANNELS, BOARD_SIZE), dtype=np.float32)
        board.fill(0.0)

        for pos, pc in enumerate(self.squares):
            if pc is None:
                continue
            board[CHANNEL_OWN if pc.player == player else CHANNEL_OPPONENT, pos] = 1.0

        for pos, sq in self.ruleset.special_squares.items():
            if sq.effect is SquareEffect.SAFE:
                board[CHANNEL_SAFE, pos] = 1.0
            else:
                board[CHANNEL_SPECIAL, pos] = 1.0
        return board

    def render(self) -> str:
        """Compact text rendering, one character per square."""
        cells = []
        for pos, pc in enumerate(self.squares):
            if pc is not None:
                cells.append(str(pc.player))
            elif self.is_special(pos) is not None:
                cells.append("*")
            else:
                cells.append(".")
        return "".join(cells)
