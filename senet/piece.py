from dataclasses import dataclass

from .config import OFF_BOARD


@dataclass(slots=True)
class Piece:
    """Lightweight piece model. Holds state only.

    Rule logic (legal destinations, captures, special squares) lives in
    the rule engine; square occupancy is tracked by the Board.
    """

    piece_id: str  # "p1_0" .. "p2_4"
    player: int  # 1 or 2
    position: int = OFF_BOARD  # -1 = off board; 0..29 board squares
    retired: bool = False

    @property
    def on_board(self) -> bool:
        return self.position != OFF_BOARD

    @property
    def waiting(self) -> bool:
        """Not yet entered (or sent back) and still in play."""
        return self.position == OFF_BOARD and not self.retired

    def move_to(self, new_position: int) -> None:
        self.position = new_position

    def retire(self) -> None:
        self.position = OFF_BOARD
        self.retired = True
