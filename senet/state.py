from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from .board import Board
from .config import PLAYER_IDS, Ruleset
from .errors import InvariantViolation
from .piece import Piece
from .player import Player
from .types import Difficulty, GamePhase, Move, MoveRecord


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class GameState:
    """Complete state of one Senet game.

    Engine operations take a GameState and return a new one; only the
    turn controller swaps its current state for the result.
    """

    board: Board
    players: List[Player]
    ruleset: Ruleset
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    current_player: int = PLAYER_IDS[0]
    phase: GamePhase = GamePhase.SETUP
    last_roll: int = 0
    roll_extra_turn: bool = False
    available_moves: List[Move] = field(default_factory=list)
    move_history: List[MoveRecord] = field(default_factory=list)
    winner: Optional[int] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    # --- Lookups ---
    def player(self, player_id: int) -> Player:
        for pl in self.players:
            if pl.id == player_id:
                return pl
        raise KeyError(f"No player with id {player_id}")

    @property
    def acting_player(self) -> Player:
        return self.player(self.current_player)

    def opponent_of(self, player_id: int) -> Player:
        return self.player(self.player(player_id).opponent_id)

    def all_pieces(self) -> List[Piece]:
        return [pc for pl in self.players for pc in pl.pieces]

    def piece(self, piece_id: str) -> Piece:
        for pc in self.all_pieces():
            if pc.piece_id == piece_id:
                return pc
        raise KeyError(f"No piece '{piece_id}'")

    def positions(self) -> Dict[str, Tuple[int, bool]]:
        """piece id -> (position, retired)."""
        return {pc.piece_id: (pc.position, pc.retired) for pc in self.all_pieces()}

    def check_invariants(self) -> None:
        self.board.check_invariants(self.all_pieces())
        if self.phase is GamePhase.FINISHED and self.winner is None:
            raise InvariantViolation("Finished game has no winner")

    def copy(self) -> "GameState":
        # deepcopy keeps board squares and player pieces pointing at the same objects
        return copy.deepcopy(self)

    def touch(self) -> None:
        self.updated_at = utcnow()

    # --- Serialisation ---
    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "board": [
                None if pc is None else pc.piece_id for pc in self.board.squares
            ],
            "players": [
                {
                    "id": pl.id,
                    "name": pl.name,
                    "is_ai": pl.is_ai,
                    "difficulty": pl.difficulty.value if pl.difficulty else None,
                    "pieces": [
                        {
                            "id": pc.piece_id,
                            "player": pc.player,
                            "position": pc.position,
                            "retired": pc.retired,
                        }
                        for pc in pl.pieces
                    ],
                }
                for pl in self.players
            ],
            "ruleset": self.ruleset.to_dict(),
            "current_player": self.current_player,
            "phase": self.phase.value,
            "last_roll": self.last_roll,
            "roll_extra_turn": self.roll_extra_turn,
            "available_moves": [
                {
                    "player": mv.player,
                    "piece_id": mv.piece_id,
                    "from_position": mv.from_position,
                    "to_position": mv.to_position,
                    "roll": mv.roll,
                    "captures": mv.captures,
                    "retires": mv.retires,
                }
                for mv in self.available_moves
            ],
            "move_history": [rec.to_dict() for rec in self.move_history],
            "winner": self.winner,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GameState":
        ruleset = Ruleset.from_dict(data["ruleset"]).validate()
        board = Board(ruleset=ruleset)
        players: List[Player] = []
        for pdata in data["players"]:
            difficulty = pdata.get("difficulty")
            pl = Player(
                id=int(pdata["id"]),
                name=pdata.get("name", ""),
                is_ai=bool(pdata.get("is_ai", False)),
                difficulty=Difficulty(difficulty) if difficulty else None,
            )
            pl.pieces = [
                Piece(
                    piece_id=pc["id"],
                    player=int(pc["player"]),
                    retired=bool(pc.get("retired", False)),
                )
                for pc in pdata["pieces"]
            ]
            for pc, raw in zip(pl.pieces, pdata["pieces"]):
                if int(raw["position"]) >= 0:
                    board.place(pc, int(raw["position"]))
            players.append(pl)
        state = cls(
            board=board,
            players=players,
            ruleset=ruleset,
            id=data["id"],
            current_player=int(data["current_player"]),
            phase=GamePhase(data["phase"]),
            last_roll=int(data.get("last_roll", 0)),
            roll_extra_turn=bool(data.get("roll_extra_turn", False)),
            available_moves=[Move(**mv) for mv in data.get("available_moves", [])],
            move_history=[
                MoveRecord.from_dict(rec) for rec in data.get("move_history", [])
            ],
            winner=data.get("winner"),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )
        state.check_invariants()
        return state
