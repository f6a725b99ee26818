"""
Senet game engine
Board model, rule engine, turn controller and computer opponents for the
ancient Egyptian race game.
"""

from .board import Board
from .config import Ruleset, StrategyWeights
from .errors import IllegalMoveError, InvalidConfigError, InvariantViolation, SenetError
from .events import Event, EventBus, EventType
from .game import Game
from .piece import Piece
from .player import Player
from .rules import apply_move, is_terminal, legal_moves, new_game, resolve_move
from .state import GameState
from .sticks import throw_sticks
from .strategy import choose_move
from .types import (
    Difficulty,
    GamePhase,
    Move,
    MoveRecord,
    MoveResult,
    RollResult,
    SpecialSquare,
    SquareEffect,
)

__all__ = [
    "Board",
    "Ruleset",
    "StrategyWeights",
    "SenetError",
    "IllegalMoveError",
    "InvalidConfigError",
    "InvariantViolation",
    "Event",
    "EventBus",
    "EventType",
    "Game",
    "GameState",
    "Piece",
    "Player",
    "new_game",
    "legal_moves",
    "apply_move",
    "resolve_move",
    "is_terminal",
    "throw_sticks",
    "choose_move",
    "Difficulty",
    "GamePhase",
    "Move",
    "MoveRecord",
    "MoveResult",
    "RollResult",
    "SpecialSquare",
    "SquareEffect",
]
