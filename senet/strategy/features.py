from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Sequence

import numpy as np

from ..board import CHANNEL_OPPONENT, CHANNEL_OWN
from ..config import (
    BLOCKADE_PROTECT_LENGTH,
    BOARD_SIZE,
    OFF_BOARD,
    BlockadeRule,
    CaptureOnSafeSquare,
    Ruleset,
)
from ..sticks import roll_probabilities
from ..types import Move, SquareEffect
from .types import MoveOption, StrategyContext

if TYPE_CHECKING:  # avoid runtime import to prevent circular deps
    from ..state import GameState


def build_move_options(state: "GameState", legal_moves: Sequence[Move]) -> StrategyContext:
    """Convert a game snapshot and its legal moves into a strategy context."""
    player = state.current_player
    ruleset = state.ruleset
    board = state.board.build_tensor(player)
    own = board[CHANNEL_OWN].copy()
    opponent = board[CHANNEL_OPPONENT].copy()
    opp_waiting = sum(1 for pc in state.opponent_of(player).pieces if pc.waiting)
    probs = roll_probabilities(ruleset)

    moves = [
        _create_move_option(move, ruleset, own, opponent, opp_waiting, probs)
        for move in legal_moves
    ]
    roll = legal_moves[0].roll if legal_moves else state.last_roll
    return StrategyContext(board=board, player=player, roll=roll, moves=moves)


def _create_move_option(
    move: Move,
    ruleset: Ruleset,
    own: np.ndarray,
    opponent: np.ndarray,
    opp_waiting: int,
    probs: Dict[int, float],
) -> MoveOption:
    origin = move.from_position
    landing = move.to_position
    special = ruleset.special_at(landing)
    landing_effect = special.effect if special is not None else None
    restarts = landing_effect is SquareEffect.RESTART and not move.retires

    final_pos = landing
    if move.retires:
        final_pos = OFF_BOARD
    elif restarts:
        final_pos = ruleset.restart_target(
            landing, lambda pos: not own[pos] and not opponent[pos]
        )

    # board after the move
    own_after = own.copy()
    opp_after = opponent.copy()
    waiting_after = opp_waiting
    if origin != OFF_BOARD:
        own_after[origin] = 0.0
    if final_pos != OFF_BOARD:
        own_after[final_pos] = 1.0
    if move.captures is not None:
        opp_after[landing] = 0.0
        waiting_after += 1

    risk_before = estimate_risk(ruleset, own, opponent, opp_waiting, origin, probs)
    risk_after = estimate_risk(
        ruleset, own_after, opp_after, waiting_after, final_pos, probs
    )

    reached = ruleset.exit_threshold if move.retires else final_pos
    enters_safe_zone = _is_safe(ruleset, final_pos)
    return MoveOption(
        move=move,
        piece_id=move.piece_id,
        current_pos=origin,
        new_pos=landing,
        final_pos=final_pos,
        roll=move.roll,
        progress=reached - origin,
        can_capture=move.captures is not None,
        captured_progress=landing if move.captures is not None else 0,
        retires=move.retires,
        enters_safe_zone=enters_safe_zone,
        landing_effect=landing_effect,
        restarts=restarts,
        extra_turn=landing_effect is SquareEffect.EXTRA_TURN,
        risk_before=risk_before,
        risk_after=risk_after,
        leaving_safe_zone=_is_safe(ruleset, origin) and not enters_safe_zone,
    )


def _is_safe(ruleset: Ruleset, position: int) -> bool:
    special = ruleset.special_at(position)
    return special is not None and special.effect is SquareEffect.SAFE


def run_length(channel: np.ndarray, position: int) -> int:
    if not 0 <= position < BOARD_SIZE or not channel[position]:
        return 0
    lo = position
    while lo - 1 >= 0 and channel[lo - 1]:
        lo -= 1
    hi = position
    while hi + 1 < BOARD_SIZE and channel[hi + 1]:
        hi += 1
    return hi - lo + 1


def estimate_risk(
    ruleset: Ruleset,
    own: np.ndarray,
    opponent: np.ndarray,
    opp_waiting: int,
    position: int,
    probs: Dict[int, float],
) -> float:
    """Probability that the opponent can capture a piece on `position` next throw."""
    if not 0 <= position < BOARD_SIZE:
        return 0.0
    if (
        _is_safe(ruleset, position)
        and ruleset.capture_on_safe_square is CaptureOnSafeSquare.DISALLOWED
    ):
        return 0.0
    if (
        ruleset.blockade_rule is BlockadeRule.ENABLED
        and run_length(own, position) >= BLOCKADE_PROTECT_LENGTH
    ):
        return 0.0

    risk = 0.0
    for value, p in probs.items():
        source = position - value
        if source == OFF_BOARD:
            if opp_waiting > 0:
                risk += p
        elif source >= 0 and opponent[source]:
            risk += p
    return risk
