from __future__ import annotations

import random
from typing import TYPE_CHECKING, Dict, Sequence

from loguru import logger

from ..types import Difficulty, Move
from .features import build_move_options
from .policies import Policy, choose_easy, choose_hard, choose_medium

if TYPE_CHECKING:
    from ..state import GameState

POLICY_REGISTRY: Dict[Difficulty, Policy] = {
    Difficulty.EASY: choose_easy,
    Difficulty.MEDIUM: choose_medium,
    Difficulty.HARD: choose_hard,
}


def get_policy(difficulty: Difficulty | str) -> Policy:
    try:
        return POLICY_REGISTRY[Difficulty(difficulty)]
    except ValueError as e:
        raise KeyError(f"Unknown difficulty '{difficulty}'.") from e


def choose_move(
    state: "GameState",
    legal_moves: Sequence[Move],
    difficulty: Difficulty | str,
    rng: random.Random | None = None,
) -> Move:
    """Pick one of `legal_moves` for the acting player.

    `state` is only read; callers hand in a snapshot.
    """
    if not legal_moves:
        raise ValueError("choose_move needs at least one legal move")
    policy = get_policy(difficulty)
    if len(legal_moves) == 1:
        return legal_moves[0]
    rng = rng or random.Random()
    ctx = build_move_options(state, legal_moves)
    choice = policy(ctx, rng)
    logger.debug(
        f"AI ({Difficulty(difficulty).value}) picked {choice.piece_id} "
        f"{choice.current_pos}->{choice.new_pos} from {len(legal_moves)} options"
    )
    return choice.move


def available() -> Dict[str, Policy]:
    return {d.value: p for d, p in POLICY_REGISTRY.items()}
