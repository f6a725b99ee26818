"""Move-selection policies, one per AI difficulty.

Each policy is a plain function ``(ctx, rng) -> MoveOption``; the lookup
table in ``registry`` picks one by difficulty.
"""

from __future__ import annotations

import random
from typing import Callable, List, Sequence

from ..config import StrategyWeights
from ..types import SquareEffect
from .types import MoveOption, StrategyContext

Policy = Callable[[StrategyContext, random.Random], MoveOption]

# priority tiers shared by medium and as the hard tie-breaker
TIER_CAPTURE = 0
TIER_SPECIAL = 1
TIER_OTHER = 2


def priority_tier(move: MoveOption) -> int:
    if move.can_capture:
        return TIER_CAPTURE
    # any special landing counts, the restart square included
    if move.retires or move.landing_effect is not None:
        return TIER_SPECIAL
    return TIER_OTHER


def _best_tier(moves: Sequence[MoveOption]) -> List[MoveOption]:
    top = min(priority_tier(m) for m in moves)
    return [m for m in moves if priority_tier(m) == top]


def choose_easy(ctx: StrategyContext, rng: random.Random) -> MoveOption:
    return rng.choice(ctx.moves)


def choose_medium(ctx: StrategyContext, rng: random.Random) -> MoveOption:
    return rng.choice(_best_tier(ctx.moves))


def score_hard(move: MoveOption, weights: StrategyWeights | None = None) -> float:
    weights = weights or StrategyWeights()
    score = 0.0

    # 1) Captures, worth more the further the victim had come
    if move.can_capture:
        score += weights.capture_weight
        score += move.captured_progress * weights.capture_progress_weight

    # 2) Vulnerability: moving off an exposed square, not onto one
    score += move.vulnerability_reduction * weights.vulnerability_weight

    # 3) Progress toward the exit
    score += move.progress * weights.progress_weight
    if move.retires:
        score += weights.retire_bonus
    if move.current_pos < 0:
        score += weights.entry_bonus

    # 4) Special squares
    if move.enters_safe_zone:
        score += weights.safe_bonus
    elif move.leaving_safe_zone:
        score -= weights.safe_exit_penalty
    if move.restarts:
        score -= weights.restart_penalty
    if move.landing_effect is SquareEffect.MUST_ROLL_EXACT and not move.retires:
        score -= weights.exact_group_penalty
    if move.extra_turn:
        score += weights.extra_turn_bonus

    return score


def choose_hard(ctx: StrategyContext, rng: random.Random) -> MoveOption:
    weights = StrategyWeights()
    scored = [(move, score_hard(move, weights)) for move in ctx.moves]
    best = max(score for _, score in scored)
    # equal within float tolerance
    leaders = [move for move, score in scored if abs(score - best) < 1e-9]
    return rng.choice(_best_tier(leaders))
