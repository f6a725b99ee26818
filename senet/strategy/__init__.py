"""Computer opponents for Senet, one policy per difficulty."""

from .features import build_move_options, estimate_risk
from .policies import choose_easy, choose_hard, choose_medium, priority_tier, score_hard
from .registry import POLICY_REGISTRY, available, choose_move, get_policy
from .types import MoveOption, StrategyContext

__all__ = [
    "MoveOption",
    "StrategyContext",
    "build_move_options",
    "estimate_risk",
    "choose_easy",
    "choose_medium",
    "choose_hard",
    "priority_tier",
    "score_hard",
    "POLICY_REGISTRY",
    "available",
    "choose_move",
    "get_policy",
]
