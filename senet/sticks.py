"""Throwing sticks: the game's randomizer.

Four two-sided sticks are thrown; the number of marked sides showing
decides the move. An all-blank throw scores ``zero_marked_value``
(6 by default); one or four marks grant another throw.
"""

from __future__ import annotations

import random
from math import comb
from typing import Dict, Optional, Tuple

from .config import NUM_STICKS, Ruleset
from .types import RollResult

# marked sides -> (movement value, extra turn); 0 is resolved per ruleset
STICK_TABLE: Dict[int, Tuple[Optional[int], bool]] = {
    0: (None, False),
    1: (1, True),
    2: (2, False),
    3: (3, False),
    4: (4, True),
}


def roll_from_sticks(
    sticks: Tuple[bool, ...], ruleset: Ruleset | None = None
) -> RollResult:
    ruleset = ruleset or Ruleset()
    if len(sticks) != NUM_STICKS:
        raise ValueError(f"Expected {NUM_STICKS} sticks, got {len(sticks)}")
    marked = sum(1 for s in sticks if s)
    value, extra = STICK_TABLE[marked]
    if value is None:
        value = ruleset.zero_marked_value
    return RollResult(sticks=tuple(bool(s) for s in sticks), value=value, extra_turn=extra)


def throw_sticks(
    rng: random.Random | None = None, ruleset: Ruleset | None = None
) -> RollResult:
    rng = rng or random.Random()
    sticks = tuple(rng.random() < 0.5 for _ in range(NUM_STICKS))
    return roll_from_sticks(sticks, ruleset)


def roll_from_value(value: int, ruleset: Ruleset | None = None) -> RollResult:
    """Rebuild a canonical throw for a recorded movement value."""
    ruleset = ruleset or Ruleset()
    if value == ruleset.zero_marked_value:
        marked = 0
    elif value in STICK_TABLE and STICK_TABLE[value][0] == value:
        marked = value
    else:
        raise ValueError(f"{value} is not a possible throw")
    sticks = tuple(i < marked for i in range(NUM_STICKS))
    return roll_from_sticks(sticks, ruleset)


def roll_probabilities(ruleset: Ruleset | None = None) -> Dict[int, float]:
    """Movement value -> probability for four fair sticks."""
    ruleset = ruleset or Ruleset()
    probs: Dict[int, float] = {}
    total = 2**NUM_STICKS
    for marked, (value, _) in STICK_TABLE.items():
        value = ruleset.zero_marked_value if value is None else value
        probs[value] = probs.get(value, 0.0) + comb(NUM_STICKS, marked) / total
    return probs
