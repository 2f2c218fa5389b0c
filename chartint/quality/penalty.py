# chartint/quality/penalty.py
"""
Penalty combination for the hit-quality model.

Each adverse condition on a detection contributes one penalty in [0, 1].
The combinator reduces them to a single penalty; the detection's quality
weight is then `1 - combined`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Sequence, Union

from chartint.utils import clamp01


class CombineStrategy(str, Enum):
    """Available penalty combine strategies."""
    MAX = "max"     # strongest single condition wins
    SUM = "sum"     # additive, saturating at 1
    PROB = "prob"   # independent-event union: 1 - prod(1 - p)

    @classmethod
    def parse(cls, value: Any) -> Optional["CombineStrategy"]:
        """Strategy for a config string, or None for anything unknown."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                return None
        return None


@dataclass(frozen=True)
class PenaltyPart:
    """One condition kind (e.g. CHUNG) and its penalty value."""
    kind: str
    value: float

    def to_dict(self):
        return {"kind": self.kind, "value": self.value}


def combine_penalty(
    parts: Iterable[Union[PenaltyPart, float]],
    strategy: Union[CombineStrategy, str] = CombineStrategy.MAX,
) -> float:
    """
    Combine penalty parts into one penalty in [0, 1].

    Parts are clamped to [0, 1] before combining. An empty list is 0 for
    every strategy. Unknown strategies fall back to MAX.

    Example:
        parts=[0.5, 0.5] -> max=0.5, sum=1.0, prob=0.75
    """
    values: Sequence[float] = [
        clamp01(p.value if isinstance(p, PenaltyPart) else p) for p in parts
    ]
    if not values:
        return 0.0

    strat = CombineStrategy.parse(strategy) or CombineStrategy.MAX

    if strat == CombineStrategy.SUM:
        return clamp01(sum(values))

    if strat == CombineStrategy.PROB:
        prod = 1.0
        for v in values:
            prod *= 1.0 - v
        return clamp01(1.0 - prod)

    return clamp01(max(values))
