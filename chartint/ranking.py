# chartint/ranking.py
"""
Deterministic ranking of a score map.

Keys sort by score descending; ties fall back to a declared priority list.
Keys missing from the list sort after every listed key, keeping their
original order (the sort is stable).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from chartint.utils import is_number

UNLISTED_PRIORITY = 1_000_000


@dataclass
class RankedKey:
    key: str
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "score": self.score}


def rank_scores(
    scores: Mapping[str, float],
    tie_break_order: Sequence[str] = (),
    prefix: Optional[str] = None,
) -> List[RankedKey]:
    """
    Rank keys (optionally restricted to `prefix`) by score.

    Non-finite values rank as 0.
    """
    priority = {}
    for i, k in enumerate(tie_break_order):
        priority.setdefault(k, i)

    items = [
        RankedKey(k, float(v) if is_number(v) else 0.0)
        for k, v in scores.items()
        if prefix is None or k.startswith(prefix)
    ]
    items.sort(key=lambda r: (-r.score, priority.get(r.key, UNLISTED_PRIORITY)))
    return items


def best_key(ranking: Sequence[RankedKey]) -> Optional[str]:
    """Top key, only when its score is strictly positive."""
    if ranking and ranking[0].score > 0:
        return ranking[0].key
    return None
