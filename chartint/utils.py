# chartint/utils.py

from __future__ import annotations

import math
from typing import Any, Iterable, List, Mapping, Optional


def is_number(x: Any) -> bool:
    """True for finite int/float values (bools excluded)."""
    if isinstance(x, bool) or not isinstance(x, (int, float)):
        return False
    try:
        return math.isfinite(x)
    except OverflowError:
        # ints beyond float range
        return False


def as_number(x: Any, fallback: float) -> float:
    """Return `x` as a float when it is a finite number, else `fallback`."""
    return float(x) if is_number(x) else fallback


def clamp01(x: Any) -> float:
    """Clamp to [0, 1]; anything non-finite becomes 0."""
    if not is_number(x):
        return 0.0
    return min(1.0, max(0.0, float(x)))


def positive_or_none(x: Any) -> Optional[float]:
    """Finite and > 0 -> clamped value, else None (selector fallback links)."""
    if is_number(x) and x > 0:
        return clamp01(x)
    return None


def abs_sum(scores: Mapping[str, float], keys: Iterable[str]) -> float:
    """Sum of |score| over `keys`, skipping missing, zero and non-finite entries."""
    total = 0.0
    for k in keys:
        v = scores.get(k)
        if not is_number(v) or v == 0:
            continue
        total += abs(v)
    return total


def string_list(x: Any) -> Optional[List[str]]:
    """
    Normalize a config list of names.

    Returns None when `x` is not a list so callers can keep the inherited value.
    Blank entries are dropped.
    """
    if not isinstance(x, (list, tuple)):
        return None
    out = []
    for v in x:
        s = str(v)
        if s.strip():
            out.append(s)
    return out
