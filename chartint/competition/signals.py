# chartint/competition/signals.py
"""
Signal selectors: how strongly the fact base supports each competing method.

Each reader returns a value in [0, 1]. Missing signals read as 0, except the
ten-god axis, which reads the month pattern quality multiplier and falls back
to the neutral 0.5.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Sequence

from chartint.competition.policy import SignalSelector
from chartint.facts import FactBase, NEUTRAL_MULTIPLIER
from chartint.utils import clamp01, is_number, positive_or_none

logger = logging.getLogger(__name__)

SignalReader = Callable[[FactBase, SignalSelector], float]


def _first_positive(facts: FactBase, paths: Sequence[str]) -> float:
    for path in paths:
        v = positive_or_none(facts.get(path))
        if v is not None:
            return v
    return 0.0


FOLLOW_CHAINS: Dict[str, Sequence[str]] = {
    "raw": ("patterns.follow.potential_raw",),
    "potential": ("patterns.follow.potential", "patterns.follow.potential_raw"),
    "jonggyeok": (
        "patterns.follow.jonggyeok_factor",
        "patterns.follow.potential",
        "patterns.follow.potential_raw",
    ),
}
FOLLOW_CHAINS["auto"] = FOLLOW_CHAINS["jonggyeok"]

TRANSFORM_CHAINS: Dict[str, Sequence[str]] = {
    "raw": ("patterns.transformations.best.factor",),
    "effective": (
        "patterns.transformations.best.effective_factor",
        "patterns.transformations.best.factor",
    ),
    "huaqi": (
        "patterns.transformations.best.huaqi_factor",
        "patterns.transformations.best.effective_factor",
        "patterns.transformations.best.factor",
    ),
}
TRANSFORM_CHAINS["auto"] = TRANSFORM_CHAINS["huaqi"]

ONE_ELEMENT_CHAINS: Dict[str, Sequence[str]] = {
    "raw": ("patterns.elements.one_element.factor",),
    "zhuanwang": (
        "patterns.elements.one_element.zhuanwang_factor",
        "patterns.elements.one_element.factor",
    ),
}
ONE_ELEMENT_CHAINS["auto"] = ONE_ELEMENT_CHAINS["zhuanwang"]


def read_follow_signal(facts: FactBase, selector: SignalSelector = "auto") -> float:
    return _first_positive(facts, FOLLOW_CHAINS.get(str(selector), FOLLOW_CHAINS["auto"]))


def read_transform_signal(facts: FactBase, selector: SignalSelector = "auto") -> float:
    return _first_positive(facts, TRANSFORM_CHAINS.get(str(selector), TRANSFORM_CHAINS["auto"]))


def read_one_element_signal(facts: FactBase, selector: SignalSelector = "auto") -> float:
    return _first_positive(facts, ONE_ELEMENT_CHAINS.get(str(selector), ONE_ELEMENT_CHAINS["auto"]))


def read_ten_god_signal(facts: FactBase, selector: SignalSelector = "month_quality") -> float:
    """Month pattern quality multiplier, or a fixed constant when the selector is a number."""
    if isinstance(selector, (int, float)) and not isinstance(selector, bool):
        return clamp01(selector) if is_number(selector) else NEUTRAL_MULTIPLIER
    return facts.pattern_quality_multiplier


DEFAULT_SIGNAL_READERS: Dict[str, SignalReader] = {
    "follow": read_follow_signal,
    "transformations": read_transform_signal,
    "one_element": read_one_element_signal,
    "ten_god": read_ten_god_signal,
}


def safe_signal(reader: SignalReader, facts: FactBase, selector: SignalSelector, method: str) -> float:
    """
    Call a (possibly injected) reader; failures and out-of-range values become 0.
    """
    try:
        value = reader(facts, selector)
    except Exception as e:
        logger.warning("Signal reader for %s failed: %s: %s", method, type(e).__name__, e)
        return 0.0
    if not is_number(value) or value < 0:
        return 0.0
    return clamp01(value)
