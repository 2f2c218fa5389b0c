# chartint/facts.py
"""
Read-only view over one subject's pre-derived chart facts.

The fact base is produced upstream (pillar calculation, pattern signals,
relation tables). This module only reads it: rules see it through
`as_dict()`, selectors through `get()`.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from chartint.utils import clamp01, is_number

PILLAR_POSITIONS: Tuple[str, ...] = ("year", "month", "day", "hour")

# Neutral value for multiplier-style signals that are missing upstream.
NEUTRAL_MULTIPLIER = 0.5


def get_path(obj: Any, path: str, default: Any = None) -> Any:
    """Walk a dotted path through nested mappings/sequences."""
    cur = obj
    for part in path.split("."):
        if cur is None:
            return default
        if isinstance(cur, Mapping):
            cur = cur.get(part)
        elif isinstance(cur, (list, tuple)) and part.isdigit():
            idx = int(part)
            cur = cur[idx] if idx < len(cur) else None
        else:
            return default
    return default if cur is None else cur


class FactBase:
    """Snapshot of one subject's chart and prior derived signals."""

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        self._data: Dict[str, Any] = dict(data or {})
        self._view: Optional[Mapping[str, Any]] = None

    @property
    def data(self) -> Mapping[str, Any]:
        return MappingProxyType(self._data)

    def get(self, path: str, default: Any = None) -> Any:
        return get_path(self._data, path, default)

    def pillar(self, position: str) -> Optional[Tuple[int, int]]:
        """(stem, branch) for a pillar position, or None when absent/malformed."""
        p = self.get(f"chart.pillars.{position}")
        if not isinstance(p, Mapping):
            return None
        stem, branch = p.get("stem"), p.get("branch")
        if not (is_number(stem) and is_number(branch)):
            return None
        return int(stem), int(branch)

    def pillar_branches(self) -> Dict[str, int]:
        out: Dict[str, int] = {}
        for pos in PILLAR_POSITIONS:
            p = self.pillar(pos)
            if p is not None:
                out[pos] = p[1]
        return out

    def pillar_stems(self) -> Dict[str, int]:
        out: Dict[str, int] = {}
        for pos in PILLAR_POSITIONS:
            p = self.pillar(pos)
            if p is not None:
                out[pos] = p[0]
        return out

    @property
    def pattern_quality_multiplier(self) -> float:
        m = self.get("month.gyeok.quality.multiplier")
        return clamp01(m) if is_number(m) else NEUTRAL_MULTIPLIER

    def as_dict(self) -> Mapping[str, Any]:
        """
        Data as seen by rule evaluation.

        Adds `chart.branches` / `chart.stems` (pillar order) when the upstream
        snapshot does not carry them, so rules can test membership directly.
        """
        if self._view is not None:
            return self._view

        chart = self._data.get("chart")
        chart = dict(chart) if isinstance(chart, Mapping) else {}
        if "branches" not in chart:
            chart["branches"] = list(self.pillar_branches().values())
        if "stems" not in chart:
            chart["stems"] = list(self.pillar_stems().values())

        view = dict(self._data)
        view["chart"] = chart
        self._view = MappingProxyType(view)
        return self._view

    def with_overlay(self, **extra: Any) -> "FactBase":
        """Derived fact base: same facts plus top-level overlay entries."""
        merged = dict(self.as_dict())
        merged.update(extra)
        return FactBase(merged)

    def matched_positions_for(self, kind: str, value: int) -> List[str]:
        """Pillar positions whose branch (kind='BRANCH') or stem (kind='STEM') equals `value`."""
        seats = self.pillar_branches() if kind == "BRANCH" else self.pillar_stems()
        return [pos for pos, v in seats.items() if v == value]

    def __repr__(self) -> str:
        return f"FactBase(keys={sorted(self._data.keys())})"
