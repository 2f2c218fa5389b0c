# chartint/classify/detections.py
"""
Detection expansion.

One rule emission may name several targets; it fans out into independent,
immutable Detection values. Quality fields are attached later with
`dataclasses.replace`, never by mutation.

Every fanned detection keeps the whole target group, so condition rules
see the sibling targets too.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from chartint.facts import PILLAR_POSITIONS, FactBase
from chartint.utils import is_number

BASED_ON_VALUES = ("YEAR_BRANCH", "DAY_BRANCH", "MONTH_BRANCH")


@dataclass(frozen=True)
class Detection:
    name: str
    target_kind: str                    # BRANCH | STEM | NONE
    target: Optional[int] = None
    category: Optional[str] = None
    based_on: str = "OTHER"
    matched_positions: Tuple[str, ...] = ()
    target_branches: Tuple[int, ...] = ()
    target_stems: Tuple[int, ...] = ()
    explicit_quality_weight: Optional[float] = None
    details: Any = None                 # emitted provenance payload, kept as-is
    # attached by hit-quality scoring
    quality_weight: Optional[float] = None
    label: Optional[str] = None
    invalidated: bool = False
    active: bool = True
    penalty: float = 0.0
    reasons: Tuple[str, ...] = ()

    @property
    def base_weight(self) -> float:
        """1 for targetless detections, else one per matched pillar (at least 1)."""
        if self.target_kind == "NONE":
            return 1.0
        return float(max(1, len(self.matched_positions)))

    def summary(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category,
            "target_kind": self.target_kind,
            "target": self.target,
            "based_on": self.based_on,
            "matched_positions": list(self.matched_positions),
        }

    def to_dict(self) -> Dict[str, Any]:
        out = self.summary()
        out.update({
            "explicit_quality_weight": self.explicit_quality_weight,
            "details": self.details,
            "quality_weight": self.quality_weight,
            "label": self.label,
            "invalidated": self.invalidated,
            "active": self.active,
            "penalty": self.penalty,
            "reasons": list(self.reasons),
        })
        return out


def _ints(x: Any) -> List[int]:
    if not isinstance(x, (list, tuple)):
        return []
    return [int(v) for v in x if is_number(v)]


def _positions(x: Any) -> Tuple[str, ...]:
    if not isinstance(x, (list, tuple)):
        return ()
    return tuple(p for p in x if isinstance(p, str) and p in PILLAR_POSITIONS)


def _flatten(emits: Iterable[Any]) -> List[Mapping[str, Any]]:
    out: List[Mapping[str, Any]] = []
    for e in emits:
        if isinstance(e, (list, tuple)):
            out.extend(_flatten(e))
        elif isinstance(e, Mapping):
            out.append(e)
    return out


def expand_emission(raw: Mapping[str, Any]) -> List[Detection]:
    """Fan one emitted payload out into detections (possibly none)."""
    name = raw.get("name")
    if not isinstance(name, str) or not name:
        return []

    category = raw.get("category") if isinstance(raw.get("category"), str) else None
    based_on = raw.get("based_on") if raw.get("based_on") in BASED_ON_VALUES else "OTHER"
    positions = _positions(raw.get("matched_positions"))
    explicit = raw.get("quality_weight") if is_number(raw.get("quality_weight")) else None
    branches = _ints(raw.get("target_branches"))
    stems = _ints(raw.get("target_stems"))

    common = dict(
        name=name,
        category=category,
        based_on=based_on,
        matched_positions=positions,
        explicit_quality_weight=float(explicit) if explicit is not None else None,
        details=raw.get("details"),
    )

    if raw.get("target_kind") == "NONE" or raw.get("no_target") is True:
        return [Detection(
            target_kind="NONE",
            target_branches=tuple(branches),
            target_stems=tuple(stems),
            **common,
        )]

    if is_number(raw.get("target_stem")):
        stem = int(raw["target_stem"])
        return [Detection(target_kind="STEM", target=stem, target_stems=(stem,), **common)]
    if stems:
        return [Detection(target_kind="STEM", target=s, target_stems=tuple(stems), **common) for s in stems]

    if is_number(raw.get("target_branch")):
        br = int(raw["target_branch"])
        return [Detection(target_kind="BRANCH", target=br, target_branches=(br,), **common)]
    if branches:
        return [Detection(target_kind="BRANCH", target=b, target_branches=tuple(branches), **common) for b in branches]

    return []


def normalize_matched_positions(det: Detection, facts: FactBase) -> Detection:
    """
    Re-bind matched positions to the pillars that actually carry the target.

    A fanned-out detection inherits the whole emission's positions; only the
    seats holding its own branch/stem belong to it, possibly none.
    """
    if det.target_kind not in ("BRANCH", "STEM") or det.target is None:
        return det
    seats = facts.matched_positions_for(det.target_kind, det.target)
    return replace(det, matched_positions=tuple(seats))


def expand_detections(emits: Iterable[Any], facts: FactBase) -> List[Detection]:
    out: List[Detection] = []
    for raw in _flatten(emits):
        for det in expand_emission(raw):
            out.append(normalize_matched_positions(det, facts))
    return out


def infer_target_branches(det: Detection, facts: FactBase) -> List[int]:
    """
    Branches the condition rules should inspect for this detection:
    explicit target branches, else the single target branch, else the
    branches of the matched pillars.
    """
    if det.target_branches:
        return list(det.target_branches)
    if det.target_kind == "BRANCH" and det.target is not None:
        return [det.target]
    seats = facts.pillar_branches()
    return [seats[p] for p in det.matched_positions if p in seats]
