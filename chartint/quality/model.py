# chartint/quality/model.py
"""
Hit-quality (attenuation) model and its four-layer resolution.

Layers, lowest to highest precedence:
1. built-in defaults
2. base model from configuration (`strategies.hits.conditions`)
3. category override (`categories[<category>]`)
4. name override (`names[<name>]`)

An explicit quality weight emitted on a detection sits above all four: it
bypasses condition evaluation entirely.

Every field is optional at every layer. Omitted or malformed fields inherit
from the layer below, so resolution never fails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from chartint.quality.penalty import CombineStrategy
from chartint.utils import clamp01, is_number, string_list

logger = logging.getLogger(__name__)


# =============================================================================
# DEFAULTS
# =============================================================================

# Branch-relation conditions that can damage a hit.
PENALTY_KINDS: Tuple[str, ...] = ("CHUNG", "HAE", "PA", "WONJIN", "HYEONG", "GONGMANG")

# Relation/void hits are themselves the conditions; never attenuate them.
DEFAULT_EXCLUDE_NAMES: Tuple[str, ...] = (
    "CHUNG_SAL", "HYEONG_SAL", "HAE_SAL", "PA_SAL", "WONJIN_SAL", "GONGMANG_SAL", "GONGMANG",
)


def _clean_weights(raw: Any) -> Dict[str, float]:
    """Keep finite numeric weights only, clamped to [0, 1]."""
    if not isinstance(raw, Mapping):
        return {}
    out: Dict[str, float] = {}
    for k, v in raw.items():
        if isinstance(k, str) and is_number(v):
            out[k] = clamp01(v)
    return out


def _optional_unit(raw: Any) -> Optional[float]:
    return clamp01(raw) if is_number(raw) else None


def _optional_names(raw: Mapping[str, Any], *keys: str) -> Optional[Tuple[str, ...]]:
    for key in keys:
        if key in raw:
            names = string_list(raw[key])
            if names is not None:
                return tuple(names)
    return None


@dataclass(frozen=True)
class QualityOverride:
    """Partial quality model (category or name layer). None means inherit."""
    enabled: Optional[bool] = None
    apply_to_names: Optional[Tuple[str, ...]] = None
    exclude_names: Optional[Tuple[str, ...]] = None
    weights: Mapping[str, float] = field(default_factory=dict)
    combine: Optional[CombineStrategy] = None
    weak_threshold: Optional[float] = None
    invalidate_threshold: Optional[float] = None

    @classmethod
    def parse(cls, raw: Any) -> "QualityOverride":
        """Build an override from loose config; malformed fields are dropped."""
        if isinstance(raw, QualityOverride):
            return raw
        if not isinstance(raw, Mapping):
            return cls()
        enabled = raw.get("enabled")
        return cls(
            enabled=enabled if isinstance(enabled, bool) else None,
            apply_to_names=_optional_names(raw, "apply_to_names", "apply_to", "only_names"),
            exclude_names=_optional_names(raw, "exclude_names", "exclude"),
            weights=_clean_weights(raw.get("weights")),
            combine=CombineStrategy.parse(raw.get("combine")),
            weak_threshold=_optional_unit(raw.get("weak_threshold")),
            invalidate_threshold=_optional_unit(raw.get("invalidate_threshold")),
        )

    def merged_with(self, top: "QualityOverride") -> "QualityOverride":
        """Field-wise merge; `top` wins where it sets a value."""
        weights = dict(self.weights)
        weights.update(top.weights)
        return QualityOverride(
            enabled=top.enabled if top.enabled is not None else self.enabled,
            apply_to_names=top.apply_to_names if top.apply_to_names is not None else self.apply_to_names,
            exclude_names=top.exclude_names if top.exclude_names is not None else self.exclude_names,
            weights=weights,
            combine=top.combine or self.combine,
            weak_threshold=top.weak_threshold if top.weak_threshold is not None else self.weak_threshold,
            invalidate_threshold=(
                top.invalidate_threshold if top.invalidate_threshold is not None else self.invalidate_threshold
            ),
        )


@dataclass(frozen=True)
class QualityModel:
    """
    Base attenuation model.

    - `weights`: penalty per condition kind; qualityWeight = 1 - combined penalty
    - `weak_threshold`: qualityWeight below it labels the hit "weak"
    - `invalidate_threshold`: qualityWeight at or below it invalidates the hit
    """
    enabled: bool = True
    apply_to_names: Tuple[str, ...] = ()
    exclude_names: Tuple[str, ...] = DEFAULT_EXCLUDE_NAMES
    weights: Mapping[str, float] = field(default_factory=lambda: {k: 0.5 for k in PENALTY_KINDS})
    combine: CombineStrategy = CombineStrategy.MAX
    weak_threshold: float = 1.0
    invalidate_threshold: float = 0.0
    categories: Mapping[str, QualityOverride] = field(default_factory=dict)
    names: Mapping[str, QualityOverride] = field(default_factory=dict)


DEFAULT_QUALITY_MODEL = QualityModel(
    categories={
        "RELATION_SAL": QualityOverride(enabled=False),
        "VOID": QualityOverride(enabled=False),
    },
)


@dataclass(frozen=True)
class ResolvedQuality:
    """Effective parameters for one detection plus the apply decision."""
    weights: Mapping[str, float]
    combine: CombineStrategy
    weak_threshold: float
    invalidate_threshold: float
    apply: bool

    def to_policy_dict(self) -> Dict[str, Any]:
        """Shape embedded into the condition sub-fact-base (`policy.conditions`)."""
        return {
            "weights": dict(self.weights),
            "combine": self.combine.value,
            "weak_threshold": self.weak_threshold,
            "invalidate_threshold": self.invalidate_threshold,
        }


# =============================================================================
# CONFIG READING
# =============================================================================

def _merge_override_maps(
    base: Mapping[str, QualityOverride],
    raw: Any,
) -> Dict[str, QualityOverride]:
    out = dict(base)
    if not isinstance(raw, Mapping):
        return out
    for key, value in raw.items():
        if not isinstance(key, str) or not isinstance(value, Mapping):
            continue
        ov = QualityOverride.parse(value)
        out[key] = out[key].merged_with(ov) if key in out else ov
    return out


def legacy_quality_model(section: Mapping[str, Any], base: QualityModel = DEFAULT_QUALITY_MODEL) -> QualityModel:
    """
    Binary weak/full attenuation from `weak_quality_weight`.

    Every condition kind gets penalty `1 - weak_quality_weight` under MAX, so
    any single condition marks the hit weak and nothing is invalidated.
    """
    raw = section.get("weak_quality_weight", section.get("weak_weight"))
    weak_w = clamp01(raw) if is_number(raw) else 0.5
    penalty = clamp01(1.0 - weak_w)
    return replace(
        base,
        weights={k: penalty for k in base.weights},
        combine=CombineStrategy.MAX,
        weak_threshold=1.0,
        invalidate_threshold=0.0,
    )


def read_quality_model(section: Any, base: QualityModel = DEFAULT_QUALITY_MODEL) -> QualityModel:
    """
    Default-merge the `strategies.hits` section into a QualityModel.

    Without a `conditions` object the legacy `weak_quality_weight` switch is used.
    """
    section = section if isinstance(section, Mapping) else {}
    raw = section.get("conditions")

    if not isinstance(raw, Mapping):
        logger.debug("No hit conditions config; using legacy weak-weight model")
        return legacy_quality_model(section, base)

    ov = QualityOverride.parse(raw)
    weights = dict(base.weights)
    weights.update(ov.weights)

    return QualityModel(
        enabled=ov.enabled if ov.enabled is not None else base.enabled,
        apply_to_names=ov.apply_to_names if ov.apply_to_names is not None else base.apply_to_names,
        exclude_names=ov.exclude_names if ov.exclude_names is not None else base.exclude_names,
        weights=weights,
        combine=ov.combine or base.combine,
        weak_threshold=ov.weak_threshold if ov.weak_threshold is not None else base.weak_threshold,
        invalidate_threshold=(
            ov.invalidate_threshold if ov.invalidate_threshold is not None else base.invalidate_threshold
        ),
        categories=_merge_override_maps(base.categories, raw.get("categories")),
        names=_merge_override_maps(base.names, raw.get("names")),
    )


# =============================================================================
# RESOLUTION
# =============================================================================

def _layer_allows(enabled: Optional[bool], apply_to: Optional[Tuple[str, ...]],
                  exclude: Optional[Tuple[str, ...]], name: str) -> bool:
    if enabled is False:
        return False
    if exclude and name in exclude:
        return False
    if apply_to and name not in apply_to:
        return False
    return True


def resolve_quality_model(
    model: QualityModel,
    name: str,
    category: Optional[str] = None,
    explicit_weight: Optional[float] = None,
) -> ResolvedQuality:
    """
    Effective quality parameters for one detection.

    Parameters merge base -> category -> name (name wins on conflicts).
    `apply` is AND-combined across the three layers, so a layer can switch
    attenuation off but never back on. A finite explicit weight forces
    `apply=False`.
    """
    weights = dict(model.weights)
    combine = model.combine
    weak = model.weak_threshold
    invalidate = model.invalidate_threshold

    apply = _layer_allows(model.enabled, model.apply_to_names, model.exclude_names, name)

    layers = (
        model.categories.get(category) if category else None,
        model.names.get(name),
    )
    for ov in layers:
        if ov is None:
            continue
        weights.update(ov.weights)
        combine = ov.combine or combine
        if ov.weak_threshold is not None:
            weak = ov.weak_threshold
        if ov.invalidate_threshold is not None:
            invalidate = ov.invalidate_threshold
        apply = apply and _layer_allows(ov.enabled, ov.apply_to_names, ov.exclude_names, name)

    if explicit_weight is not None and is_number(explicit_weight):
        apply = False

    return ResolvedQuality(
        weights=weights,
        combine=combine,
        weak_threshold=weak,
        invalidate_threshold=invalidate,
        apply=apply,
    )
