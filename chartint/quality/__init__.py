# chartint/quality/__init__.py

from __future__ import annotations

from chartint.quality.penalty import CombineStrategy, PenaltyPart, combine_penalty
from chartint.quality.model import (
    DEFAULT_QUALITY_MODEL,
    PENALTY_KINDS,
    QualityModel,
    QualityOverride,
    ResolvedQuality,
    read_quality_model,
    resolve_quality_model,
)

__all__ = [
    "CombineStrategy",
    "PenaltyPart",
    "combine_penalty",
    "DEFAULT_QUALITY_MODEL",
    "PENALTY_KINDS",
    "QualityModel",
    "QualityOverride",
    "ResolvedQuality",
    "read_quality_model",
    "resolve_quality_model",
]
