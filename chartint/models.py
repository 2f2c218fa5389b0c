# chartint/models.py
"""
Response models for the two classification results.

Plain serializable data: `model_dump()` output goes straight into a JSON
response.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# SHARED
# =============================================================================

class RuleTrace(BaseModel):
    """What the rule evaluator did for one stage"""
    rule_set_id: str
    rule_set_version: str
    matches: List[Dict[str, Any]] = Field(default_factory=list)
    assertions_failed: List[Dict[str, Any]] = Field(default_factory=list)
    errors: List[Dict[str, Any]] = Field(default_factory=list)


# =============================================================================
# PATTERN SELECTION
# =============================================================================

class RankedScore(BaseModel):
    key: str
    score: float
    rank: int = Field(..., description="1 = best")


class PatternBasis(BaseModel):
    """Inputs the verdict rests on"""
    month_main_ten_god: Optional[str] = None
    month_gyeok_ten_god: Optional[str] = None
    method: Optional[str] = Field(None, description="Competition method owning the best key")
    quality_multiplier: float = Field(..., ge=0.0, le=1.0)


class PatternResult(BaseModel):
    best: Optional[str] = None
    ranking: List[RankedScore]
    scores: Dict[str, float]
    basis: PatternBasis
    competition: Optional[Dict[str, Any]] = None
    trace: RuleTrace


# =============================================================================
# HIT QUALITY
# =============================================================================

class HitDetection(BaseModel):
    name: str
    category: Optional[str] = None
    target_kind: str
    target: Optional[int] = None
    based_on: str
    matched_positions: List[str]
    explicit_quality_weight: Optional[float] = None
    details: Optional[Any] = Field(None, description="Emitted provenance payload")
    quality_weight: float = Field(..., ge=0.0, le=1.0)
    label: str = Field(..., description="weak | full")
    invalidated: bool
    active: bool
    penalty: float = Field(0.0, ge=0.0, le=1.0)
    reasons: List[str] = Field(default_factory=list)


class ConditionTrace(BaseModel):
    """Condition sub-evaluation for one detection"""
    index: int
    detection: Dict[str, Any]
    target_branches: List[int]
    applied: bool
    policy: Dict[str, Any]
    scores: Dict[str, float] = Field(default_factory=dict)
    penalty_parts: List[Dict[str, Any]] = Field(default_factory=list)
    combined_penalty: float
    quality_weight: float
    reasons: List[str] = Field(default_factory=list)
    invalidated: bool
    matches: List[Dict[str, Any]] = Field(default_factory=list)
    assertions_failed: List[Dict[str, Any]] = Field(default_factory=list)


class HitQualityResult(BaseModel):
    detections: List[HitDetection]
    scores: Dict[str, float] = Field(..., description="Raw rule scores")
    scores_adjusted: Dict[str, float] = Field(..., description="Per-name base weight x quality weight")
    conditions: List[ConditionTrace] = Field(default_factory=list)
    trace: RuleTrace
    conditions_rule_set_id: str


class ChartClassification(BaseModel):
    config_id: str
    patterns: Optional[PatternResult] = None
    hits: Optional[HitQualityResult] = None
