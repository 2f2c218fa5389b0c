# chartint/classify/__init__.py

from __future__ import annotations

from chartint.classify.detections import Detection, expand_detections
from chartint.classify.hits import HitPolicy, HitQualityScorer, build_hit_policy
from chartint.classify.patterns import PatternClassifier, PatternPolicy, build_pattern_policy

__all__ = [
    "Detection",
    "expand_detections",
    "HitPolicy",
    "HitQualityScorer",
    "build_hit_policy",
    "PatternClassifier",
    "PatternPolicy",
    "build_pattern_policy",
]
