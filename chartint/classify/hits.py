# chartint/classify/hits.py
"""
Hit-quality scoring.

    facts -> hit rules -> detections (fan-out) -> per detection:
        resolve quality model -> (condition rules -> penalty parts -> combine)?
        -> quality weight, label, invalidation
    -> per-name adjusted scores

There is no winner here: every detection is reported with its quality.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple

from chartint.classify.detections import Detection, expand_detections, infer_target_branches
from chartint.classify.stage import build_trace, config_section, run_rules, sanitize_scores, select_rule_set
from chartint.facts import FactBase
from chartint.models import ConditionTrace, HitDetection, HitQualityResult
from chartint.quality.model import (
    DEFAULT_QUALITY_MODEL,
    QualityModel,
    ResolvedQuality,
    read_quality_model,
    resolve_quality_model,
)
from chartint.quality.penalty import PenaltyPart, combine_penalty
from chartint.rules import RuleEvalResult, RuleEvaluator, RuleSet
from chartint.rules.defaults import DEFAULT_CONDITIONS_RULE_SET, DEFAULT_HIT_RULE_SET
from chartint.rules.dsl import JsonRuleEvaluator
from chartint.utils import clamp01, is_number

logger = logging.getLogger(__name__)

PENALTY_KEY_PREFIX = "cond.penalty."
HIT_KEY_PREFIX = "hit."


@dataclass(frozen=True)
class HitPolicy:
    rule_set: RuleSet = DEFAULT_HIT_RULE_SET
    conditions_rule_set: RuleSet = DEFAULT_CONDITIONS_RULE_SET
    quality_model: QualityModel = DEFAULT_QUALITY_MODEL


def build_hit_policy(strategies: Any = None, extensions: Any = None) -> HitPolicy:
    return HitPolicy(
        rule_set=select_rule_set(extensions, "hits", DEFAULT_HIT_RULE_SET),
        conditions_rule_set=select_rule_set(extensions, "hit_conditions", DEFAULT_CONDITIONS_RULE_SET),
        quality_model=read_quality_model(config_section(strategies, "hits")),
    )


def penalty_parts(scores: Dict[str, Any], resolved: ResolvedQuality) -> List[PenaltyPart]:
    """Non-zero `cond.penalty.<KIND>` scores for kinds the resolved model knows."""
    parts: List[PenaltyPart] = []
    for key, value in scores.items():
        if not key.startswith(PENALTY_KEY_PREFIX):
            continue
        kind = key[len(PENALTY_KEY_PREFIX):]
        if kind in resolved.weights and is_number(value) and value != 0:
            parts.append(PenaltyPart(kind, float(value)))
    return parts


def quality_label(weight: float, resolved: ResolvedQuality) -> Tuple[str, bool]:
    """(label, invalidated) for a quality weight under the resolved thresholds."""
    label = "weak" if weight < resolved.weak_threshold else "full"
    return label, weight <= resolved.invalidate_threshold


class HitQualityScorer:
    """Hit-quality orchestrator"""

    def __init__(self, evaluator: Optional[RuleEvaluator] = None):
        self.evaluator = evaluator or JsonRuleEvaluator()

    def _evaluate_conditions(
        self,
        det: Detection,
        target_branches: List[int],
        facts: FactBase,
        policy: HitPolicy,
        resolved: ResolvedQuality,
        errors: List[Dict[str, Any]],
    ) -> RuleEvalResult:
        summary = det.summary()
        summary["target_branches"] = target_branches
        summary["target_stems"] = list(det.target_stems)
        sub = facts.with_overlay(det=summary, policy={"conditions": resolved.to_policy_dict()})
        return run_rules(self.evaluator, policy.conditions_rule_set, sub.as_dict(), None, f"conditions:{det.name}", errors)

    def score(self, facts: FactBase, policy: HitPolicy) -> HitQualityResult:
        errors: List[Dict[str, Any]] = []
        model = policy.quality_model

        res = run_rules(self.evaluator, policy.rule_set, facts.as_dict(), None, "hits", errors)
        detections = expand_detections(res.emits, facts)

        scored: List[Detection] = []
        adjusted: Dict[str, float] = {}
        conditions: List[ConditionTrace] = []

        for idx, det in enumerate(detections):
            resolved = resolve_quality_model(model, det.name, det.category, det.explicit_quality_weight)
            target_branches = infer_target_branches(det, facts)

            cond = RuleEvalResult(scores={})
            parts: List[PenaltyPart] = []
            combined = 0.0

            if resolved.apply:
                cond = self._evaluate_conditions(det, target_branches, facts, policy, resolved, errors)
                parts = penalty_parts(cond.scores, resolved)
                combined = combine_penalty(parts, resolved.combine)
                weight = clamp01(1.0 - combined)
            elif det.explicit_quality_weight is not None:
                weight = clamp01(det.explicit_quality_weight)
            else:
                weight = 1.0

            label, invalidated = quality_label(weight, resolved)
            reasons = tuple(p.kind for p in parts)
            logger.debug(
                "Detection %s[%d]: apply=%s weight=%.3f label=%s", det.name, idx, resolved.apply, weight, label
            )

            det = replace(
                det,
                quality_weight=weight,
                label=label,
                invalidated=invalidated,
                active=not invalidated,
                penalty=combined,
                reasons=reasons,
            )
            scored.append(det)

            key = f"{HIT_KEY_PREFIX}{det.name}"
            adjusted[key] = adjusted.get(key, 0.0) + det.base_weight * weight

            if det.name not in model.exclude_names:
                conditions.append(ConditionTrace(
                    index=idx,
                    detection=det.summary(),
                    target_branches=target_branches,
                    applied=resolved.apply,
                    policy=resolved.to_policy_dict(),
                    scores=sanitize_scores(cond.scores, "conditions"),
                    penalty_parts=[p.to_dict() for p in parts],
                    combined_penalty=combined,
                    quality_weight=weight,
                    reasons=list(reasons),
                    invalidated=invalidated,
                    matches=[m.to_dict() for m in cond.matches],
                    assertions_failed=[a.to_dict() for a in cond.assertions_failed],
                ))

        return HitQualityResult(
            detections=[HitDetection(**_detection_fields(d)) for d in scored],
            scores=sanitize_scores(res.scores, "hits"),
            scores_adjusted=adjusted,
            conditions=conditions,
            trace=build_trace(policy.rule_set, res, errors),
            conditions_rule_set_id=policy.conditions_rule_set.id,
        )


def _detection_fields(det: Detection) -> Dict[str, Any]:
    out = det.to_dict()
    out["label"] = det.label or "full"
    out["quality_weight"] = det.quality_weight if det.quality_weight is not None else 1.0
    return out
