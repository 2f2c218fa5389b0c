# chartint/classify/stage.py
"""
Shared rule-evaluation step for the orchestrators.

Evaluator errors never abort a classification: they are logged, recorded in
the stage's `errors` list, and the stage continues from its seed scores.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from chartint.models import RuleTrace
from chartint.rules import RuleEvalResult, RuleEvaluationError, RuleEvaluator, RuleSet, coerce_rule_set
from chartint.rules.compiler import compile_rule_spec
from chartint.utils import is_number

logger = logging.getLogger(__name__)


def run_rules(
    evaluator: RuleEvaluator,
    rule_set: RuleSet,
    facts: Mapping[str, Any],
    seed: Optional[Mapping[str, float]],
    stage: str,
    errors: List[Dict[str, Any]],
) -> RuleEvalResult:
    try:
        return evaluator.evaluate(rule_set, facts, dict(seed or {}))
    except RuleEvaluationError as e:
        logger.warning("Rule evaluation failed at %s (%s): %s", stage, rule_set.id, e)
        errors.append({"stage": stage, "error": str(e)})
        return RuleEvalResult(scores=dict(seed or {}))
    except Exception as e:
        logger.exception("Rule evaluator crashed at %s (%s)", stage, rule_set.id)
        errors.append({"stage": stage, "error": f"{type(e).__name__}: {e}"})
        return RuleEvalResult(scores=dict(seed or {}))


def sanitize_scores(scores: Mapping[str, Any], stage: str) -> Dict[str, float]:
    """Non-finite or non-numeric values become 0."""
    out: Dict[str, float] = {}
    for k, v in scores.items():
        if is_number(v):
            out[k] = float(v)
        else:
            logger.warning("Non-finite score %s=%r at %s; reset to 0", k, v, stage)
            out[k] = 0.0
    return out


def build_trace(rule_set: RuleSet, result: RuleEvalResult, errors: List[Dict[str, Any]]) -> RuleTrace:
    return RuleTrace(
        rule_set_id=rule_set.id,
        rule_set_version=rule_set.version,
        matches=[m.to_dict() for m in result.matches],
        assertions_failed=[a.to_dict() for a in result.assertions_failed],
        errors=list(errors),
    )


def config_section(root: Any, *path: str) -> Any:
    """Nested config lookup; None as soon as a level is not a mapping."""
    cur = root
    for p in path:
        if not isinstance(cur, Mapping):
            return None
        cur = cur.get(p)
    return cur


def select_rule_set(extensions: Any, slot: str, default: RuleSet) -> RuleSet:
    """Explicit rule set > compiled spec > built-in."""
    explicit = coerce_rule_set(config_section(extensions, "rule_sets", slot))
    if explicit is not None:
        return explicit
    spec = config_section(extensions, "rule_specs", slot)
    if spec is not None:
        compiled = compile_rule_spec(spec)
        if compiled is not None:
            return compiled
        logger.warning("Rule spec for %s produced no rules; using built-in %s", slot, default.id)
    return default
