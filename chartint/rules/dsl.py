# chartint/rules/dsl.py
"""
Reference evaluator for the JSON rule DSL.

Expressions are plain JSON:
- literals (null, bool, number, string)
- {"var": "dotted.path"} reads from the facts
- {"op": name, "args": [...]} applies an operator

No string parsing, no randomness: the same rule set over the same facts
always yields the same scores, matches and emits (in rule order).
"""

from __future__ import annotations

import math
from typing import Any, Callable, Dict, List, Mapping, Optional

from chartint.facts import get_path
from chartint.rules import (
    FailedAssertion,
    RuleEvalResult,
    RuleEvaluationError,
    RuleMatch,
    RuleSet,
)

NAN = float("nan")


def _is_expr(x: Any) -> bool:
    return isinstance(x, Mapping) and (isinstance(x.get("var"), str) or isinstance(x.get("op"), str))


def to_number(x: Any) -> float:
    if isinstance(x, bool):
        return 1.0 if x else 0.0
    if isinstance(x, (int, float)):
        try:
            return float(x)
        except OverflowError:
            return NAN
    if isinstance(x, str) and x.strip():
        try:
            return float(x)
        except ValueError:
            return NAN
    return NAN


def truthy(x: Any) -> bool:
    if isinstance(x, bool):
        return x
    if x is None:
        return False
    if isinstance(x, (int, float)):
        return x != 0 and x == x  # NaN is falsy
    if isinstance(x, (str, list, tuple)):
        return len(x) > 0
    return True


def _strict_eq(a: Any, b: Any) -> bool:
    # bools never equal numbers
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    return a == b


def _op_in(v: Any, c: Any) -> bool:
    if isinstance(c, (list, tuple)):
        return any(_strict_eq(v, x) for x in c)
    if isinstance(c, str):
        return isinstance(v, str) and v in c
    if isinstance(c, Mapping):
        return str(v) in c
    return False


def _op_overlap(a: Any, b: Any) -> bool:
    if not isinstance(a, (list, tuple)) or not isinstance(b, (list, tuple)):
        return False
    return any(_op_in(x, b) for x in a)


def _op_intersect(a: Any, b: Any) -> List[Any]:
    if not isinstance(a, (list, tuple)) or not isinstance(b, (list, tuple)):
        return []
    out: List[Any] = []
    for x in a:
        if _op_in(x, b) and not _op_in(x, out):
            out.append(x)
    return out


def _op_len(v: Any) -> int:
    if isinstance(v, (str, list, tuple, Mapping)):
        return len(v)
    return 0


def _safe_div(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or math.isnan(a):
            return NAN
        return math.copysign(math.inf, a)
    return a / b


def evaluate_expr(expr: Any, facts: Mapping[str, Any]) -> Any:
    """Evaluate one expression node against the facts."""
    if expr is None or isinstance(expr, (bool, int, float, str)):
        return expr
    if isinstance(expr, (list, tuple)):
        return [evaluate_expr(x, facts) for x in expr]
    if not _is_expr(expr):
        return expr

    if isinstance(expr.get("var"), str):
        return get_path(facts, expr["var"])

    op = expr["op"]
    args = expr.get("args") or []
    if not isinstance(args, (list, tuple)):
        raise RuleEvaluationError(f"DSL op {op!r}: args must be a list")

    def ev(i: int) -> Any:
        return evaluate_expr(args[i], facts) if i < len(args) else None

    def nums() -> List[float]:
        return [to_number(ev(i)) for i in range(len(args))]

    # logic
    if op == "and":
        return all(truthy(ev(i)) for i in range(len(args)))
    if op == "or":
        return any(truthy(ev(i)) for i in range(len(args)))
    if op == "not":
        return not truthy(ev(0))

    # compare
    if op == "eq":
        return _strict_eq(ev(0), ev(1))
    if op == "ne":
        return not _strict_eq(ev(0), ev(1))
    if op in _COMPARE:
        return _COMPARE[op](to_number(ev(0)), to_number(ev(1)))

    # collections
    if op == "in":
        return _op_in(ev(0), ev(1))
    if op == "overlap":
        return _op_overlap(ev(0), ev(1))
    if op == "intersect":
        return _op_intersect(ev(0), ev(1))
    if op == "len":
        return _op_len(ev(0))

    # arithmetic
    if op == "add":
        return sum(nums())
    if op == "sub":
        return to_number(ev(0)) - to_number(ev(1))
    if op == "mul":
        acc = 1.0
        for n in nums():
            acc *= n
        return acc
    if op == "div":
        return _safe_div(to_number(ev(0)), to_number(ev(1)))
    if op == "neg":
        return -to_number(ev(0))
    if op == "abs":
        return abs(to_number(ev(0)))
    if op == "min":
        xs = nums()
        return min(xs) if xs else math.inf
    if op == "max":
        xs = nums()
        return max(xs) if xs else -math.inf
    if op == "sum":
        v = ev(0)
        if not isinstance(v, (list, tuple)):
            return 0.0
        return sum(to_number(x) for x in v)
    if op == "clamp":
        x, lo, hi = to_number(ev(0)), to_number(ev(1)), to_number(ev(2))
        return min(hi, max(lo, x))

    # ternary
    if op == "if":
        return ev(1) if truthy(ev(0)) else ev(2)

    raise RuleEvaluationError(f"Unknown DSL op: {op}")


_COMPARE: Dict[str, Callable[[float, float], bool]] = {
    "lt": lambda a, b: a < b,
    "lte": lambda a, b: a <= b,
    "gt": lambda a, b: a > b,
    "gte": lambda a, b: a >= b,
}


def render_template(template: Any, facts: Mapping[str, Any]) -> Any:
    """Evaluate expression nodes embedded anywhere inside an emit template."""
    if template is None or isinstance(template, (bool, int, float, str)):
        return template
    if isinstance(template, (list, tuple)):
        return [render_template(v, facts) for v in template]
    if _is_expr(template):
        return evaluate_expr(template, facts)
    if isinstance(template, Mapping):
        return {k: render_template(v, facts) for k, v in template.items()}
    return template


def evaluate_rule_set(
    rule_set: RuleSet,
    facts: Mapping[str, Any],
    initial_scores: Optional[Mapping[str, float]] = None,
) -> RuleEvalResult:
    """
    Run every rule in order.

    - `when` absent means the rule always fires.
    - Score contributions are additive; non-finite contributions are skipped.
    - A failing `assert` is recorded and evaluation continues.

    Raises:
        RuleEvaluationError: on unknown operators or malformed expression nodes.
    """
    scores: Dict[str, float] = dict(initial_scores or {})
    emits: List[Any] = []
    failed: List[FailedAssertion] = []
    matches: List[RuleMatch] = []

    for rule in rule_set.rules:
        if rule.when is not None and not truthy(evaluate_expr(rule.when, facts)):
            continue

        match: Optional[RuleMatch] = None

        if rule.assert_ is not None and not truthy(evaluate_expr(rule.assert_, facts)):
            failed.append(FailedAssertion(rule_id=rule.id, explain=rule.explain))

        if rule.score is not None:
            match = RuleMatch(rule_id=rule.id, explain=rule.explain, tags=list(rule.tags))
            contrib: Dict[str, float] = {}
            for key, v_expr in rule.score.items():
                v = to_number(evaluate_expr(v_expr, facts))
                if not math.isfinite(v):
                    continue
                scores[key] = scores.get(key, 0.0) + v
                contrib[key] = v
            match.scores = contrib

        if rule.emit is not None:
            if match is None:
                match = RuleMatch(rule_id=rule.id, explain=rule.explain, tags=list(rule.tags))
            payload = render_template(rule.emit, facts)
            emits.append(payload)
            match.emit = payload

        if match is not None:
            matches.append(match)

    return RuleEvalResult(scores=scores, matches=matches, assertions_failed=failed, emits=emits)


class JsonRuleEvaluator:
    """Default `RuleEvaluator` backed by the JSON DSL."""

    def evaluate(
        self,
        rule_set: RuleSet,
        facts: Mapping[str, Any],
        initial_scores: Optional[Mapping[str, float]] = None,
    ) -> RuleEvalResult:
        return evaluate_rule_set(rule_set, facts, initial_scores)
