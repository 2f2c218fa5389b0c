# chartint/rules/defaults.py
"""
Built-in rule sets.

All three are compiled from specs with the same macros a configuration can
use, so a config-supplied spec is a drop-in replacement.

- patterns:        ten-god frame bonuses plus special-frame signals
- hits:            relation catalog, star catalog, branch-presence stars
- hit_conditions:  one penalty rule per adverse condition kind, evaluated
                   against a per-detection sub-fact-base ({"det", "policy"})
"""

from __future__ import annotations

from typing import Any, Dict, List

from chartint.quality.model import PENALTY_KINDS
from chartint.rules import Rule, RuleSet
from chartint.rules.compiler import compile_rule_spec

TEN_GODS: List[str] = [
    "BI_GYEON", "GEOB_JAE", "SIK_SHIN", "SANG_GWAN", "PYEON_JAE",
    "JEONG_JAE", "PYEON_GWAN", "JEONG_GWAN", "PYEON_IN", "JEONG_IN",
]

FOLLOW_TYPES: List[str] = ["CONG_CAI", "CONG_GUAN", "CONG_SHA", "CONG_ER", "CONG_YIN", "CONG_BI"]

RELATION_SAL_NAMES: List[str] = ["CHUNG_SAL", "HYEONG_SAL", "HAE_SAL", "PA_SAL", "WONJIN_SAL"]

CATALOG_HIT_NAMES: List[str] = ["CHEONEUL_GWIIN", "MUNCHANG_GWIIN", "YANGIN", "BAEKHO", "GOEGANG", "GONGMANG"]

# Where each condition kind's afflicted branches live in the fact base.
CONDITION_SOURCES: Dict[str, str] = {
    "CHUNG": "relations.chung.branches",
    "HAE": "relations.hae.branches",
    "PA": "relations.pa.branches",
    "WONJIN": "relations.wonjin.branches",
    "HYEONG": "relations.hyeong.branches",
    "GONGMANG": "void.branches",
}


PATTERN_SPEC: Dict[str, Any] = {
    "id": "patterns.default",
    "version": "1",
    "macros": [
        {
            "kind": "var_equals_bonus",
            "id_prefix": "PATTERN_MONTH_MAIN",
            "var": "month.main_ten_god",
            "values": TEN_GODS,
            "key_template": "pattern.{value}",
            "bonus": 1.0,
            "explain_template": "month branch main ten-god {value}",
        },
        {
            "kind": "var_equals_bonus",
            "id_prefix": "PATTERN_MONTH_GYEOK",
            "var": "month.gyeok.ten_god",
            "values": TEN_GODS,
            "key_template": "pattern.{value}",
            "bonus": 1.0,
            "multiplier_var": "month.gyeok.quality.multiplier",
            "explain_template": "month frame ten-god {value} (quality weighted)",
        },
        {
            "kind": "var_equals_bonus",
            "id_prefix": "PATTERN_FOLLOW",
            "var": "patterns.follow.follow_type",
            "values": FOLLOW_TYPES,
            "key_template": "pattern.{value}",
            "bonus": 0.85,
            "multiplier_var": "patterns.follow.jonggyeok_factor",
            "when": {"op": "gte", "args": [{"var": "patterns.follow.jonggyeok_factor"}, 0.6]},
            "explain_template": "follow frame {value}",
        },
        {
            "kind": "custom_rules",
            "rules": [
                {
                    "id": "PATTERN_HUA_QI",
                    "when": {"op": "gte", "args": [{"var": "patterns.transformations.best.effective_factor"}, 0.6]},
                    "score": {
                        "pattern.HUA_QI": {
                            "op": "mul",
                            "args": [{"var": "patterns.transformations.best.effective_factor"}, 0.85],
                        },
                    },
                    "explain": "transformation signal",
                },
                {
                    "id": "PATTERN_ZHUAN_WANG",
                    "when": {"op": "gte", "args": [{"var": "patterns.elements.one_element.factor"}, 0.62]},
                    "score": {
                        "pattern.ZHUAN_WANG": {
                            "op": "mul",
                            "args": [{"var": "patterns.elements.one_element.factor"}, 0.85],
                        },
                    },
                    "explain": "one-element dominance signal",
                },
            ],
        },
    ],
}


HIT_SPEC: Dict[str, Any] = {
    "id": "hits.default",
    "version": "1",
    "macros": [
        {"kind": "catalog", "id_prefix": "REL", "base": "hits.relation_sal", "names": RELATION_SAL_NAMES},
        {"kind": "catalog", "id_prefix": "CAT", "base": "hits.catalog", "names": CATALOG_HIT_NAMES},
        {
            "kind": "branch_presence",
            "defs": [
                {
                    "id": f"PRESENCE_{name}_{basis}",
                    "name": name,
                    "target_var": f"hits.targets.{basis.lower()}.{name}",
                    "based_on": basis,
                    "category": "TWELVE_SAL",
                }
                for name in ("YEOKMA", "DOHWA", "HWAGAE")
                for basis in ("YEAR_BRANCH", "DAY_BRANCH")
            ],
        },
    ],
}


def _condition_rule(kind: str) -> Rule:
    return Rule(
        id=f"COND_{kind}",
        when={"op": "overlap", "args": [{"var": "det.target_branches"}, {"var": CONDITION_SOURCES[kind]}]},
        score={f"cond.penalty.{kind}": {"var": f"policy.conditions.weights.{kind}"}},
        explain=f"target branch afflicted by {kind}",
        tags=("condition",),
    )


def build_default_pattern_rule_set() -> RuleSet:
    return compile_rule_spec(PATTERN_SPEC)


def build_default_hit_rule_set() -> RuleSet:
    return compile_rule_spec(HIT_SPEC)


def build_default_conditions_rule_set() -> RuleSet:
    return RuleSet(
        id="hit_conditions.default",
        version="1",
        rules=tuple(_condition_rule(k) for k in PENALTY_KINDS),
        description="Adverse branch conditions on a detection's target branches",
    )


DEFAULT_PATTERN_RULE_SET = build_default_pattern_rule_set()
DEFAULT_HIT_RULE_SET = build_default_hit_rule_set()
DEFAULT_CONDITIONS_RULE_SET = build_default_conditions_rule_set()
