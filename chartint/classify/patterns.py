# chartint/classify/patterns.py
"""
Pattern selection.

    facts -> rule evaluation -> (competition)? -> ranking -> PatternResult

Every tie-break key is seeded at 0 so the ranking always lists the full
candidate set, and the best key is reported only when its score is > 0.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from chartint.classify.stage import build_trace, config_section, run_rules, sanitize_scores, select_rule_set
from chartint.competition.policy import (
    ALL_METHODS,
    TEN_GOD_PATTERN_KEYS,
    CompetitionPolicy,
    KeyGroupSpec,
    build_competition_policy,
)
from chartint.competition.resolver import CompetitionResolver
from chartint.facts import FactBase
from chartint.models import PatternBasis, PatternResult, RankedScore
from chartint.ranking import best_key, rank_scores
from chartint.rules import RuleEvaluator, RuleSet
from chartint.rules.compiler import spec_policies
from chartint.rules.defaults import DEFAULT_PATTERN_RULE_SET
from chartint.rules.dsl import JsonRuleEvaluator
from chartint.utils import string_list

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "pattern."

# Ten-god frames first so they stay primary on equal scores; special frames after.
DEFAULT_TIE_BREAK_ORDER: Tuple[str, ...] = TEN_GOD_PATTERN_KEYS + (
    "pattern.HUA_QI",
    "pattern.ZHUAN_WANG",
    "pattern.CONG_CAI",
    "pattern.CONG_GUAN",
    "pattern.CONG_SHA",
    "pattern.CONG_ER",
    "pattern.CONG_YIN",
    "pattern.CONG_BI",
    "pattern.CONG_GE",
)


@dataclass(frozen=True)
class PatternPolicy:
    rule_set: RuleSet = DEFAULT_PATTERN_RULE_SET
    tie_break_order: Tuple[str, ...] = DEFAULT_TIE_BREAK_ORDER
    competition: CompetitionPolicy = field(default_factory=CompetitionPolicy)
    key_prefix: str = DEFAULT_KEY_PREFIX


def build_pattern_policy(strategies: Any = None, extensions: Any = None) -> PatternPolicy:
    """
    Default-merge the pattern section of a configuration.

    Competition layers: defaults -> each pattern spec's `policy.competition`
    -> `strategies.patterns.competition`.
    """
    section = config_section(strategies, "patterns")
    section = section if isinstance(section, Mapping) else {}

    order = string_list(section.get("tie_break_order"))
    prefix = section.get("key_prefix")

    spec_layers = spec_policies(config_section(extensions, "rule_specs", "patterns"), "competition")
    competition = build_competition_policy(*spec_layers, section.get("competition"))

    return PatternPolicy(
        rule_set=select_rule_set(extensions, "patterns", DEFAULT_PATTERN_RULE_SET),
        tie_break_order=tuple(order) if order is not None else DEFAULT_TIE_BREAK_ORDER,
        competition=competition,
        key_prefix=prefix if isinstance(prefix, str) else DEFAULT_KEY_PREFIX,
    )


def owning_method(key: Optional[str], groups: Mapping[str, KeyGroupSpec]) -> Optional[str]:
    if key is None:
        return None
    for m in ALL_METHODS:
        g = groups.get(m)
        if g is not None and key in g.select({key: 1.0}):
            return m
    return None


class PatternClassifier:
    """Pattern-selection orchestrator"""

    def __init__(
        self,
        evaluator: Optional[RuleEvaluator] = None,
        resolver: Optional[CompetitionResolver] = None,
    ):
        self.evaluator = evaluator or JsonRuleEvaluator()
        self.resolver = resolver or CompetitionResolver()

    def classify(self, facts: FactBase, policy: PatternPolicy) -> PatternResult:
        errors: List[Dict[str, Any]] = []
        seed = {k: 0.0 for k in policy.tie_break_order}

        res = run_rules(self.evaluator, policy.rule_set, facts.as_dict(), seed, "patterns", errors)
        scores = sanitize_scores(res.scores, "patterns")

        report = self.resolver.apply(scores, facts, policy.competition)

        ranking = rank_scores(scores, policy.tie_break_order, policy.key_prefix)
        best = best_key(ranking)

        basis = PatternBasis(
            month_main_ten_god=_str_or_none(facts.get("month.main_ten_god")),
            month_gyeok_ten_god=_str_or_none(facts.get("month.gyeok.ten_god")),
            method=owning_method(best, policy.competition.groups),
            quality_multiplier=facts.pattern_quality_multiplier,
        )
        logger.debug("Pattern best=%s (%d candidates)", best, len(ranking))

        return PatternResult(
            best=best,
            ranking=[RankedScore(key=r.key, score=r.score, rank=i + 1) for i, r in enumerate(ranking)],
            scores=scores,
            basis=basis,
            competition=report.to_dict() if report is not None else None,
            trace=build_trace(policy.rule_set, res, errors),
        )


def _str_or_none(x: Any) -> Optional[str]:
    return x if isinstance(x, str) else None

