# chartint/engine.py
"""
Facade running both classifications over one fact base.

Policies are compiled once per configuration id and cached for the life of
the process; each call only evaluates rules against the given facts.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from chartint.cache import PolicyCache
from chartint.classify.hits import HitPolicy, HitQualityScorer, build_hit_policy
from chartint.classify.patterns import PatternClassifier, PatternPolicy, build_pattern_policy
from chartint.competition.resolver import CompetitionResolver
from chartint.config import EngineConfig
from chartint.facts import FactBase
from chartint.models import ChartClassification, HitQualityResult, PatternResult
from chartint.rules import RuleEvaluator

logger = logging.getLogger(__name__)

PATTERN_POLICIES: PolicyCache[PatternPolicy] = PolicyCache("pattern policy")
HIT_POLICIES: PolicyCache[HitPolicy] = PolicyCache("hit policy")

FactsLike = Union[FactBase, Mapping[str, Any]]


def _facts(facts: FactsLike) -> FactBase:
    return facts if isinstance(facts, FactBase) else FactBase(facts)


class ChartClassifier:
    """
    Pattern selection plus hit-quality scoring.

    The rule evaluator is injectable; the same instance serves both stages
    and every per-detection condition evaluation.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        evaluator: Optional[RuleEvaluator] = None,
        resolver: Optional[CompetitionResolver] = None,
    ):
        self.config = config or EngineConfig()
        self.patterns = PatternClassifier(evaluator=evaluator, resolver=resolver)
        self.hits = HitQualityScorer(evaluator=evaluator)

    @property
    def pattern_policy(self) -> PatternPolicy:
        cfg = self.config
        return PATTERN_POLICIES.get_or_build(
            cfg.config_id, lambda: build_pattern_policy(cfg.strategies, cfg.extensions)
        )

    @property
    def hit_policy(self) -> HitPolicy:
        cfg = self.config
        return HIT_POLICIES.get_or_build(
            cfg.config_id, lambda: build_hit_policy(cfg.strategies, cfg.extensions)
        )

    def classify_patterns(self, facts: FactsLike) -> PatternResult:
        return self.patterns.classify(_facts(facts), self.pattern_policy)

    def score_hits(self, facts: FactsLike) -> HitQualityResult:
        return self.hits.score(_facts(facts), self.hit_policy)

    def classify(self, facts: FactsLike, only: Optional[str] = None) -> ChartClassification:
        """Run both stages, or just one with only="patterns" / only="hits"."""
        fb = _facts(facts)
        return ChartClassification(
            config_id=self.config.config_id,
            patterns=self.classify_patterns(fb) if only in (None, "patterns") else None,
            hits=self.score_hits(fb) if only in (None, "hits") else None,
        )


def classify_chart(
    facts: FactsLike,
    config: Optional[EngineConfig] = None,
    evaluator: Optional[RuleEvaluator] = None,
) -> ChartClassification:
    """One-shot convenience wrapper around ChartClassifier."""
    return ChartClassifier(config=config, evaluator=evaluator).classify(facts)
