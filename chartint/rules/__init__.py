# chartint/rules/__init__.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple


class RuleEvaluationError(ValueError):
    """A rule could not be evaluated (unknown operator, malformed node)."""


@dataclass(frozen=True)
class Rule:
    id: str
    when: Any = None
    score: Optional[Mapping[str, Any]] = None
    emit: Any = None
    assert_: Any = None
    explain: Optional[str] = None
    tags: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Rule":
        score = raw.get("score")
        tags = raw.get("tags")
        return cls(
            id=str(raw.get("id", "")),
            when=raw.get("when"),
            score=dict(score) if isinstance(score, Mapping) else None,
            emit=raw.get("emit"),
            assert_=raw.get("assert"),
            explain=raw.get("explain") if isinstance(raw.get("explain"), str) else None,
            tags=tuple(str(t) for t in tags) if isinstance(tags, (list, tuple)) else (),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id}
        if self.when is not None:
            out["when"] = self.when
        if self.score is not None:
            out["score"] = dict(self.score)
        if self.emit is not None:
            out["emit"] = self.emit
        if self.assert_ is not None:
            out["assert"] = self.assert_
        if self.explain:
            out["explain"] = self.explain
        if self.tags:
            out["tags"] = list(self.tags)
        return out


@dataclass(frozen=True)
class RuleSet:
    """Ordered, immutable list of rules."""
    id: str
    version: str
    rules: Tuple[Rule, ...] = ()
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "RuleSet":
        rules = raw.get("rules")
        items = rules if isinstance(rules, (list, tuple)) else []
        return cls(
            id=str(raw.get("id", "custom")),
            version=str(raw.get("version", "0")),
            rules=tuple(
                r if isinstance(r, Rule) else Rule.from_dict(r)
                for r in items
                if isinstance(r, (Rule, Mapping))
            ),
            description=raw.get("description") if isinstance(raw.get("description"), str) else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "version": self.version,
            "description": self.description,
            "rules": [r.to_dict() for r in self.rules],
        }

    def __len__(self) -> int:
        return len(self.rules)


@dataclass
class RuleMatch:
    rule_id: str
    explain: Optional[str] = None
    scores: Optional[Dict[str, float]] = None
    emit: Any = None
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "explain": self.explain,
            "scores": self.scores,
            "emit": self.emit,
            "tags": list(self.tags),
        }


@dataclass
class FailedAssertion:
    rule_id: str
    explain: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"rule_id": self.rule_id, "explain": self.explain}


@dataclass
class RuleEvalResult:
    scores: Dict[str, float]
    matches: List[RuleMatch] = field(default_factory=list)
    assertions_failed: List[FailedAssertion] = field(default_factory=list)
    emits: List[Any] = field(default_factory=list)


class RuleEvaluator(Protocol):
    """
    Pure rule evaluation capability.

    Implementations must not mutate `initial_scores` or `facts`; the hit-quality
    path calls `evaluate` once per detection.
    """

    def evaluate(
        self,
        rule_set: RuleSet,
        facts: Mapping[str, Any],
        initial_scores: Optional[Mapping[str, float]] = None,
    ) -> RuleEvalResult:
        ...


def coerce_rule_set(x: Any) -> Optional[RuleSet]:
    """Accept a RuleSet or a RuleSet-shaped dict from configuration."""
    if isinstance(x, RuleSet):
        return x
    if isinstance(x, Mapping) and isinstance(x.get("rules"), (list, tuple)):
        return RuleSet.from_dict(x)
    return None
