# chartint/competition/__init__.py

from __future__ import annotations

from chartint.competition.policy import (
    ALL_METHODS,
    DEFAULT_COMPETITION,
    CompetitionMethod,
    CompetitionPolicy,
    KeyGroupSpec,
    build_competition_policy,
    merge_competition,
)
from chartint.competition.resolver import CompetitionReport, CompetitionResolver, compete
from chartint.competition.signals import DEFAULT_SIGNAL_READERS

__all__ = [
    "ALL_METHODS",
    "DEFAULT_COMPETITION",
    "CompetitionMethod",
    "CompetitionPolicy",
    "KeyGroupSpec",
    "build_competition_policy",
    "merge_competition",
    "CompetitionReport",
    "CompetitionResolver",
    "compete",
    "DEFAULT_SIGNAL_READERS",
]
