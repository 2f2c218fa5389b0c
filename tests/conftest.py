# tests/conftest.py

from __future__ import annotations

import copy
from typing import Any, Dict

import pytest

from chartint.cache import PolicyCache
from chartint.engine import HIT_POLICIES, PATTERN_POLICIES
from chartint.facts import FactBase

# Branch indices: 0=ja 2=in 6=o 9=yu 11=hae
CHART_FACTS: Dict[str, Any] = {
    "chart": {
        "pillars": {
            "year": {"stem": 0, "branch": 0},
            "month": {"stem": 2, "branch": 2},
            "day": {"stem": 4, "branch": 6},
            "hour": {"stem": 6, "branch": 0},
        },
    },
    "month": {
        "main_ten_god": "JEONG_GWAN",
        "gyeok": {"ten_god": "JEONG_GWAN", "quality": {"multiplier": 0.8}},
    },
    "patterns": {
        "follow": {"follow_type": "CONG_CAI", "jonggyeok_factor": 0.7, "potential": 0.6},
        "transformations": {"best": {"effective_factor": 0.65, "huaqi_factor": 0.35}},
        "elements": {"one_element": {"factor": 0.3}},
    },
    "relations": {"chung": {"branches": [0, 6]}},
    "void": {"branches": [10, 11]},
    "hits": {
        "relation_sal": {
            "CHUNG_SAL": [{"name": "CHUNG_SAL", "category": "RELATION_SAL", "target_branches": [0, 6]}],
        },
        "catalog": {
            "CHEONEUL_GWIIN": [{"name": "CHEONEUL_GWIIN", "category": "GWIIN", "target_branches": [0, 11]}],
        },
        "targets": {"year_branch": {"YEOKMA": 2}, "day_branch": {"DOHWA": 9}},
    },
}


@pytest.fixture
def chart_facts() -> Dict[str, Any]:
    return copy.deepcopy(CHART_FACTS)


@pytest.fixture
def fact_base(chart_facts) -> FactBase:
    return FactBase(chart_facts)


@pytest.fixture(autouse=True)
def clear_policy_caches():
    yield
    PATTERN_POLICIES.clear()
    HIT_POLICIES.clear()


@pytest.fixture
def cache() -> PolicyCache:
    return PolicyCache("test")
