# tests/test_facts.py

import pytest

from chartint.facts import FactBase, get_path


class TestGetPath:
    def test_nested(self):
        assert get_path({"a": {"b": [10, {"c": 3}]}}, "a.b.1.c") == 3

    @pytest.mark.parametrize("path", ["a.x", "a.b.9", "a.b.0.c", "a.s.upper"])
    def test_missing_returns_default(self, path):
        assert get_path({"a": {"b": [10], "s": "str"}}, path, "dflt") == "dflt"


class TestFactBase:
    def test_pillars(self, fact_base):
        assert fact_base.pillar("day") == (4, 6)
        assert fact_base.pillar("decade") is None
        assert fact_base.pillar_branches() == {"year": 0, "month": 2, "day": 6, "hour": 0}
        assert fact_base.pillar_stems()["hour"] == 6

    def test_malformed_pillar(self):
        fb = FactBase({"chart": {"pillars": {"year": {"stem": "gap", "branch": 1}, "day": [1, 2]}}})
        assert fb.pillar("year") is None
        assert fb.pillar("day") is None
        assert fb.pillar_branches() == {}

    def test_quality_multiplier(self, fact_base):
        assert fact_base.pattern_quality_multiplier == pytest.approx(0.8)
        assert FactBase({}).pattern_quality_multiplier == 0.5
        assert FactBase({"month": {"gyeok": {"quality": {"multiplier": 7}}}}).pattern_quality_multiplier == 1.0

    def test_view_adds_branches_and_stems(self, fact_base):
        view = fact_base.as_dict()
        assert view["chart"]["branches"] == [0, 2, 6, 0]
        assert view["chart"]["stems"] == [0, 2, 4, 6]
        assert "branches" not in fact_base.data["chart"]

    def test_view_keeps_upstream_branches(self):
        fb = FactBase({"chart": {"branches": [1]}})
        assert fb.as_dict()["chart"]["branches"] == [1]

    def test_overlay(self, fact_base):
        sub = fact_base.with_overlay(det={"name": "X"})
        assert sub.get("det.name") == "X"
        assert sub.get("chart.branches") == [0, 2, 6, 0]
        assert fact_base.get("det") is None

    def test_matched_positions(self, fact_base):
        assert fact_base.matched_positions_for("BRANCH", 0) == ["year", "hour"]
        assert fact_base.matched_positions_for("STEM", 2) == ["month"]
        assert fact_base.matched_positions_for("BRANCH", 11) == []
