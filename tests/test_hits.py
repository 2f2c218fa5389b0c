# tests/test_hits.py

import pytest

from chartint.classify.hits import HitQualityScorer, build_hit_policy
from chartint.facts import FactBase
from chartint.quality.penalty import CombineStrategy


def _score(facts, strategies=None, extensions=None):
    return HitQualityScorer().score(FactBase(facts), build_hit_policy(strategies, extensions))


def _by_name(res, name):
    return [d for d in res.detections if d.name == name]


class TestDefaultHits:
    def test_detections_and_adjusted_scores(self, chart_facts):
        res = _score(chart_facts)
        assert [(d.name, d.target) for d in res.detections] == [
            ("CHUNG_SAL", 0),
            ("CHUNG_SAL", 6),
            ("CHEONEUL_GWIIN", 0),
            ("CHEONEUL_GWIIN", 11),
            ("YEOKMA", 2),
        ]
        assert res.scores_adjusted == pytest.approx({
            "hit.CHUNG_SAL": 3.0,
            "hit.CHEONEUL_GWIIN": 1.5,
            "hit.YEOKMA": 1.0,
        })
        assert res.scores == pytest.approx({"hit.CHUNG_SAL": 1.0, "hit.CHEONEUL_GWIIN": 1.0, "hit.YEOKMA": 1.0})

    def test_relation_hits_are_not_attenuated(self, chart_facts):
        for det in _by_name(_score(chart_facts), "CHUNG_SAL"):
            assert det.quality_weight == 1.0
            assert det.label == "full"
            assert det.active is True

    def test_conditions_attenuate(self, chart_facts):
        at_ja, at_hae = _by_name(_score(chart_facts), "CHEONEUL_GWIIN")
        assert at_ja.matched_positions == ["year", "hour"]
        assert at_ja.quality_weight == pytest.approx(0.5)
        # both siblings see the whole target group: ja is under CHUNG, hae is void
        assert at_ja.reasons == ["CHUNG", "GONGMANG"]
        assert at_hae.reasons == ["CHUNG", "GONGMANG"]
        assert at_hae.quality_weight == pytest.approx(0.5)
        assert at_hae.matched_positions == []

    def test_condition_trace_skips_excluded_names(self, chart_facts):
        res = _score(chart_facts)
        assert [c.index for c in res.conditions] == [2, 3, 4]
        first = res.conditions[0]
        assert first.applied is True
        assert first.target_branches == [0, 11]
        assert first.scores == {"cond.penalty.CHUNG": 0.5, "cond.penalty.GONGMANG": 0.5}
        assert first.penalty_parts == [{"kind": "CHUNG", "value": 0.5}, {"kind": "GONGMANG", "value": 0.5}]
        assert first.combined_penalty == pytest.approx(0.5)
        assert first.matches[0]["rule_id"] == "COND_CHUNG"
        assert res.conditions[2].reasons == []
        assert res.conditions_rule_set_id == "hit_conditions.default"


class TestQualityPipeline:
    def test_single_condition_weak_but_active(self, chart_facts):
        strategies = {"hits": {"conditions": {"weights": {"CHUNG": 0.5}, "combine": "max"}}}
        det = _by_name(_score(chart_facts, strategies), "CHEONEUL_GWIIN")[0]
        assert det.quality_weight == pytest.approx(0.5)
        assert det.label == "weak"
        assert det.invalidated is False
        assert det.active is True

    def test_combine_strategy_applies(self, chart_facts):
        chart_facts["void"]["branches"] = [0, 11]
        strategies = {"hits": {"conditions": {"combine": "prob"}}}
        det = _by_name(_score(chart_facts, strategies), "CHEONEUL_GWIIN")[0]
        assert sorted(det.reasons) == ["CHUNG", "GONGMANG"]
        assert det.penalty == pytest.approx(0.75)
        assert det.quality_weight == pytest.approx(0.25)

    def test_fanned_siblings_share_group_penalties(self, chart_facts):
        strategies = {"hits": {"conditions": {"combine": "prob"}}}
        res = _score(chart_facts, strategies)
        for det in _by_name(res, "CHEONEUL_GWIIN"):
            assert det.penalty == pytest.approx(0.75)
            assert det.quality_weight == pytest.approx(0.25)
        # year+hour seat ja (2), nothing seats hae (1)
        assert res.scores_adjusted["hit.CHEONEUL_GWIIN"] == pytest.approx(0.75)

    def test_name_override_invalidates(self, chart_facts):
        strategies = {"hits": {"conditions": {"names": {"CHEONEUL_GWIIN": {"invalidate_threshold": 0.5}}}}}
        res = _score(chart_facts, strategies)
        for det in _by_name(res, "CHEONEUL_GWIIN"):
            assert det.invalidated is True
            assert det.active is False
        # invalidated detections still contribute base x weight
        assert res.scores_adjusted["hit.CHEONEUL_GWIIN"] == pytest.approx(1.5)

    def test_disabled_model(self, chart_facts):
        res = _score(chart_facts, {"hits": {"conditions": {"enabled": False}}})
        assert all(d.quality_weight == 1.0 for d in res.detections)
        assert all(not c.applied for c in res.conditions)

    def test_legacy_weak_weight(self, chart_facts):
        det = _by_name(_score(chart_facts, {"hits": {"weak_quality_weight": 0.8}}), "CHEONEUL_GWIIN")[0]
        assert det.quality_weight == pytest.approx(0.8)
        assert det.label == "weak"

    def test_policy_carries_quality_model(self):
        policy = build_hit_policy({"hits": {"conditions": {"combine": "sum"}}})
        assert policy.quality_model.combine is CombineStrategy.SUM


class TestCustomRules:
    def _ext(self, *emits):
        rules = [{"id": f"e{i}", "emit": e} for i, e in enumerate(emits)]
        return {"rule_sets": {"hits": {"id": "custom", "rules": rules}}}

    def test_explicit_quality_weight_bypasses_conditions(self, chart_facts):
        ext = self._ext({"name": "SPECIAL", "target_branch": 0, "quality_weight": 0.3})
        res = _score(chart_facts, None, ext)
        det = res.detections[0]
        assert det.explicit_quality_weight == pytest.approx(0.3)
        assert det.quality_weight == pytest.approx(0.3)
        assert det.label == "weak"
        assert det.reasons == []
        assert res.conditions[0].applied is False
        assert res.scores_adjusted == pytest.approx({"hit.SPECIAL": 0.6})

    def test_targetless_and_stem_fan_out(self, chart_facts):
        ext = self._ext(
            {"name": "GLOBAL", "no_target": True},
            {"name": "STEMS", "target_stems": [4, 6]},
        )
        res = _score(chart_facts, None, ext)
        assert [(d.name, d.target_kind, d.matched_positions) for d in res.detections] == [
            ("GLOBAL", "NONE", []),
            ("STEMS", "STEM", ["day"]),
            ("STEMS", "STEM", ["hour"]),
        ]
        # day branch 6 is afflicted by CHUNG; hour branch 0 as well
        assert res.detections[1].reasons == ["CHUNG"]
        assert res.scores_adjusted["hit.GLOBAL"] == pytest.approx(1.0)
        assert res.scores_adjusted["hit.STEMS"] == pytest.approx(1.0)

    def test_unseated_target_drops_inherited_positions(self, chart_facts):
        ext = self._ext({"name": "LUCK", "target_branch": 5, "matched_positions": ["year", "day"]})
        res = _score(chart_facts, None, ext)
        det = res.detections[0]
        assert det.matched_positions == []
        assert det.quality_weight == 1.0
        assert res.scores_adjusted == pytest.approx({"hit.LUCK": 1.0})

    def test_details_payload_carried_to_every_target(self, chart_facts):
        ext = self._ext({"name": "TAGGED", "target_branches": [0, 6], "details": {"table": "gwiin", "row": 3}})
        res = _score(chart_facts, None, ext)
        assert [d.details for d in res.detections] == [{"table": "gwiin", "row": 3}] * 2
        assert res.detections[0].model_dump()["details"] == {"table": "gwiin", "row": 3}

    def test_condition_errors_recorded(self, chart_facts):
        ext = {"rule_sets": {"hit_conditions": {"id": "bad", "rules": [{"id": "c", "when": {"op": "boom"}}]}}}
        res = _score(chart_facts, None, ext)
        stages = {e["stage"] for e in res.trace.errors}
        assert "conditions:CHEONEUL_GWIIN" in stages
        assert all(d.quality_weight == 1.0 for d in res.detections)

    def test_hit_rule_error_yields_empty_result(self, chart_facts):
        ext = {"rule_sets": {"hits": {"id": "bad", "rules": [{"id": "c", "when": {"op": "boom"}}]}}}
        res = _score(chart_facts, None, ext)
        assert res.detections == []
        assert res.scores_adjusted == {}
        assert res.trace.errors[0]["stage"] == "hits"
