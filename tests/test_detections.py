# tests/test_detections.py

from chartint.classify.detections import (
    Detection,
    expand_detections,
    expand_emission,
    infer_target_branches,
    normalize_matched_positions,
)


class TestExpandEmission:
    def test_requires_name(self):
        assert expand_emission({"target_branch": 1}) == []
        assert expand_emission({"name": 3, "target_branch": 1}) == []

    def test_no_target_flag(self):
        dets = expand_emission({"name": "N", "no_target": True, "target_branches": [1], "matched_positions": ["day"]})
        assert len(dets) == 1
        assert dets[0].target_kind == "NONE"
        assert dets[0].target_branches == (1,)
        assert dets[0].matched_positions == ("day",)
        assert dets[0].base_weight == 1.0

    def test_target_kind_none(self):
        assert expand_emission({"name": "N", "target_kind": "NONE"})[0].target_kind == "NONE"

    def test_single_stem_and_branch(self):
        assert expand_emission({"name": "S", "target_stem": 4})[0].target == 4
        det = expand_emission({"name": "B", "target_branch": 7})[0]
        assert (det.target_kind, det.target, det.target_branches) == ("BRANCH", 7, (7,))

    def test_fan_out(self):
        dets = expand_emission({"name": "B", "target_branches": [1, 2, "x"]})
        assert [d.target for d in dets] == [1, 2]
        assert all(d.target_branches == (1, 2) for d in dets)
        stems = expand_emission({"name": "S", "target_stems": [3, 5]})
        assert [(d.target_kind, d.target) for d in stems] == [("STEM", 3), ("STEM", 5)]
        assert all(d.target_stems == (3, 5) for d in stems)

    def test_details_kept_on_each_target(self):
        dets = expand_emission({"name": "B", "target_branches": [1, 2], "details": {"row": 7}})
        assert [d.details for d in dets] == [{"row": 7}, {"row": 7}]
        assert dets[0].to_dict()["details"] == {"row": 7}

    def test_no_target_information(self):
        assert expand_emission({"name": "N"}) == []

    def test_field_normalization(self):
        det = expand_emission({
            "name": "B",
            "target_branch": 1,
            "based_on": "HOUR_BRANCH",
            "matched_positions": ["year", "decade", 3],
            "quality_weight": float("nan"),
            "category": 9,
        })[0]
        assert det.based_on == "OTHER"
        assert det.matched_positions == ("year",)
        assert det.explicit_quality_weight is None
        assert det.category is None


class TestExpandDetections:
    def test_flattens_and_rebinds_positions(self, fact_base):
        emits = [[{"name": "A", "target_branches": [0, 6], "matched_positions": ["month"]}], {"name": "B"}, "x"]
        dets = expand_detections(emits, fact_base)
        assert [(d.target, d.matched_positions) for d in dets] == [(0, ("year", "hour")), (6, ("day",))]
        assert dets[0].base_weight == 2.0

    def test_stem_rebinding(self, fact_base):
        det = normalize_matched_positions(Detection(name="S", target_kind="STEM", target=4), fact_base)
        assert det.matched_positions == ("day",)

    def test_unseated_target_drops_positions(self, fact_base):
        det = Detection(name="B", target_kind="BRANCH", target=11, matched_positions=("year", "day"))
        rebound = normalize_matched_positions(det, fact_base)
        assert rebound.matched_positions == ()
        assert rebound.base_weight == 1.0

    def test_targetless_keeps_positions(self, fact_base):
        det = Detection(name="N", target_kind="NONE", matched_positions=("year",))
        assert normalize_matched_positions(det, fact_base) is det


class TestInferTargetBranches:
    def test_explicit_branches_first(self, fact_base):
        det = Detection(name="N", target_kind="NONE", target_branches=(3, 4), matched_positions=("day",))
        assert infer_target_branches(det, fact_base) == [3, 4]

    def test_from_matched_pillars(self, fact_base):
        det = Detection(name="S", target_kind="STEM", target=4, target_stems=(4,), matched_positions=("day", "month"))
        assert infer_target_branches(det, fact_base) == [6, 2]
