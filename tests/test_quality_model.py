# tests/test_quality_model.py

import pytest

from chartint.quality.model import (
    DEFAULT_EXCLUDE_NAMES,
    DEFAULT_QUALITY_MODEL,
    PENALTY_KINDS,
    QualityOverride,
    read_quality_model,
    resolve_quality_model,
)
from chartint.quality.penalty import CombineStrategy


class TestDefaults:
    def test_base_model(self):
        m = read_quality_model({"conditions": {}})
        assert m.enabled is True
        assert dict(m.weights) == {k: 0.5 for k in PENALTY_KINDS}
        assert m.combine is CombineStrategy.MAX
        assert m.weak_threshold == 1.0
        assert m.invalidate_threshold == 0.0
        assert m.exclude_names == DEFAULT_EXCLUDE_NAMES

    def test_relation_and_void_categories_disabled(self):
        assert resolve_quality_model(DEFAULT_QUALITY_MODEL, "X", "RELATION_SAL").apply is False
        assert resolve_quality_model(DEFAULT_QUALITY_MODEL, "X", "VOID").apply is False
        assert resolve_quality_model(DEFAULT_QUALITY_MODEL, "X", "GWIIN").apply is True

    def test_excluded_names_do_not_apply(self):
        assert resolve_quality_model(DEFAULT_QUALITY_MODEL, "GONGMANG").apply is False


class TestLayering:
    def test_category_weight_and_name_combine(self):
        model = read_quality_model({
            "conditions": {
                "categories": {"GWIIN": {"weights": {"CHUNG": 0.8}}},
                "names": {"CHEONEUL_GWIIN": {"combine": "sum"}},
            },
        })
        r = resolve_quality_model(model, "CHEONEUL_GWIIN", "GWIIN")
        assert r.weights["CHUNG"] == pytest.approx(0.8)
        assert r.combine is CombineStrategy.SUM
        for kind in PENALTY_KINDS:
            if kind != "CHUNG":
                assert r.weights[kind] == pytest.approx(0.5)
        assert r.weak_threshold == 1.0
        assert r.invalidate_threshold == 0.0
        assert r.apply is True

    def test_name_beats_category(self):
        model = read_quality_model({
            "conditions": {
                "categories": {"GWIIN": {"weak_threshold": 0.7, "weights": {"PA": 0.1}}},
                "names": {"CHEONEUL_GWIIN": {"weak_threshold": 0.4, "weights": {"PA": 0.9}}},
            },
        })
        r = resolve_quality_model(model, "CHEONEUL_GWIIN", "GWIIN")
        assert r.weak_threshold == pytest.approx(0.4)
        assert r.weights["PA"] == pytest.approx(0.9)

    def test_layer_cannot_reenable(self):
        model = read_quality_model({
            "conditions": {
                "categories": {"GWIIN": {"enabled": False}},
                "names": {"CHEONEUL_GWIIN": {"enabled": True}},
            },
        })
        assert resolve_quality_model(model, "CHEONEUL_GWIIN", "GWIIN").apply is False

    def test_allow_list(self):
        model = read_quality_model({"conditions": {"apply_to": ["YEOKMA"]}})
        assert resolve_quality_model(model, "YEOKMA").apply is True
        assert resolve_quality_model(model, "DOHWA").apply is False

    def test_name_exclude_alias(self):
        model = read_quality_model({"conditions": {"names": {"DOHWA": {"exclude": ["DOHWA"]}}}})
        assert resolve_quality_model(model, "DOHWA").apply is False

    @pytest.mark.parametrize("weight", [0.0, 0.9, 1.0])
    def test_explicit_weight_forces_no_apply(self, weight):
        assert resolve_quality_model(DEFAULT_QUALITY_MODEL, "YEOKMA", explicit_weight=weight).apply is False

    def test_non_finite_explicit_weight_is_ignored(self):
        assert resolve_quality_model(DEFAULT_QUALITY_MODEL, "YEOKMA", explicit_weight=float("nan")).apply is True


class TestMalformedConfig:
    def test_bad_fields_inherit(self):
        model = read_quality_model({
            "conditions": {
                "combine": "bogus",
                "weak_threshold": "high",
                "invalidate_threshold": None,
                "enabled": "yes",
                "weights": {"CHUNG": "strong", "HAE": float("inf")},
                "categories": ["not", "a", "mapping"],
            },
        })
        assert model.combine is CombineStrategy.MAX
        assert model.weak_threshold == 1.0
        assert model.invalidate_threshold == 0.0
        assert model.enabled is True
        assert model.weights["CHUNG"] == 0.5
        assert model.weights["HAE"] == 0.5

    def test_finite_values_clamped(self):
        model = read_quality_model({"conditions": {"weights": {"PA": 2.0}, "weak_threshold": -1}})
        assert model.weights["PA"] == 1.0
        assert model.weak_threshold == 0.0

    def test_override_parse_of_garbage(self):
        assert QualityOverride.parse("nope") == QualityOverride()

    def test_non_mapping_section(self):
        assert read_quality_model(None).combine is CombineStrategy.MAX


class TestLegacyModel:
    def test_weak_quality_weight(self):
        model = read_quality_model({"weak_quality_weight": 0.7})
        assert all(w == pytest.approx(0.3) for w in model.weights.values())
        assert model.combine is CombineStrategy.MAX
        assert model.weak_threshold == 1.0
        assert model.invalidate_threshold == 0.0

    def test_weak_weight_alias(self):
        model = read_quality_model({"weak_weight": 0.25})
        assert model.weights["CHUNG"] == pytest.approx(0.75)

    def test_default_legacy_weight(self):
        model = read_quality_model({})
        assert model.weights["GONGMANG"] == pytest.approx(0.5)
