"""Tests for harvester configuration models and their validators."""

import pytest
from pydantic import ValidationError

from harvester.config.settings import (
    DEFAULT_LOCATIONS,
    CandidateLocation,
    ConfidenceConfig,
    ConfidenceField,
    HarvestConfig,
    RecordArrayConfig,
    SelectorHeuristics,
    WeightedPattern,
)


class TestCandidateLocation:
    def test_binding_label_defaults_to_window_path(self):
        location = CandidateLocation(kind="binding", query="__NEXT_DATA__.props")
        assert location.label == "window.__NEXT_DATA__.props"

    def test_script_label_defaults_to_query(self):
        location = CandidateLocation(kind="script", query="script#data")
        assert location.label == "script script#data"

    def test_explicit_label_kept(self):
        location = CandidateLocation(kind="script", query="script#data", label="page json")
        assert location.label == "page json"

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            CandidateLocation(kind="cookie", query="x")

    def test_default_order_ends_with_script_probe(self):
        assert DEFAULT_LOCATIONS[0].query == "PAGE_MODEL"
        assert all(loc.kind == "binding" for loc in DEFAULT_LOCATIONS[:-1])
        assert DEFAULT_LOCATIONS[-1].kind == "script"
        assert DEFAULT_LOCATIONS[-1].label == "script tag"


class TestWeightedPattern:
    def test_invalid_regex_rejected(self):
        with pytest.raises(ValidationError):
            WeightedPattern(pattern="property(card", weight=10)

    def test_negative_weight_rejected(self):
        with pytest.raises(ValidationError):
            WeightedPattern(pattern="card", weight=-1)

    def test_ignore_case_compiles_case_insensitive(self):
        pattern = WeightedPattern(pattern="property.*card", weight=10, ignore_case=True)
        assert pattern.compile().search("PropertyCard")

    def test_case_sensitive_by_default(self):
        pattern = WeightedPattern(pattern="property", weight=10)
        assert pattern.compile().search("Property") is None


class TestSelectorHeuristics:
    def test_defaults(self):
        heuristics = SelectorHeuristics()
        assert heuristics.min_element_score == 10
        assert heuristics.min_group_size == 3
        assert all(p.weight == 10 for p in heuristics.class_patterns)

    def test_group_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            SelectorHeuristics(min_group_size=0)


class TestConfidenceConfig:
    def test_default_weights_sum_to_100(self):
        config = ConfidenceConfig()
        assert sum(f.weight for f in config.fields) == 100

    def test_weights_not_summing_to_100_rejected(self):
        with pytest.raises(ValidationError):
            ConfidenceConfig(fields=[ConfidenceField(name="url", weight=50)])

    def test_threshold_from_env(self, monkeypatch):
        monkeypatch.setenv("HARVESTER_LOW_CONFIDENCE_THRESHOLD", "45")
        assert ConfidenceConfig().low_confidence_threshold == 45

    def test_threshold_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            ConfidenceConfig(low_confidence_threshold=101)


class TestRecordArrayConfig:
    def test_defaults(self):
        config = RecordArrayConfig()
        assert config.max_depth == 5
        assert config.container_keys[0] == "propertyData"

    def test_negative_depth_rejected(self):
        with pytest.raises(ValidationError):
            RecordArrayConfig(max_depth=-1)


class TestHarvestConfig:
    def test_env_defaults(self, monkeypatch):
        monkeypatch.setenv("HARVESTER_MAX_PAGES", "4")
        monkeypatch.setenv("HARVESTER_DISTRESS_KEYWORDS", "Repossession, auction ,,probate")
        monkeypatch.setenv("HARVESTER_LOG_LEVEL", "DEBUG")
        config = HarvestConfig()
        assert config.max_pages == 4
        assert config.distress_keywords == ["repossession", "auction", "probate"]
        assert config.log_level == "DEBUG"

    def test_no_keywords_by_default(self, monkeypatch):
        monkeypatch.delenv("HARVESTER_DISTRESS_KEYWORDS", raising=False)
        assert HarvestConfig().distress_keywords == []

    def test_max_items_default_and_env(self, monkeypatch):
        monkeypatch.delenv("HARVESTER_MAX_ITEMS", raising=False)
        assert HarvestConfig(max_pages=1).max_items == 50
        monkeypatch.setenv("HARVESTER_MAX_ITEMS", "7")
        assert HarvestConfig(max_pages=1).max_items == 7

    def test_max_items_must_be_positive(self):
        with pytest.raises(ValidationError):
            HarvestConfig(max_pages=1, max_items=0)

    def test_max_pages_must_be_positive(self):
        with pytest.raises(ValidationError):
            HarvestConfig(max_pages=0)

    def test_nested_configs_present(self):
        config = HarvestConfig(max_pages=1)
        assert config.retry.max_retries == 3
        assert config.browser.locale == "en-GB"
        assert config.reconcile.derive_postcode_from_address is True
