"""
Unit tests for AnalysisConfig defaults, overrides and validation.
"""

import pytest

from flowlens_core.config import AnalysisConfig, load_config
from flowlens_core.enums import IssueCategory, NodeKind, Severity


class TestDefaults:
    def test_documented_values(self):
        cfg = AnalysisConfig()

        assert cfg.fan_in_threshold == 2
        assert cfg.fan_in_high_threshold == 4
        assert cfg.rate_limit_threshold == 3
        assert cfg.rate_limit_critical_threshold == 5
        assert cfg.similarity_max_distance == 5
        assert cfg.long_chain_threshold == 10
        assert cfg.long_chain_high_threshold == 15
        assert cfg.memory_intensive_threshold == 4
        assert cfg.penalized_categories == {IssueCategory.FAN_IN, IssueCategory.HUB}

    def test_cost_lookup(self):
        cfg = AnalysisConfig()

        assert cfg.cost_for(NodeKind.TRIGGER) == 50
        assert cfg.cost_for(NodeKind.INTEGRATION) == 500
        assert cfg.cost_for(NodeKind.FILTER) == cfg.default_cost_ms == 100

    def test_penalty_lookup(self):
        cfg = AnalysisConfig()

        assert cfg.penalty_for(Severity.CRITICAL) == 300
        assert cfg.penalty_for(Severity.HIGH) == 150
        assert cfg.penalty_for(Severity.MEDIUM) == 50
        assert cfg.penalty_for(Severity.LOW) == 50

    def test_instances_do_not_share_tables(self):
        a, b = AnalysisConfig(), AnalysisConfig()
        a.base_cost_ms[NodeKind.ACTION] = 1.0

        assert b.cost_for(NodeKind.ACTION) == 100

    def test_defaults_are_valid(self):
        AnalysisConfig().validate()


class TestFromDict:
    def test_overrides(self):
        cfg = AnalysisConfig.from_dict({
            "fan_in_threshold": 3,
            "base_cost_ms": {"integration": 800, "api": 900},
            "issue_penalty_ms": {"medium": 75},
            "memory_intensive_kinds": ["transform"],
            "penalized_categories": ["fan-in", "orphan"],
            "allow_number_to_string": True,
        })

        assert cfg.fan_in_threshold == 3
        # "api" is an alias of integration and is applied last
        assert cfg.cost_for(NodeKind.INTEGRATION) == 900
        assert cfg.cost_for(NodeKind.TRIGGER) == 50
        assert cfg.penalty_for(Severity.MEDIUM) == 75
        assert cfg.penalty_for(Severity.HIGH) == 150
        assert cfg.memory_intensive_kinds == {NodeKind.TRANSFORM}
        assert cfg.penalized_categories == {IssueCategory.FAN_IN, IssueCategory.ORPHAN}
        assert cfg.allow_number_to_string is True

    def test_unknown_keys_ignored(self, caplog):
        cfg = AnalysisConfig.from_dict({"not_a_setting": 1})

        assert cfg == AnalysisConfig()
        assert "not_a_setting" in caplog.text

    def test_none(self):
        assert AnalysisConfig.from_dict(None) == AnalysisConfig()

    @pytest.mark.parametrize("data", [
        {"fan_in_threshold": -1},
        {"fan_in_threshold": 6},
        {"time_ratio": 0.0},
        {"error_ratio": 1.5},
        {"base_error_probability": 0.995},
    ])
    def test_invalid_values(self, data):
        with pytest.raises(ValueError):
            AnalysisConfig.from_dict(data)

    def test_string_numbers_are_coerced(self):
        cfg = AnalysisConfig.from_dict({"fan_in_threshold": "3", "time_ratio": "0.5", "api_call_floor": 2.0})

        assert cfg.fan_in_threshold == 3 and isinstance(cfg.fan_in_threshold, int)
        assert cfg.time_ratio == 0.5
        assert cfg.api_call_floor == 2 and isinstance(cfg.api_call_floor, int)

    @pytest.mark.parametrize("data", [
        {"fan_in_threshold": "three"},
        {"fan_in_threshold": 2.5},
        {"fan_in_threshold": True},
        {"time_ratio": None},
        {"allow_number_to_string": "yes"},
    ])
    def test_wrong_types_raise_value_error(self, data):
        with pytest.raises(ValueError):
            AnalysisConfig.from_dict(data)

    def test_string_value_in_yaml_file(self, tmp_path):
        path = tmp_path / "quoted.yaml"
        path.write_text('fan_in_threshold: "3"\n', encoding="utf-8")

        assert load_config(str(path)).fan_in_threshold == 3

    def test_bad_enum_value(self):
        with pytest.raises(ValueError):
            AnalysisConfig.from_dict({"penalized_categories": ["bottleneck"]})


class TestLoadConfig:
    def test_yaml_file(self, tmp_path):
        path = tmp_path / "heuristics.yaml"
        path.write_text("long_chain_threshold: 6\nlong_chain_high_threshold: 8\n", encoding="utf-8")
        cfg = load_config(str(path))

        assert cfg.long_chain_threshold == 6
        assert cfg.long_chain_high_threshold == 8

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(str(path)) == AnalysisConfig()

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n", encoding="utf-8")

        with pytest.raises(ValueError, match="mapping"):
            load_config(str(path))


class TestSeverityRank:
    def test_ascending(self):
        assert [s.rank for s in Severity] == [0, 1, 2, 3]
        assert Severity.CRITICAL.rank > Severity.HIGH.rank > Severity.LOW.rank
