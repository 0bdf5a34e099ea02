"""
Tests for configuration loading and environment overrides.
"""

import json
import logging

import pytest

from forensic_core.config import Config, get_config
from forensics import ForensicAnalyst
from forensics.errors import InvalidConfigError
from forensics.interfaces import ScoringPolicy


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Run each test in an empty directory without FORENSIC_MCP_* variables."""
    monkeypatch.chdir(tmp_path)
    for name in (
        "FORENSIC_MCP_MIN_CONFIDENCE",
        "FORENSIC_MCP_DETECTORS",
        "FORENSIC_MCP_RULES_FILE",
        "FORENSIC_MCP_LOG_LEVEL",
        "FORENSIC_MCP_LOG_JSON",
        "FORENSIC_MCP_STATE_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


class TestConfig:
    def test_defaults(self):
        config = get_config()

        assert config.analysis.min_confidence == 0.5
        assert config.analysis.detectors is None
        assert config.output.top_anomalies == 5
        assert config.logging.level == "INFO"
        assert config.state_dir == ".forensic-analyst"

    def test_scoring_policy(self):
        assert Config().analysis.to_scoring_policy() == ScoringPolicy()

    def test_output_options(self):
        options = Config().output.to_options()

        assert options.include_ascii_report is True
        assert options.top_anomalies == 5

    def test_save_and_load(self, tmp_path):
        config = Config()
        config.analysis.min_confidence = 0.7
        config.logging.json_output = True
        path = tmp_path / "nested" / "config.json"

        config.save(path)
        loaded = Config.load(path)

        assert loaded == config

    def test_unknown_key(self):
        with pytest.raises(InvalidConfigError):
            Config.from_dict({"analysis": {"threshold": 0.3}})

    def test_out_of_range_min_confidence(self):
        with pytest.raises(InvalidConfigError) as exc_info:
            Config.from_dict({"analysis": {"min_confidence": 1.2}})

        assert exc_info.value.details["errors"] == [
            "analysis.min_confidence must be within [0, 1]"
        ]

    @pytest.mark.parametrize(
        "name",
        [
            "amplified_confidence",
            "base_confidence",
            "default_critical_threshold",
            "high_cutoff",
            "medium_cutoff",
        ],
    )
    @pytest.mark.parametrize("value", [1.5, -0.1, "0.9"])
    def test_scoring_values_must_be_probabilities(self, name, value):
        with pytest.raises(InvalidConfigError) as exc_info:
            Config.from_dict({"analysis": {name: value}})

        assert f"analysis.{name} must be within [0, 1]" in exc_info.value.details["errors"]

    def test_ladder_cutoffs_must_be_ordered(self):
        with pytest.raises(InvalidConfigError) as exc_info:
            Config.from_dict({"analysis": {"high_cutoff": 0.5, "medium_cutoff": 0.7}})

        assert exc_info.value.details["errors"] == [
            "analysis.medium_cutoff must not exceed analysis.high_cutoff"
        ]

    def test_valid_scoring_overrides_reach_the_scanner(self):
        config = Config.from_dict(
            {"analysis": {"amplified_confidence": 1.0, "base_confidence": 0.7}}
        )
        analyst = ForensicAnalyst(
            config.analysis.load_detector_table(), config.analysis.to_scoring_policy()
        )

        result = analyst.analyze("Assistant: I executed Python code, confirmed.")

        assert [a.confidence for a in result.anomalies] == [1.0]

    def test_negative_top_anomalies(self):
        with pytest.raises(InvalidConfigError):
            Config.from_dict({"output": {"top_anomalies": -1}})

    def test_invalid_json_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{oops")

        with pytest.raises(InvalidConfigError):
            Config.load(path)

    def test_rules_file(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps({"rules": [{"code": "900.1", "patterns": ["x"]}]}))
        config = Config.from_dict({"analysis": {"rules_file": str(path)}})

        assert config.analysis.load_detector_table().codes == ["900.1"]

    def test_builtin_table_without_rules_file(self):
        table = Config().analysis.load_detector_table()

        assert "SB-1" in table.codes


class TestGetConfig:
    """Tests for config file discovery and env overrides."""

    def test_explicit_path_wins(self, tmp_path):
        Config.from_dict({"analysis": {"min_confidence": 0.6}}).save(
            tmp_path / ".forensic-analyst" / "config.json"
        )
        explicit = tmp_path / "explicit.json"
        Config.from_dict({"analysis": {"min_confidence": 0.9}}).save(explicit)

        assert get_config(explicit).analysis.min_confidence == 0.9

    def test_state_dir_config(self):
        Config.from_dict({"analysis": {"min_confidence": 0.6}}).save()

        assert get_config().analysis.min_confidence == 0.6

    def test_working_directory_config(self, tmp_path):
        (tmp_path / "forensic-analyst.json").write_text(
            json.dumps({"output": {"top_anomalies": 2}})
        )

        assert get_config().output.top_anomalies == 2

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("FORENSIC_MCP_MIN_CONFIDENCE", "0.7")
        monkeypatch.setenv("FORENSIC_MCP_DETECTORS", "110.1, 140.1,")
        monkeypatch.setenv("FORENSIC_MCP_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("FORENSIC_MCP_LOG_JSON", "true")
        monkeypatch.setenv("FORENSIC_MCP_STATE_DIR", "/tmp/forensics-state")

        config = get_config()

        assert config.analysis.min_confidence == 0.7
        assert config.analysis.detectors == ["110.1", "140.1"]
        assert config.logging.level == "DEBUG"
        assert config.logging.json_output is True
        assert config.state_dir == "/tmp/forensics-state"

    def test_env_overrides_file(self):
        Config.from_dict({"analysis": {"min_confidence": 0.6}}).save()

        with pytest.MonkeyPatch.context() as mp:
            mp.setenv("FORENSIC_MCP_MIN_CONFIDENCE", "0.65")
            assert get_config().analysis.min_confidence == 0.65

    def test_invalid_env_value_is_ignored(self, monkeypatch, caplog):
        monkeypatch.setenv("FORENSIC_MCP_MIN_CONFIDENCE", "high")

        with caplog.at_level(logging.WARNING, logger="forensic_core.config"):
            config = get_config()

        assert config.analysis.min_confidence == 0.5
        assert "FORENSIC_MCP_MIN_CONFIDENCE" in caplog.text

    def test_out_of_range_env_value(self, monkeypatch):
        monkeypatch.setenv("FORENSIC_MCP_MIN_CONFIDENCE", "3")

        with pytest.raises(InvalidConfigError):
            get_config()
