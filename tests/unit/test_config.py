"""Tests for settings loading and threshold resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from slopscan.config import SlopScanConfig, find_config, resolve_threshold
from slopscan.errors import ConfigError
from slopscan.rules.models import Severity


class TestResolveThreshold:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("relaxed", Severity.CRITICAL),
            ("balanced", Severity.HIGH),
            ("nitpicky", Severity.MEDIUM),
            ("brutal", Severity.LOW),
            ("High", Severity.HIGH),
        ],
    )
    def test_known_names(self, name, expected):
        assert resolve_threshold(name) == expected

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown threshold"):
            resolve_threshold("extreme")


class TestSlopScanConfig:
    def test_defaults(self):
        config = SlopScanConfig.load(None)
        assert config.threshold == "brutal"
        assert config.min_severity == Severity.LOW
        assert config.fail_severity == Severity.HIGH
        assert config.overrides.max_function_length == 50

    def test_missing_file_means_defaults(self, tmp_path: Path):
        config = SlopScanConfig.load(tmp_path / "nope.yaml")
        assert config == SlopScanConfig()

    def test_empty_file_means_defaults(self, tmp_path: Path):
        path = tmp_path / ".slopscan.yaml"
        path.write_text("")
        assert SlopScanConfig.load(path) == SlopScanConfig()

    def test_load_yaml(self, tmp_path: Path):
        path = tmp_path / ".slopscan.yaml"
        path.write_text(
            "threshold: nitpicky\n"
            "autofix: [no-any]\n"
            "ignore: ['vendor/', '*.min.js']\n"
            "overrides:\n"
            "  max_function_length: 30\n"
        )
        config = SlopScanConfig.load(path)
        assert config.min_severity == Severity.MEDIUM
        assert config.autofix == ["no-any"]
        assert config.ignore == ["vendor/", "*.min.js"]
        assert config.overrides.max_function_length == 30
        assert config.overrides.max_file_length == 400

    def test_unknown_fields_ignored(self, tmp_path: Path):
        path = tmp_path / ".slopscan.yaml"
        path.write_text("threshold: balanced\nfuture_option: true\n")
        assert SlopScanConfig.load(path).min_severity == Severity.HIGH

    def test_bad_threshold(self, tmp_path: Path):
        path = tmp_path / ".slopscan.yaml"
        path.write_text("threshold: extreme\n")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            SlopScanConfig.load(path)

    def test_bad_override(self):
        with pytest.raises(ConfigError):
            SlopScanConfig.from_mapping({"overrides": {"max_function_length": 0}})

    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / ".slopscan.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError, match="mapping"):
            SlopScanConfig.load(path)

    def test_malformed_yaml(self, tmp_path: Path):
        path = tmp_path / ".slopscan.yaml"
        path.write_text("threshold: [unclosed\n")
        with pytest.raises(ConfigError, match="Cannot read config"):
            SlopScanConfig.load(path)


class TestFindConfig:
    def test_found_in_root(self, tmp_path: Path):
        (tmp_path / ".slopscan.yml").write_text("threshold: relaxed\n")
        assert find_config(tmp_path) == tmp_path / ".slopscan.yml"

    def test_file_root_uses_parent(self, tmp_path: Path):
        (tmp_path / ".slopscan.yaml").write_text("")
        target = tmp_path / "a.ts"
        target.write_text("")
        assert find_config(target) == tmp_path / ".slopscan.yaml"

    def test_none_when_absent(self, tmp_path: Path):
        assert find_config(tmp_path) is None
