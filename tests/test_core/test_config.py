"""Tests for healthwatch/core/config.py — YAML loading, defaults, errors."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from healthwatch.core.config import (
    LoggingConfig,
    ProbesConfig,
    RunnerConfig,
    Settings,
    SinksConfig,
    get_settings,
    load_settings,
    reset_settings,
)
from healthwatch.core.exceptions import ConfigError


@pytest.fixture(autouse=True)
def _clean_settings() -> None:
    """Reset the global settings cache before each test."""
    reset_settings()


class TestDefaults:
    """Settings should have sensible defaults when no YAML is provided."""

    def test_default_runner_config(self) -> None:
        cfg = RunnerConfig()
        assert cfg.pass_timeout_secs == 30.0
        assert cfg.fetch_timeout_secs == 5.0
        assert cfg.retries == 0

    def test_default_probes_config(self) -> None:
        cfg = ProbesConfig()
        assert cfg.disk_mounts == ["/"]
        assert cfg.services == []
        assert cfg.package_manager == "apt"

    def test_default_sinks(self) -> None:
        cfg = SinksConfig()
        assert cfg.console.enabled
        assert cfg.file.enabled
        assert cfg.file.format == "json"
        assert not cfg.log.enabled
        assert not cfg.webhook.enabled
        assert cfg.webhook.url.get_secret_value() == ""

    def test_default_logging_config(self) -> None:
        cfg = LoggingConfig()
        assert cfg.level == "INFO"
        assert cfg.format == "console"

    def test_default_rules_mirror_classic_thresholds(self) -> None:
        s = Settings()
        by_name = {r.name: r for r in s.rules}
        assert by_name["cpu_high"].threshold == 80
        assert by_name["cpu_high"].severity == "ALERT"
        assert by_name["root_disk_full"].metric == "disk:/"
        assert by_name["updates_pending"].severity == "WARNING"
        assert [r.name for r in s.rules][0] == "cpu_high"


class TestYamlLoading:
    """Settings should load correctly from YAML files."""

    def test_load_from_yaml(self, tmp_path: Path) -> None:
        config_data = {
            "runner": {"fetch_timeout_secs": 2, "retries": 3},
            "probes": {"disk_mounts": ["/", "/var"], "services": ["ssh"]},
            "sinks": {"file": {"path": str(tmp_path / "r.json"), "format": "text"}},
            "logging": {"level": "DEBUG", "format": "json"},
            "rules": [
                {"name": "cpu", "metric": "cpu", "threshold": 90, "severity": "ALERT"},
            ],
        }
        config_file = tmp_path / "healthwatch.yaml"
        config_file.write_text(yaml.dump(config_data))

        s = load_settings(config_file)
        assert s.runner.fetch_timeout_secs == 2.0
        assert s.runner.retries == 3
        assert s.probes.disk_mounts == ["/", "/var"]
        assert s.sinks.file.format == "text"
        assert s.logging.level == "DEBUG"
        assert len(s.rules) == 1
        assert s.rules[0].comparator == "GT"

    def test_empty_yaml_uses_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        s = load_settings(config_file)
        assert s.runner.pass_timeout_secs == 30.0
        assert len(s.rules) == 10

    def test_explicit_empty_rules_list_is_kept(self, tmp_path: Path) -> None:
        config_file = tmp_path / "norules.yaml"
        config_file.write_text("rules: []\n")
        s = load_settings(config_file)
        assert s.rules == []

    def test_missing_explicit_path_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "nope.yaml")

    def test_invalid_yaml_raises_config_error(self, tmp_path: Path) -> None:
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("runner: [unclosed\n")
        with pytest.raises(ConfigError):
            load_settings(config_file)

    def test_non_mapping_top_level_raises(self, tmp_path: Path) -> None:
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings(config_file)

    def test_validation_error_becomes_config_error(self, tmp_path: Path) -> None:
        config_file = tmp_path / "invalid.yaml"
        config_file.write_text("runner:\n  fetch_timeout_secs: -1\n")
        with pytest.raises(ConfigError):
            load_settings(config_file)

    def test_unknown_package_manager_rejected(self, tmp_path: Path) -> None:
        config_file = tmp_path / "pm.yaml"
        config_file.write_text("probes:\n  package_manager: pacman\n")
        with pytest.raises(ConfigError):
            load_settings(config_file)


class TestCaching:
    def test_get_settings_caches(self, tmp_path: Path) -> None:
        config_file = tmp_path / "c.yaml"
        config_file.write_text("logging:\n  level: WARNING\n")
        loaded = load_settings(config_file)
        assert get_settings() is loaded

    def test_reset_clears_cache(self, tmp_path: Path) -> None:
        config_file = tmp_path / "c.yaml"
        config_file.write_text("logging:\n  level: WARNING\n")
        load_settings(config_file)
        reset_settings()
        assert get_settings().logging.level == "INFO"
