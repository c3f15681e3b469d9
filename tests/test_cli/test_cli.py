"""Tests for the command-line entrypoint — parsing, wiring, exit codes."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Sequence
from pathlib import Path

import pytest
import structlog
import yaml

from healthwatch.cli import build_parser, build_runner, main
from healthwatch.core.config import Settings, reset_settings
from healthwatch.core.exceptions import ConfigError
from healthwatch.core.types import ExitCode
from healthwatch.probes.command import CommandResult, CommandRunner


# ── Helpers ─────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _isolate_globals() -> Iterator[None]:
    reset_settings()
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    reset_settings()
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


class TopRunner(CommandRunner):
    def __init__(self, idle: float) -> None:
        self._idle = idle

    async def run(self, argv: Sequence[str], timeout: float) -> CommandResult:
        out = f"%Cpu(s):  1.0 us,  1.0 sy,  0.0 ni, {self._idle:.1f} id\n"
        return CommandResult(argv=tuple(argv), returncode=0, stdout=out)


def _settings(**overrides: object) -> Settings:
    data: dict[str, object] = {
        "sinks": {"console": {"enabled": True, "color": False}, "file": {"enabled": False}},
        "rules": [
            {"name": "cpu_high", "metric": "cpu", "comparator": "GT", "threshold": 80, "severity": "ALERT"},
        ],
    }
    data.update(overrides)
    return Settings.model_validate(data)


def _write_config(tmp_path: Path, load: float, threshold: float = 100) -> Path:
    loadavg = tmp_path / "loadavg"
    loadavg.write_text(f"{load:.2f} 0.50 0.25 1/100 4242\n")
    config = {
        "probes": {"loadavg_path": str(loadavg)},
        "sinks": {
            "console": {"enabled": True, "color": False},
            "file": {"enabled": True, "path": str(tmp_path / "report.json")},
        },
        "rules": [
            {"name": "load_high", "metric": "load", "comparator": "GT", "threshold": threshold, "severity": "ALERT"},
        ],
    }
    path = tmp_path / "healthwatch.yaml"
    path.write_text(yaml.safe_dump(config))
    return path


def _exit_code(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    return int(excinfo.value.code or 0)


# ── Parser ──────────────────────────────────────────────────────


class TestParser:
    def test_defaults(self) -> None:
        args = build_parser().parse_args(["run"])
        assert args.config is None
        assert args.interval is None
        assert args.threshold_override is None

    def test_repeatable_overrides(self) -> None:
        args = build_parser().parse_args(
            ["run", "--threshold-override", "a=1", "--threshold-override", "b=2"]
        )
        assert args.threshold_override == ["a=1", "b=2"]

    def test_interval(self) -> None:
        assert build_parser().parse_args(["run", "--interval", "60"]).interval == 60.0

    @pytest.mark.parametrize("value", ["0", "-5", "soon"])
    def test_bad_interval_rejected(self, value: str) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["run", "--interval", value])

    def test_once_and_interval_exclusive(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["run", "--once", "--interval", "5"])

    def test_subcommand_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


# ── build_runner ────────────────────────────────────────────────


class TestBuildRunner:
    async def test_alert_pass(self, capsys: pytest.CaptureFixture[str]) -> None:
        runner = build_runner(_settings(), command_runner=TopRunner(idle=5.0))
        outcome = await runner.run_once()
        assert outcome.exit_code == ExitCode.ALERT
        assert "[ALERT] cpu_high: cpu is 95% (> 80%)" in capsys.readouterr().out

    async def test_override_applied(self) -> None:
        runner = build_runner(
            _settings(),
            overrides=["cpu_high=99"],
            command_runner=TopRunner(idle=5.0),
        )
        outcome = await runner.run_once()
        assert outcome.exit_code == ExitCode.CLEAN

    def test_unknown_metric_is_config_error(self) -> None:
        settings = _settings(
            rules=[{"name": "gpu_hot", "metric": "gpu", "threshold": 80}],
        )
        with pytest.raises(ConfigError, match="unknown metric"):
            build_runner(settings)

    def test_zero_rules_is_config_error(self) -> None:
        with pytest.raises(ConfigError, match="no rules"):
            build_runner(_settings(rules=[]))


# ── main ────────────────────────────────────────────────────────


class TestMain:
    def test_alert_exits_one(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        config = _write_config(tmp_path, load=512.0)
        assert _exit_code(["run", "--config", str(config)]) == 1
        assert "[ALERT] load_high" in capsys.readouterr().out
        report = json.loads((tmp_path / "report.json").read_text())
        assert report["exit_code"] == 1
        assert report["findings"][0]["rule_name"] == "load_high"

    def test_clean_exits_zero(self, tmp_path: Path) -> None:
        config = _write_config(tmp_path, load=0.0)
        assert _exit_code(["run", "--config", str(config), "--once"]) == 0

    def test_threshold_override(self, tmp_path: Path) -> None:
        config = _write_config(tmp_path, load=512.0)
        argv = ["run", "--config", str(config), "--threshold-override", "load_high=1e9"]
        assert _exit_code(argv) == 0

    def test_missing_config_exits_three(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert _exit_code(["run", "--config", str(tmp_path / "nope.yaml")]) == 3
        assert "configuration error" in capsys.readouterr().err

    def test_bad_override_exits_three(self, tmp_path: Path) -> None:
        config = _write_config(tmp_path, load=0.0)
        argv = ["run", "--config", str(config), "--threshold-override", "load_high"]
        assert _exit_code(argv) == 3

    def test_unwritable_report_exits_three(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        config = _write_config(tmp_path, load=0.0)
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        data = yaml.safe_load(config.read_text())
        data["sinks"]["file"]["path"] = str(blocker / "report.json")
        config.write_text(yaml.safe_dump(data))

        assert _exit_code(["run", "--config", str(config)]) == 3
        assert "pass failed" in capsys.readouterr().err
