"""Tests for rule loading — validation, overrides, metric resolution."""

from __future__ import annotations

import pytest

from healthwatch.core.config import RuleConfig
from healthwatch.core.exceptions import ConfigError
from healthwatch.core.types import Comparator, Metric, Severity, Unit
from healthwatch.metrics.base import MetricSource
from healthwatch.metrics.registry import MetricRegistry
from healthwatch.rules.loader import load_rules, parse_overrides


# ── Helpers ─────────────────────────────────────────────────────


class StaticSource(MetricSource):
    def __init__(self, name: str) -> None:
        super().__init__(name, Unit.PERCENT)

    async def fetch(self) -> Metric:
        return self._metric(0)


def _registry(*names: str) -> MetricRegistry:
    registry = MetricRegistry()
    for name in names:
        registry.register(StaticSource(name))
    registry.freeze()
    return registry


def _defn(**kw: object) -> RuleConfig:
    defaults: dict[str, object] = {
        "name": "cpu_high",
        "metric": "cpu",
        "comparator": "GT",
        "threshold": 80,
        "severity": "ALERT",
    }
    defaults.update(kw)
    return RuleConfig(**defaults)  # type: ignore[arg-type]


# ── parse_overrides ─────────────────────────────────────────────


class TestParseOverrides:
    def test_pairs(self) -> None:
        assert parse_overrides(["cpu_high=90", "disk = 70.5"]) == {"cpu_high": 90.0, "disk": 70.5}

    def test_last_wins(self) -> None:
        assert parse_overrides(["a=1", "a=2"]) == {"a": 2.0}

    @pytest.mark.parametrize("bad", ["cpu_high", "=5", "cpu_high=abc", "cpu_high=nan"])
    def test_malformed(self, bad: str) -> None:
        with pytest.raises(ConfigError):
            parse_overrides([bad])


# ── load_rules ──────────────────────────────────────────────────


class TestLoadRules:
    def test_builds_rules_in_order(self) -> None:
        rules = load_rules(
            [
                _defn(name="b", metric="mem", severity="warning"),
                _defn(name="a", metric="cpu", comparator="ge"),
            ],
            _registry("cpu", "mem"),
        )
        assert [r.name for r in rules] == ["b", "a"]
        assert rules[0].severity == Severity.WARNING
        assert rules[1].comparator == Comparator.GE

    def test_zero_rules_rejected(self) -> None:
        with pytest.raises(ConfigError, match="no rules"):
            load_rules([], _registry("cpu"))

    def test_empty_registry_rejected(self) -> None:
        with pytest.raises(ConfigError, match="no metric sources"):
            load_rules([_defn()], _registry())

    def test_unknown_metric_rejected(self) -> None:
        with pytest.raises(ConfigError, match="unknown metric 'gpu'"):
            load_rules([_defn(metric="gpu")], _registry("cpu"))

    def test_bad_severity_names_rule(self) -> None:
        with pytest.raises(ConfigError, match="rule cpu_high"):
            load_rules([_defn(severity="CRITICAL")], _registry("cpu"))

    def test_bad_comparator_rejected(self) -> None:
        with pytest.raises(ConfigError):
            load_rules([_defn(comparator="NE")], _registry("cpu"))

    def test_non_finite_threshold_rejected(self) -> None:
        with pytest.raises(ConfigError):
            load_rules([_defn(threshold=float("inf"))], _registry("cpu"))

    def test_unrenderable_message_names_rule(self) -> None:
        pattern = r"rule cpu_high: message: .*unknown placeholder 'usage'"
        with pytest.raises(ConfigError, match=pattern):
            load_rules([_defn(message="CPU {usage} too high")], _registry("cpu"))

    def test_message_with_known_placeholders_accepted(self) -> None:
        rules = load_rules([_defn(message="{metric} at {value}{unit}")], _registry("cpu"))
        assert rules[0].message == "{metric} at {value}{unit}"

    def test_duplicate_names_rejected(self) -> None:
        with pytest.raises(ConfigError, match="defined twice"):
            load_rules([_defn(), _defn()], _registry("cpu"))


class TestOverrides:
    def test_override_replaces_threshold(self) -> None:
        rules = load_rules([_defn()], _registry("cpu"), {"cpu_high": 95})
        assert rules[0].threshold == 95
        assert rules[0].matches(96)
        assert not rules[0].matches(90)

    def test_override_for_unknown_rule_rejected(self) -> None:
        with pytest.raises(ConfigError, match="unknown rule"):
            load_rules([_defn()], _registry("cpu"), {"memory_high": 50})
