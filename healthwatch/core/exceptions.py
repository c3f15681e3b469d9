"""Exception hierarchy for health checks."""

from __future__ import annotations


class HealthwatchError(Exception):
    """Base exception for all healthwatch errors."""


class ConfigError(HealthwatchError):
    """Settings or rule set are malformed — fatal before any pass runs."""


class MetricUnavailableError(HealthwatchError):
    """A metric source could not produce a value."""

    def __init__(self, metric_name: str, reason: str) -> None:
        super().__init__(f"{metric_name}: {reason}")
        self.metric_name = metric_name
        self.reason = reason


class FetchTimeoutError(MetricUnavailableError):
    """A metric fetch exceeded its deadline."""


class PassTimeoutError(HealthwatchError):
    """The whole evaluation pass exceeded its deadline."""


class WriteError(HealthwatchError):
    """An alert sink failed to persist a report."""

    def __init__(self, sink: str, reason: str) -> None:
        super().__init__(f"{sink}: {reason}")
        self.sink = sink
        self.reason = reason
