"""Core module — config, types, exceptions, logging."""

from healthwatch.core.config import Settings, get_settings, load_settings, reset_settings
from healthwatch.core.exceptions import (
    ConfigError,
    FetchTimeoutError,
    HealthwatchError,
    MetricUnavailableError,
    PassTimeoutError,
    WriteError,
)
from healthwatch.core.logging import setup_logging
from healthwatch.core.types import (
    Comparator,
    ExitCode,
    Finding,
    FindingKind,
    Metric,
    PassOutcome,
    Report,
    Rule,
    RunState,
    Severity,
    Unit,
    exit_code_for,
)

__all__ = [
    "Comparator",
    "ConfigError",
    "ExitCode",
    "FetchTimeoutError",
    "Finding",
    "FindingKind",
    "HealthwatchError",
    "Metric",
    "MetricUnavailableError",
    "PassOutcome",
    "PassTimeoutError",
    "Report",
    "Rule",
    "RunState",
    "Settings",
    "Severity",
    "Unit",
    "WriteError",
    "exit_code_for",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
