"""Domain types for health checks — metrics, rules, findings, reports."""

from __future__ import annotations

import math
import socket
import time
import uuid
from enum import IntEnum, StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_MESSAGE = "{rule}: {metric} is {value}{unit} ({op} {threshold}{unit})"

# Every placeholder a rule message may use, with a representative value.
_MESSAGE_FIELDS: dict[str, str] = {
    "rule": "rule",
    "metric": "metric",
    "value": "0",
    "threshold": "0",
    "op": ">",
    "unit": "%",
}

_UNIT_SUFFIX: dict[str, str] = {
    "percent": "%",
    "celsius": "°C",
    "count": "",
    "bool": "",
}


class Unit(StrEnum):
    """Unit of a metric value."""

    PERCENT = "percent"
    CELSIUS = "celsius"
    COUNT = "count"
    BOOL = "bool"

    @property
    def suffix(self) -> str:
        return _UNIT_SUFFIX[self.value]


class Comparator(StrEnum):
    """Threshold comparison operator."""

    GT = "GT"
    GE = "GE"
    LT = "LT"
    EQ = "EQ"

    @property
    def symbol(self) -> str:
        return _COMPARATOR_SYMBOLS[self]

    def apply(self, value: float, threshold: float) -> bool:
        if self is Comparator.GT:
            return value > threshold
        if self is Comparator.GE:
            return value >= threshold
        if self is Comparator.LT:
            return value < threshold
        return value == threshold


_COMPARATOR_SYMBOLS: dict[Comparator, str] = {
    Comparator.GT: ">",
    Comparator.GE: ">=",
    Comparator.LT: "<",
    Comparator.EQ: "==",
}


class Severity(IntEnum):
    """Finding severity — ordered so comparisons work naturally."""

    INFO = 1
    WARNING = 2
    ALERT = 3


class FindingKind(StrEnum):
    """Why a finding exists."""

    VIOLATION = "violation"
    UNAVAILABLE = "unavailable"


class ExitCode(IntEnum):
    """Process exit status, precedence ALERT > WARNING > clean."""

    CLEAN = 0
    ALERT = 1
    WARNING = 2
    FAILED = 3


class RunState(StrEnum):
    """Runner pass states."""

    IDLE = "idle"
    GATHERING = "gathering"
    EVALUATING = "evaluating"
    REPORTING = "reporting"
    DONE = "done"
    FAILED = "failed"


class Metric(BaseModel):
    """A single observed system value."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: float
    unit: Unit
    timestamp: float = Field(default_factory=time.time)

    @field_validator("value")
    @classmethod
    def _finite_value(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("metric value must be finite")
        return v


class Rule(BaseModel):
    """A named threshold check against one metric."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    metric_name: str = Field(min_length=1)
    comparator: Comparator
    threshold: float
    severity: Severity
    message: str | None = None

    @field_validator("threshold")
    @classmethod
    def _finite_threshold(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("threshold must be finite")
        return v

    @field_validator("message")
    @classmethod
    def _valid_template(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            v.format(**_MESSAGE_FIELDS)
        except KeyError as exc:
            raise ValueError(
                f"unknown placeholder {exc} in message; expected one of "
                f"{', '.join('{' + k + '}' for k in _MESSAGE_FIELDS)}"
            ) from None
        except (IndexError, ValueError, AttributeError) as exc:
            raise ValueError(f"malformed message template {v!r}: {exc}") from None
        return v

    @field_validator("comparator", mode="before")
    @classmethod
    def _normalise_comparator(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("severity", mode="before")
    @classmethod
    def _normalise_severity(cls, v: object) -> object:
        # Config files spell severities by name; IntEnum wants values.
        if isinstance(v, str):
            try:
                return Severity[v.strip().upper()]
            except KeyError:
                raise ValueError(
                    f"unknown severity {v!r}; expected one of "
                    f"{', '.join(s.name for s in Severity)}"
                ) from None
        return v

    def matches(self, value: float) -> bool:
        """Return True if *value* violates this rule."""
        return self.comparator.apply(value, self.threshold)

    def render_message(self, metric: Metric) -> str:
        template = self.message or DEFAULT_MESSAGE
        return template.format(
            rule=self.name,
            metric=self.metric_name,
            value=_fmt_number(metric.value),
            threshold=_fmt_number(self.threshold),
            op=self.comparator.symbol,
            unit=metric.unit.suffix,
        )


def _fmt_number(value: float) -> str:
    if value == int(value):
        return str(int(value))
    return f"{value:.1f}"


class Finding(BaseModel):
    """A single rule violation or unavailability notice."""

    model_config = ConfigDict(frozen=True)

    rule_name: str
    metric_name: str
    kind: FindingKind = FindingKind.VIOLATION
    observed_value: float | None = None
    threshold: float
    severity: Severity
    message: str
    timestamp: float = Field(default_factory=time.time)


class Report(BaseModel):
    """All findings from one evaluation pass.

    Counts and the aggregate severity are derived from ``findings``; nothing
    is accumulated separately. A report from a failed pass carries
    ``failed`` and the ``error`` that ended it, and maps to exit code 3.
    """

    model_config = ConfigDict(frozen=True)

    pass_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    hostname: str = Field(default_factory=socket.gethostname)
    started_at: float = Field(default_factory=time.time)
    finished_at: float = Field(default_factory=time.time)
    findings: tuple[Finding, ...] = ()
    partial: bool = False
    failed: bool = False
    error: str | None = None

    @property
    def counts(self) -> dict[str, int]:
        counts = {s.name.lower(): 0 for s in Severity}
        for finding in self.findings:
            counts[finding.severity.name.lower()] += 1
        return counts

    @property
    def highest_severity(self) -> Severity | None:
        if not self.findings:
            return None
        return max(f.severity for f in self.findings)

    @property
    def is_clean(self) -> bool:
        return exit_code_for(self) == ExitCode.CLEAN

    def as_failed(self, reason: str) -> Report:
        """Copy of this report recording that its pass failed."""
        return self.model_copy(update={"failed": True, "error": reason})


class PassOutcome(BaseModel):
    """Result of one Runner pass."""

    model_config = ConfigDict(frozen=True)

    state: RunState
    report: Report | None = None
    exit_code: ExitCode
    error: str | None = None


def exit_code_for(report: Report) -> ExitCode:
    """Map a report to its exit code.

    INFO findings (including unavailable metrics) never fail the run.
    """
    if report.failed:
        return ExitCode.FAILED
    highest = report.highest_severity
    if highest == Severity.ALERT:
        return ExitCode.ALERT
    if highest == Severity.WARNING:
        return ExitCode.WARNING
    return ExitCode.CLEAN
