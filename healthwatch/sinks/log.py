"""Log sink — one structured log event per finding."""

from __future__ import annotations

import structlog

from healthwatch.core.types import Report, Severity
from healthwatch.sinks.base import AlertSink

# Dedicated structured logger for finding records.
finding_logger = structlog.get_logger("healthwatch.findings")

_LEVELS: dict[Severity, str] = {
    Severity.INFO: "info",
    Severity.WARNING: "warning",
    Severity.ALERT: "error",
}


class LogSink(AlertSink):
    name = "log"

    def __init__(self) -> None:
        self._last_report: Report | None = None

    async def record(self, report: Report) -> None:
        if report == self._last_report:
            return
        for finding in report.findings:
            log = getattr(finding_logger, _LEVELS[finding.severity])
            log(
                "finding",
                pass_id=report.pass_id,
                rule=finding.rule_name,
                metric=finding.metric_name,
                kind=finding.kind.value,
                severity=finding.severity.name,
                value=finding.observed_value,
                threshold=finding.threshold,
                message=finding.message,
            )
        summary = finding_logger.error if report.failed else finding_logger.info
        summary(
            "report_summary",
            pass_id=report.pass_id,
            partial=report.partial,
            failed=report.failed,
            error=report.error,
            **report.counts,
        )
        self._last_report = report
