"""Pure functions that render a Report for humans and machines."""

from __future__ import annotations

import datetime
import json
from typing import Any

from healthwatch.core.types import FindingKind, Report, Severity, exit_code_for

# ANSI colours keyed by severity.
_COLORS: dict[Severity, str] = {
    Severity.INFO: "\033[0;34m",     # blue
    Severity.WARNING: "\033[1;33m",  # yellow
    Severity.ALERT: "\033[0;31m",    # red
}
_GREEN = "\033[0;32m"
_RESET = "\033[0m"


def _iso(ts: float) -> str:
    return datetime.datetime.fromtimestamp(ts, datetime.UTC).strftime("%Y-%m-%d %H:%M:%S UTC")


def report_to_dict(report: Report) -> dict[str, Any]:
    """Machine-readable form with derived summary fields."""
    data = report.model_dump(mode="json")
    data["counts"] = report.counts
    data["exit_code"] = int(exit_code_for(report))
    for finding in data["findings"]:
        finding["severity"] = Severity(finding["severity"]).name
    return data


def report_to_json(report: Report) -> str:
    """Deterministic JSON: the same report always renders to the same bytes."""
    return json.dumps(report_to_dict(report), indent=2, sort_keys=True) + "\n"


def format_summary(report: Report) -> str:
    """One-line severity counts, e.g. ``alerts=1 warnings=0 info=2 (partial)``."""
    counts = report.counts
    line = f"alerts={counts['alert']} warnings={counts['warning']} info={counts['info']}"
    if report.partial:
        line += " (partial)"
    if report.failed:
        line += " (failed)"
    return line


def report_to_text(report: Report, color: bool = False) -> str:
    """Human-readable report, one line per finding plus a summary."""

    def paint(text: str, code: str) -> str:
        return f"{code}{text}{_RESET}" if color else text

    lines = [
        "System Health Report",
        "====================",
        f"Host: {report.hostname}",
        f"Generated: {_iso(report.finished_at)}",
        f"Pass: {report.pass_id}",
        "",
    ]

    if report.failed:
        lines.extend([paint(f"Pass FAILED: {report.error}", _COLORS[Severity.ALERT]), ""])
        if not report.findings:
            lines.append("No findings collected.")
    elif not report.findings:
        lines.append(paint("All checks within normal parameters.", _GREEN))
    for finding in report.findings:
        label = finding.severity.name
        if finding.kind is FindingKind.UNAVAILABLE:
            label = f"{label}/unavailable"
        lines.append(paint(f"[{label}] {finding.message}", _COLORS[finding.severity]))

    lines.extend(["", f"Summary: {format_summary(report)}"])
    return "\n".join(lines) + "\n"
