"""Tests for report rendering — JSON, text, summary line."""

from __future__ import annotations

import json

from healthwatch.core.types import Finding, FindingKind, Report, Severity
from healthwatch.sinks.formatters import (
    format_summary,
    report_to_dict,
    report_to_json,
    report_to_text,
)


def _finding(**kw: object) -> Finding:
    defaults: dict[str, object] = {
        "rule_name": "cpu_high",
        "metric_name": "cpu",
        "observed_value": 95.0,
        "threshold": 80.0,
        "severity": Severity.ALERT,
        "message": "cpu_high: cpu is 95% (> 80%)",
        "timestamp": 1000.0,
    }
    defaults.update(kw)
    return Finding(**defaults)  # type: ignore[arg-type]


def _report(*findings: Finding, partial: bool = False) -> Report:
    return Report(
        pass_id="abc123",
        hostname="web01",
        started_at=1000.0,
        finished_at=1001.0,
        findings=findings,
        partial=partial,
    )


UNAVAILABLE = _finding(
    rule_name="disk",
    metric_name="disk:/",
    kind=FindingKind.UNAVAILABLE,
    observed_value=None,
    severity=Severity.INFO,
    message="disk: metric disk:/ unavailable (df not found)",
)


class TestReportToDict:
    def test_includes_counts_and_exit_code(self) -> None:
        data = report_to_dict(_report(_finding(), UNAVAILABLE))
        assert data["counts"] == {"info": 1, "warning": 0, "alert": 1}
        assert data["exit_code"] == 1
        assert data["pass_id"] == "abc123"
        assert data["hostname"] == "web01"

    def test_severity_rendered_by_name(self) -> None:
        data = report_to_dict(_report(_finding(), UNAVAILABLE))
        assert [f["severity"] for f in data["findings"]] == ["ALERT", "INFO"]
        assert data["findings"][1]["kind"] == "unavailable"
        assert data["findings"][1]["observed_value"] is None


class TestReportToJson:
    def test_deterministic(self) -> None:
        report = _report(_finding())
        assert report_to_json(report) == report_to_json(report)

    def test_parses_back(self) -> None:
        text = report_to_json(_report(_finding()))
        assert text.endswith("\n")
        assert json.loads(text)["findings"][0]["rule_name"] == "cpu_high"


class TestFormatSummary:
    def test_counts(self) -> None:
        summary = format_summary(_report(_finding(), UNAVAILABLE))
        assert summary == "alerts=1 warnings=0 info=1"

    def test_partial_marker(self) -> None:
        assert format_summary(_report(partial=True)).endswith("(partial)")


class TestReportToText:
    def test_clean_report(self) -> None:
        text = report_to_text(_report())
        assert "System Health Report" in text
        assert "Host: web01" in text
        assert "All checks within normal parameters." in text
        assert "Summary: alerts=0 warnings=0 info=0" in text

    def test_finding_lines(self) -> None:
        text = report_to_text(_report(_finding(), UNAVAILABLE))
        assert "[ALERT] cpu_high: cpu is 95% (> 80%)" in text
        assert "[INFO/unavailable] disk: metric disk:/ unavailable (df not found)" in text
        assert "All checks" not in text

    def test_no_color_by_default(self) -> None:
        assert "\033[" not in report_to_text(_report(_finding()))

    def test_color(self) -> None:
        assert "\033[0;31m[ALERT]" in report_to_text(_report(_finding()), color=True)


class TestFailedReport:
    def test_dict_reports_exit_three_and_error(self) -> None:
        report = _report(_finding(), partial=True).as_failed("pass exceeded 30s deadline")
        data = report_to_dict(report)
        assert data["exit_code"] == 3
        assert data["failed"] is True
        assert data["error"] == "pass exceeded 30s deadline"
        assert data["partial"] is True

    def test_completed_report_not_failed(self) -> None:
        data = report_to_dict(_report(_finding()))
        assert data["failed"] is False
        assert data["error"] is None

    def test_text_shows_failure(self) -> None:
        text = report_to_text(_report().as_failed("RuntimeError: bug"))
        assert "Pass FAILED: RuntimeError: bug" in text
        assert "No findings collected." in text
        assert "All checks within normal parameters." not in text
        assert text.rstrip().endswith("(failed)")
