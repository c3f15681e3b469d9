"""File sink — the machine-parseable report, replaced on every pass."""

from __future__ import annotations

import asyncio

import structlog

from healthwatch.core.types import Report
from healthwatch.sinks.base import AlertSink
from healthwatch.sinks.formatters import report_to_json, report_to_text
from healthwatch.sinks.storage import ReportStore

logger = structlog.get_logger(__name__)


class ReportFileSink(AlertSink):
    """Writes the report through a ReportStore.

    If the file already holds exactly the rendered report nothing is done,
    so recording a report twice leaves byte-identical results. Otherwise the
    previous report is rotated out before the new one replaces it.
    """

    name = "file"

    def __init__(self, store: ReportStore, fmt: str = "json", backups: int = 3) -> None:
        if fmt not in ("json", "text"):
            raise ValueError(f"unsupported report format: {fmt!r}")
        self._store = store
        self._fmt = fmt
        self._backups = backups

    def render(self, report: Report) -> str:
        if self._fmt == "json":
            return report_to_json(report)
        return report_to_text(report)

    async def record(self, report: Report) -> None:
        content = self.render(report)
        await asyncio.to_thread(self._write, content)

    def _write(self, content: str) -> None:
        if self._store.read() == content:
            logger.debug("report_file_unchanged", path=str(self._store.path))
            return
        self._store.rotate(self._backups)
        self._store.replace(content)
        logger.debug("report_file_written", path=str(self._store.path))
