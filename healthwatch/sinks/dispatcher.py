"""SinkDispatcher — fans a report out to every configured sink."""

from __future__ import annotations

from collections.abc import Collection

import structlog

from healthwatch.core.exceptions import WriteError
from healthwatch.core.types import Report
from healthwatch.sinks.base import AlertSink

logger = structlog.get_logger(__name__)


class SinkDispatcher:
    """Records reports to all sinks.

    - Every sink is attempted, whatever happened to the ones before it.
    - Each failure is logged with the sink name.
    - If any sink failed, one WriteError naming all failed sinks is raised
      after the others have been written.
    """

    def __init__(self, sinks: list[AlertSink] | None = None) -> None:
        self._sinks: list[AlertSink] = sinks or []

    @property
    def sinks(self) -> list[AlertSink]:
        return list(self._sinks)

    async def record(self, report: Report, exclude: Collection[str] = ()) -> None:
        """Record *report* to every sink whose name is not in *exclude*."""
        failures: list[WriteError] = []
        for sink in self._sinks:
            if sink.name in exclude:
                continue
            try:
                await sink.record(report)
            except WriteError as exc:
                failures.append(exc)
                logger.error("sink_write_failed", sink=sink.name, reason=exc.reason)
            except Exception as exc:
                failures.append(WriteError(sink.name, repr(exc)))
                logger.exception("sink_write_error", sink=sink.name)

        if failures:
            raise WriteError(
                ",".join(f.sink for f in failures),
                "; ".join(str(f) for f in failures),
            )

    async def close(self) -> None:
        for sink in self._sinks:
            try:
                await sink.close()
            except Exception:
                logger.exception("sink_close_error", sink=sink.name)
