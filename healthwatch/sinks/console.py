"""Console sink — human-readable report on a text stream."""

from __future__ import annotations

import sys
from typing import TextIO

from healthwatch.core.exceptions import WriteError
from healthwatch.core.types import Report
from healthwatch.sinks.base import AlertSink
from healthwatch.sinks.formatters import report_to_text


class ConsoleSink(AlertSink):
    """Prints each report once; recording an identical report again is a no-op."""

    name = "console"

    def __init__(self, stream: TextIO | None = None, color: bool = True) -> None:
        self._stream = stream
        self._color = color
        self._last_report: Report | None = None

    @property
    def stream(self) -> TextIO:
        # Resolved lazily so pytest's capsys sees the output.
        return self._stream if self._stream is not None else sys.stdout

    async def record(self, report: Report) -> None:
        if report == self._last_report:
            return
        stream = self.stream
        try:
            color = self._color and stream.isatty()
            stream.write(report_to_text(report, color=color))
            stream.flush()
        except (OSError, ValueError) as exc:
            raise WriteError(self.name, str(exc)) from exc
        self._last_report = report
