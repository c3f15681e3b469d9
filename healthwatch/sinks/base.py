"""Base class for report destinations."""

from __future__ import annotations

import abc

from healthwatch.core.types import Report


class AlertSink(abc.ABC):
    """A destination that durably records a Report.

    Recording the same report twice must leave the same end state as
    recording it once.
    """

    name: str = "sink"

    @abc.abstractmethod
    async def record(self, report: Report) -> None:
        """Persist or emit *report*.

        Raises:
            WriteError: The destination could not be written.
        """

    async def close(self) -> None:
        """Release resources (HTTP sessions, etc.)."""
