"""Abstract metric sources — one named, read-only probe per metric."""

from __future__ import annotations

import abc
import math
from collections.abc import Sequence

from healthwatch.core.exceptions import MetricUnavailableError
from healthwatch.core.types import Metric, Unit
from healthwatch.probes.command import CommandResult, CommandRunner


class MetricSource(abc.ABC):
    """Base class for metric sources.

    Subclasses implement ``fetch()``. A source never returns a sentinel
    value for "no reading": it raises ``MetricUnavailableError`` instead.
    Sources must not change system state.
    """

    def __init__(self, name: str, unit: Unit, retryable: bool = False) -> None:
        self._name = name
        self._unit = unit
        self._retryable = retryable

    @property
    def name(self) -> str:
        return self._name

    @property
    def unit(self) -> Unit:
        return self._unit

    @property
    def retryable(self) -> bool:
        """Whether the evaluator may retry a failed fetch."""
        return self._retryable

    @retryable.setter
    def retryable(self, value: bool) -> None:
        self._retryable = value

    @abc.abstractmethod
    async def fetch(self) -> Metric:
        """Produce a fresh reading.

        Raises:
            MetricUnavailableError: No value could be produced.
        """

    def _metric(self, value: float) -> Metric:
        return Metric(name=self._name, value=float(value), unit=self._unit)

    def _unavailable(self, reason: str) -> MetricUnavailableError:
        return MetricUnavailableError(self._name, reason)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r})"


def require_finite(value: float) -> float:
    """Return *value*, raising ``ValueError`` for NaN or infinity."""
    if not math.isfinite(value):
        raise ValueError(f"non-finite value {value}")
    return value


class CommandMetricSource(MetricSource):
    """A source that runs one command and parses its output.

    Subclasses provide ``argv`` and ``parse()``; ``parse`` raises
    ``ValueError`` when output is not understood.
    """

    def __init__(
        self,
        name: str,
        unit: Unit,
        runner: CommandRunner,
        timeout: float = 5.0,
        retryable: bool = False,
    ) -> None:
        super().__init__(name, unit, retryable=retryable)
        self._runner = runner
        self._timeout = timeout

    @property
    @abc.abstractmethod
    def argv(self) -> Sequence[str]:
        """Command line of the probe."""

    @abc.abstractmethod
    def parse(self, result: CommandResult) -> float:
        """Turn command output into a metric value."""

    async def fetch(self) -> Metric:
        try:
            result = await self._runner.run(self.argv, self._timeout)
        except MetricUnavailableError as exc:
            # Re-key tool-level failures to this metric, keeping the subtype.
            raise type(exc)(self._name, exc.reason) from exc

        try:
            return self._metric(require_finite(self.parse(result)))
        except ValueError as exc:
            raise self._unavailable(f"cannot parse {self.argv[0]} output: {exc}") from exc

    def _require_ok(self, result: CommandResult) -> None:
        if not result.ok:
            detail = result.stderr.strip().splitlines()[:1]
            reason = f"{self.argv[0]} exited {result.returncode}"
            if detail:
                reason = f"{reason}: {detail[0]}"
            raise self._unavailable(reason)
