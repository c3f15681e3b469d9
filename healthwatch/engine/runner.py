"""Runner — drives one evaluation pass through its states.

States::

    Idle -> Gathering -> Evaluating -> Reporting -> Done
    (any state) -> Failed

A failed pass still hands whatever findings were materialised to the sinks
(and, if they fail too, to the fallback console on stderr) before
reporting exit code 3.
"""

from __future__ import annotations

import asyncio
import sys
import time
from collections.abc import Sequence

import structlog

from healthwatch.core.exceptions import ConfigError, PassTimeoutError, WriteError
from healthwatch.core.types import (
    ExitCode,
    PassOutcome,
    Report,
    Rule,
    RunState,
    exit_code_for,
)
from healthwatch.engine.evaluator import Evaluator, FetchResult
from healthwatch.metrics.registry import MetricRegistry
from healthwatch.sinks.base import AlertSink
from healthwatch.sinks.console import ConsoleSink
from healthwatch.sinks.dispatcher import SinkDispatcher

logger = structlog.get_logger(__name__)


class Runner:
    """Orchestrates gather -> evaluate -> report for a fixed rule set.

    Usage::

        runner = Runner(rules, registry, dispatcher, evaluator)
        outcome = await runner.run_once()
        sys.exit(outcome.exit_code)
    """

    def __init__(
        self,
        rules: Sequence[Rule],
        registry: MetricRegistry,
        dispatcher: SinkDispatcher,
        evaluator: Evaluator | None = None,
        pass_timeout: float = 30.0,
        fallback: AlertSink | None = None,
    ) -> None:
        if not rules:
            raise ConfigError("no rules configured")
        if len(registry) == 0:
            raise ConfigError("no metric sources registered")
        self._rules = tuple(rules)
        self._registry = registry
        self._dispatcher = dispatcher
        self._evaluator = evaluator or Evaluator()
        self._pass_timeout = pass_timeout
        self._fallback = fallback or ConsoleSink(stream=sys.stderr, color=False)
        self._state = RunState.IDLE
        self._history: list[RunState] = [RunState.IDLE]
        self._last_outcome: PassOutcome | None = None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def history(self) -> list[RunState]:
        """States visited during the most recent pass, in order."""
        return list(self._history)

    @property
    def dispatcher(self) -> SinkDispatcher:
        return self._dispatcher

    @property
    def last_outcome(self) -> PassOutcome | None:
        return self._last_outcome

    def _transition(self, state: RunState) -> None:
        logger.debug("pass_state_changed", from_state=self._state.value, to_state=state.value)
        self._state = state
        self._history.append(state)

    # ── One pass ────────────────────────────────────────────────

    async def run_once(self) -> PassOutcome:
        """Run a single evaluation pass.

        Raises:
            asyncio.CancelledError: The pass was interrupted. Partial
                findings have been flushed and ``last_outcome`` is Failed.
        """
        self._state = RunState.IDLE
        self._history = [RunState.IDLE]
        self._last_outcome = None
        started_at = time.time()
        results: dict[str, FetchResult] = {}

        try:
            self._transition(RunState.GATHERING)
            deadline = asyncio.get_running_loop().time() + self._pass_timeout
            try:
                async with asyncio.timeout_at(deadline):
                    await self._evaluator.gather(self._rules, self._registry, results, deadline)
            except TimeoutError:
                raise PassTimeoutError(
                    f"pass exceeded {self._pass_timeout:g}s deadline"
                ) from None

            self._transition(RunState.EVALUATING)
            report = self._evaluator.assess(self._rules, results, started_at=started_at)
        except asyncio.CancelledError:
            logger.warning("pass_cancelled", state=self._state.value)
            await self._fail(results, started_at, "cancelled")
            raise
        except PassTimeoutError as exc:
            logger.error("pass_timeout", reason=str(exc), collected=len(results))
            return await self._fail(results, started_at, str(exc))
        except Exception as exc:
            logger.exception("pass_error", state=self._state.value)
            return await self._fail(results, started_at, _describe(exc))

        self._transition(RunState.REPORTING)
        try:
            await self._dispatcher.record(report)
        except WriteError as exc:
            logger.error("report_delivery_failed", sinks=exc.sink, reason=exc.reason)
            failed = report.as_failed(str(exc))
            await self._redeliver(failed, exclude=exc.sink.split(","))
            await self._record_fallback(failed)
            return self._finish_failed(failed, str(exc))
        except asyncio.CancelledError:
            failed = report.as_failed("cancelled")
            await self._record_fallback(failed)
            self._finish_failed(failed, "cancelled")
            raise

        self._transition(RunState.DONE)
        code = exit_code_for(report)
        self._last_outcome = PassOutcome(state=RunState.DONE, report=report, exit_code=code)
        logger.info(
            "pass_complete",
            pass_id=report.pass_id,
            exit_code=int(code),
            duration_secs=round(report.finished_at - report.started_at, 3),
            **report.counts,
        )
        return self._last_outcome

    async def _fail(
        self,
        results: dict[str, FetchResult],
        started_at: float,
        reason: str,
    ) -> PassOutcome:
        try:
            report = self._evaluator.assess(
                self._rules, results, started_at=started_at, partial=True
            )
        except Exception:
            logger.exception("partial_report_error")
            report = Report(started_at=started_at, partial=True)
        report = report.as_failed(reason)
        try:
            await self._dispatcher.record(report)
        except WriteError as exc:
            logger.error("partial_flush_failed", sinks=exc.sink, reason=exc.reason)
            await self._record_fallback(report)
        return self._finish_failed(report, reason)

    def _finish_failed(self, report: Report | None, reason: str) -> PassOutcome:
        self._transition(RunState.FAILED)
        self._last_outcome = PassOutcome(
            state=RunState.FAILED,
            report=report,
            exit_code=ExitCode.FAILED,
            error=reason,
        )
        return self._last_outcome

    async def _redeliver(self, report: Report, exclude: list[str]) -> None:
        """Replace what the healthy sinks hold with the failed report."""
        try:
            await self._dispatcher.record(report, exclude=exclude)
        except WriteError as exc:
            logger.error("failed_report_delivery_failed", sinks=exc.sink, reason=exc.reason)

    async def _record_fallback(self, report: Report) -> None:
        try:
            await self._fallback.record(report)
        except WriteError:
            logger.exception("fallback_write_failed")

    # ── Interruptible and periodic runs ─────────────────────────

    async def run_cancellable(self, stop_event: asyncio.Event) -> PassOutcome:
        """Run one pass, aborting it if *stop_event* is set meanwhile."""
        self._last_outcome = None
        pass_task = asyncio.create_task(self.run_once())
        stop_task = asyncio.create_task(stop_event.wait())
        try:
            done, _ = await asyncio.wait(
                {pass_task, stop_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            pass_task.cancel()
            await asyncio.gather(pass_task, return_exceptions=True)
            raise
        finally:
            stop_task.cancel()

        if pass_task not in done:
            logger.warning("pass_interrupted")
            pass_task.cancel()
            await asyncio.gather(pass_task, return_exceptions=True)

        if pass_task.cancelled():
            if self._last_outcome is not None:
                return self._last_outcome
            return PassOutcome(state=RunState.FAILED, exit_code=ExitCode.FAILED, error="cancelled")
        return pass_task.result()

    async def run_periodic(self, interval: float, stop_event: asyncio.Event) -> PassOutcome:
        """Repeat passes every *interval* seconds until *stop_event* is set.

        Returns:
            The outcome of the last pass.
        """
        while True:
            outcome = await self.run_cancellable(stop_event)
            if stop_event.is_set():
                return outcome
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except TimeoutError:
                continue
            return outcome


def _describe(exc: BaseException) -> str:
    if isinstance(exc, BaseExceptionGroup) and exc.exceptions:
        exc = exc.exceptions[0]
    return f"{type(exc).__name__}: {exc}"
