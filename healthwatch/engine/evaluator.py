"""Evaluator — fetches metrics for a rule set and turns them into findings."""

from __future__ import annotations

import asyncio
import time
from collections.abc import MutableMapping, Sequence

import structlog

from healthwatch.core.exceptions import FetchTimeoutError, MetricUnavailableError
from healthwatch.core.types import Finding, FindingKind, Metric, Report, Rule, Severity
from healthwatch.metrics.base import MetricSource
from healthwatch.metrics.registry import MetricRegistry

logger = structlog.get_logger(__name__)

# One slot per metric name; written only by that metric's fetch task.
FetchResult = Metric | MetricUnavailableError
FetchResults = MutableMapping[str, FetchResult]


class Evaluator:
    """Runs rules against fresh metric values.

    Fetching is split from assessment so the runner can observe the
    gathering and evaluating phases separately and can still build a
    partial report when a pass is aborted mid-gather.

    Usage::

        evaluator = Evaluator(fetch_timeout=5.0)
        report = await evaluator.evaluate(rules, registry)
    """

    def __init__(
        self,
        fetch_timeout: float = 5.0,
        retries: int = 0,
        backoff_base_secs: float = 0.5,
        backoff_cap_secs: float = 5.0,
    ) -> None:
        self._fetch_timeout = fetch_timeout
        self._retries = retries
        self._backoff_base_secs = backoff_base_secs
        self._backoff_cap_secs = backoff_cap_secs

    @property
    def fetch_timeout(self) -> float:
        return self._fetch_timeout

    # ── Gathering ───────────────────────────────────────────────

    async def gather(
        self,
        rules: Sequence[Rule],
        registry: MetricRegistry,
        results: FetchResults,
        deadline: float | None = None,
    ) -> None:
        """Fetch every metric the rules reference, concurrently.

        Args:
            rules: Rules whose metrics to fetch.
            registry: Where metric names resolve to sources.
            results: Filled in as each fetch completes.
            deadline: Event-loop time after which no retry is started.
        """
        names = [n for n in dict.fromkeys(r.metric_name for r in rules) if n not in results]
        async with asyncio.TaskGroup() as tg:
            for name in names:
                tg.create_task(self._collect(registry.get(name), results, deadline))

    async def _collect(
        self,
        source: MetricSource,
        results: FetchResults,
        deadline: float | None,
    ) -> None:
        results[source.name] = await self._fetch_with_retry(source, deadline)

    async def _fetch_with_retry(
        self,
        source: MetricSource,
        deadline: float | None,
    ) -> FetchResult:
        attempts = 1 + (self._retries if source.retryable else 0)
        delay = self._backoff_base_secs
        loop = asyncio.get_running_loop()

        outcome = await self._fetch_once(source)
        for attempt in range(1, attempts):
            if isinstance(outcome, Metric):
                break
            if deadline is not None and loop.time() + delay + self._fetch_timeout > deadline:
                logger.info("metric_retry_skipped", metric=source.name, reason="pass deadline")
                break
            logger.info(
                "metric_fetch_retry",
                metric=source.name,
                attempt=attempt,
                delay_secs=delay,
                reason=outcome.reason,
            )
            await asyncio.sleep(delay)
            delay = min(delay * 2, self._backoff_cap_secs)
            outcome = await self._fetch_once(source)
        return outcome

    async def _fetch_once(self, source: MetricSource) -> FetchResult:
        try:
            return await asyncio.wait_for(source.fetch(), self._fetch_timeout)
        except TimeoutError:
            error: MetricUnavailableError = FetchTimeoutError(
                source.name, f"timed out after {self._fetch_timeout:g}s"
            )
        except MetricUnavailableError as exc:
            error = exc
        logger.warning("metric_fetch_failed", metric=source.name, reason=error.reason)
        return error

    # ── Assessment ──────────────────────────────────────────────

    def assess(
        self,
        rules: Sequence[Rule],
        results: FetchResults,
        *,
        started_at: float,
        partial: bool = False,
    ) -> Report:
        """Build the report from fetched values, in rule declaration order.

        With *partial* set, rules whose metric never resolved are left out
        instead of being reported as unavailable.
        """
        findings: list[Finding] = []
        for rule in rules:
            outcome = results.get(rule.metric_name)
            if outcome is None:
                if partial:
                    continue
                outcome = MetricUnavailableError(rule.metric_name, "not collected")

            if isinstance(outcome, MetricUnavailableError):
                findings.append(_unavailable_finding(rule, outcome))
            elif rule.matches(outcome.value):
                finding = Finding(
                    rule_name=rule.name,
                    metric_name=rule.metric_name,
                    observed_value=outcome.value,
                    threshold=rule.threshold,
                    severity=rule.severity,
                    message=rule.render_message(outcome),
                )
                logger.info(
                    "rule_violated",
                    rule=rule.name,
                    value=outcome.value,
                    threshold=rule.threshold,
                    severity=rule.severity.name,
                )
                findings.append(finding)

        return Report(
            started_at=started_at,
            finished_at=time.time(),
            findings=tuple(findings),
            partial=partial,
        )

    async def evaluate(self, rules: Sequence[Rule], registry: MetricRegistry) -> Report:
        """Gather and assess in one step."""
        started_at = time.time()
        results: dict[str, FetchResult] = {}
        await self.gather(rules, registry, results)
        return self.assess(rules, results, started_at=started_at)


def _unavailable_finding(rule: Rule, error: MetricUnavailableError) -> Finding:
    return Finding(
        rule_name=rule.name,
        metric_name=rule.metric_name,
        kind=FindingKind.UNAVAILABLE,
        threshold=rule.threshold,
        severity=Severity.INFO,
        message=f"{rule.name}: metric {rule.metric_name} unavailable ({error.reason})",
    )
