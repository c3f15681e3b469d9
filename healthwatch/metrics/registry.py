"""MetricRegistry — process-wide map of metric name to source."""

from __future__ import annotations

from collections.abc import Iterator

import structlog

from healthwatch.core.config import ProbesConfig
from healthwatch.core.exceptions import ConfigError
from healthwatch.metrics.base import MetricSource
from healthwatch.metrics.sources import (
    CpuUsageSource,
    DiskUsageSource,
    FailedUnitsSource,
    LoadPerCoreSource,
    MemoryUsageSource,
    PendingUpdatesSource,
    ProcessRunningSource,
    SecurityUpdatesSource,
    ServiceActiveSource,
    SwapUsageSource,
    TemperatureSource,
    ZombieProcessSource,
)
from healthwatch.probes.command import CommandRunner, SubprocessRunner

logger = structlog.get_logger(__name__)


class MetricRegistry:
    """Sources registered once at startup, read-only after ``freeze()``.

    Usage::

        registry = MetricRegistry()
        registry.register(CpuUsageSource(runner))
        registry.freeze()
        source = registry.get("cpu")
    """

    def __init__(self) -> None:
        self._sources: dict[str, MetricSource] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, source: MetricSource) -> None:
        if self._frozen:
            raise ConfigError(f"registry is frozen; cannot register {source.name!r}")
        if source.name in self._sources:
            raise ConfigError(f"metric {source.name!r} registered twice")
        self._sources[source.name] = source

    def freeze(self) -> None:
        self._frozen = True

    def get(self, name: str) -> MetricSource:
        try:
            return self._sources[name]
        except KeyError:
            raise ConfigError(f"unknown metric {name!r}") from None

    def names(self) -> list[str]:
        return list(self._sources)

    def __contains__(self, name: object) -> bool:
        return name in self._sources

    def __len__(self) -> int:
        return len(self._sources)

    def __iter__(self) -> Iterator[MetricSource]:
        return iter(self._sources.values())


def build_registry(
    config: ProbesConfig,
    runner: CommandRunner | None = None,
    fetch_timeout: float = 5.0,
) -> MetricRegistry:
    """Register the built-in sources plus configured disks, services and processes.

    Returns:
        A frozen registry.
    """
    runner = runner or SubprocessRunner()
    registry = MetricRegistry()

    registry.register(CpuUsageSource(runner, fetch_timeout))
    registry.register(MemoryUsageSource(runner, fetch_timeout))
    registry.register(SwapUsageSource(runner, fetch_timeout))
    registry.register(TemperatureSource(runner, fetch_timeout))
    registry.register(ZombieProcessSource(runner, fetch_timeout))
    registry.register(
        PendingUpdatesSource(runner, config.package_manager, fetch_timeout),
    )
    registry.register(
        SecurityUpdatesSource(runner, config.package_manager, fetch_timeout),
    )
    registry.register(FailedUnitsSource(runner, fetch_timeout))
    registry.register(LoadPerCoreSource(config.loadavg_path))

    for mount in config.disk_mounts:
        registry.register(DiskUsageSource(mount, runner, fetch_timeout))
    for service in config.services:
        registry.register(ServiceActiveSource(service, runner, fetch_timeout))
    for process in config.processes:
        registry.register(ProcessRunningSource(process, runner, fetch_timeout))

    for name in config.retryable_metrics:
        registry.get(name).retryable = True

    registry.freeze()
    logger.debug("metric_registry_built", metrics=registry.names())
    return registry
