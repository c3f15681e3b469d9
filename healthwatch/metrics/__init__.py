"""Metric sources and the registry that names them."""

from healthwatch.metrics.base import CommandMetricSource, MetricSource
from healthwatch.metrics.registry import MetricRegistry, build_registry
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

__all__ = [
    "CommandMetricSource",
    "CpuUsageSource",
    "DiskUsageSource",
    "FailedUnitsSource",
    "LoadPerCoreSource",
    "MemoryUsageSource",
    "MetricRegistry",
    "MetricSource",
    "PendingUpdatesSource",
    "ProcessRunningSource",
    "SecurityUpdatesSource",
    "ServiceActiveSource",
    "SwapUsageSource",
    "TemperatureSource",
    "ZombieProcessSource",
    "build_registry",
]
