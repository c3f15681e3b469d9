"""Concrete metric sources for host health checks."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Sequence

from healthwatch.core.types import Metric, Unit
from healthwatch.metrics.base import CommandMetricSource, MetricSource, require_finite
from healthwatch.probes.command import CommandResult, CommandRunner
from healthwatch.probes.parsers import (
    count_apt_security_upgrades,
    count_apt_upgrades,
    count_failed_units,
    count_pids,
    count_yum_updates,
    count_zombies,
    parse_df_usage,
    parse_free_row,
    parse_loadavg,
    parse_sensors_temperature,
    parse_systemctl_show,
    parse_top_cpu,
    usage_percent,
)


class CpuUsageSource(CommandMetricSource):
    """Busy CPU percentage (``cpu``)."""

    def __init__(self, runner: CommandRunner, timeout: float = 5.0) -> None:
        super().__init__("cpu", Unit.PERCENT, runner, timeout)

    @property
    def argv(self) -> Sequence[str]:
        return ("top", "-bn1")

    def parse(self, result: CommandResult) -> float:
        self._require_ok(result)
        return parse_top_cpu(result.stdout)


class MemoryUsageSource(CommandMetricSource):
    """Used memory percentage (``memory``)."""

    def __init__(self, runner: CommandRunner, timeout: float = 5.0) -> None:
        super().__init__("memory", Unit.PERCENT, runner, timeout)

    @property
    def argv(self) -> Sequence[str]:
        return ("free", "-b")

    def parse(self, result: CommandResult) -> float:
        self._require_ok(result)
        total, used = parse_free_row(result.stdout, "Mem")
        return usage_percent(total, used)


class SwapUsageSource(CommandMetricSource):
    """Used swap percentage (``swap``); unavailable when no swap exists."""

    def __init__(self, runner: CommandRunner, timeout: float = 5.0) -> None:
        super().__init__("swap", Unit.PERCENT, runner, timeout)

    @property
    def argv(self) -> Sequence[str]:
        return ("free", "-b")

    def parse(self, result: CommandResult) -> float:
        self._require_ok(result)
        total, used = parse_free_row(result.stdout, "Swap")
        if total == 0:
            raise self._unavailable("no swap configured")
        return usage_percent(total, used)


class DiskUsageSource(CommandMetricSource):
    """Capacity percentage of one mount point (``disk:<mount>``)."""

    def __init__(self, mount: str, runner: CommandRunner, timeout: float = 5.0) -> None:
        super().__init__(f"disk:{mount}", Unit.PERCENT, runner, timeout)
        self._mount = mount

    @property
    def mount(self) -> str:
        return self._mount

    @property
    def argv(self) -> Sequence[str]:
        return ("df", "-P", self._mount)

    def parse(self, result: CommandResult) -> float:
        self._require_ok(result)
        return parse_df_usage(result.stdout)


class TemperatureSource(CommandMetricSource):
    """First CPU temperature reported by lm-sensors (``temperature``)."""

    def __init__(self, runner: CommandRunner, timeout: float = 5.0) -> None:
        super().__init__("temperature", Unit.CELSIUS, runner, timeout)

    @property
    def argv(self) -> Sequence[str]:
        return ("sensors",)

    def parse(self, result: CommandResult) -> float:
        self._require_ok(result)
        try:
            return parse_sensors_temperature(result.stdout)
        except ValueError:
            raise self._unavailable("no temperature sensor found") from None


class ServiceActiveSource(CommandMetricSource):
    """Whether a systemd unit is active (``service:<unit>``), 1.0 or 0.0."""

    def __init__(self, service: str, runner: CommandRunner, timeout: float = 5.0) -> None:
        super().__init__(f"service:{service}", Unit.BOOL, runner, timeout)
        self._service = service

    @property
    def service(self) -> str:
        return self._service

    @property
    def argv(self) -> Sequence[str]:
        return ("systemctl", "show", "-p", "LoadState", "-p", "ActiveState", self._service)

    def parse(self, result: CommandResult) -> float:
        self._require_ok(result)
        props = parse_systemctl_show(result.stdout)
        if props["LoadState"] == "not-found":
            raise self._unavailable(f"service {self._service} is not installed")
        return 1.0 if props["ActiveState"] == "active" else 0.0


class PendingUpdatesSource(CommandMetricSource):
    """Number of packages with pending updates (``updates``)."""

    metric_name = "updates"

    def __init__(
        self,
        runner: CommandRunner,
        package_manager: str = "apt",
        timeout: float = 5.0,
    ) -> None:
        super().__init__(self.metric_name, Unit.COUNT, runner, timeout)
        self._package_manager = package_manager

    @property
    def argv(self) -> Sequence[str]:
        if self._package_manager == "apt":
            return ("apt-get", "-s", "upgrade")
        return (self._package_manager, "check-update", "-q")

    def _count_apt(self, output: str) -> int:
        return count_apt_upgrades(output)

    def parse(self, result: CommandResult) -> float:
        if self._package_manager == "apt":
            self._require_ok(result)
            return self._count_apt(result.stdout)
        # check-update exits 100 when updates are available.
        if result.returncode not in (0, 100):
            self._require_ok(result)
        return count_yum_updates(result.stdout)


class SecurityUpdatesSource(PendingUpdatesSource):
    """Number of pending security updates (``security_updates``)."""

    metric_name = "security_updates"

    @property
    def argv(self) -> Sequence[str]:
        if self._package_manager == "apt":
            return ("apt-get", "-s", "upgrade")
        return (self._package_manager, "check-update", "--security", "-q")

    def _count_apt(self, output: str) -> int:
        return count_apt_security_upgrades(output)


class FailedUnitsSource(CommandMetricSource):
    """Number of systemd units in the failed state (``failed_units``)."""

    def __init__(self, runner: CommandRunner, timeout: float = 5.0) -> None:
        super().__init__("failed_units", Unit.COUNT, runner, timeout)

    @property
    def argv(self) -> Sequence[str]:
        return ("systemctl", "list-units", "--state=failed", "--no-legend", "--plain")

    def parse(self, result: CommandResult) -> float:
        self._require_ok(result)
        return count_failed_units(result.stdout)


class ProcessRunningSource(CommandMetricSource):
    """Whether ``pgrep -x <name>`` finds a process (``process:<name>``), 1.0 or 0.0."""

    def __init__(self, process: str, runner: CommandRunner, timeout: float = 5.0) -> None:
        super().__init__(f"process:{process}", Unit.BOOL, runner, timeout)
        self._process = process

    @property
    def process(self) -> str:
        return self._process

    @property
    def argv(self) -> Sequence[str]:
        return ("pgrep", "-x", self._process)

    def parse(self, result: CommandResult) -> float:
        # pgrep exits 1 when nothing matched.
        if result.returncode == 1:
            return 0.0
        self._require_ok(result)
        return 1.0 if count_pids(result.stdout) else 0.0


class ZombieProcessSource(CommandMetricSource):
    """Number of zombie processes (``zombies``)."""

    def __init__(self, runner: CommandRunner, timeout: float = 5.0) -> None:
        super().__init__("zombies", Unit.COUNT, runner, timeout)

    @property
    def argv(self) -> Sequence[str]:
        return ("ps", "-eo", "stat")

    def parse(self, result: CommandResult) -> float:
        self._require_ok(result)
        return count_zombies(result.stdout)


class LoadPerCoreSource(MetricSource):
    """One-minute load average per core, as a percentage of one core (``load``).

    100 means every core has one runnable task on average.
    """

    def __init__(
        self,
        path: str = "/proc/loadavg",
        cpu_count: Callable[[], int | None] = os.cpu_count,
    ) -> None:
        super().__init__("load", Unit.PERCENT)
        self._path = path
        self._cpu_count = cpu_count

    async def fetch(self) -> Metric:
        try:
            text = await asyncio.to_thread(_read_text, self._path)
        except OSError as exc:
            raise self._unavailable(f"cannot read {self._path}: {exc.strerror or exc}") from exc

        cores = self._cpu_count()
        if not cores:
            raise self._unavailable("cpu count unknown")
        try:
            load = require_finite(parse_loadavg(text))
            return self._metric(round(load / cores * 100.0, 1))
        except ValueError as exc:
            raise self._unavailable(f"cannot parse {self._path}: {exc}") from exc


def _read_text(path: str) -> str:
    with open(path) as f:
        return f.read()
