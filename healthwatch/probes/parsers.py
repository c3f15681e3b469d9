"""Pure parsers for probe tool output.

Each parser takes the raw text a tool printed and returns a number, raising
``ValueError`` when the text does not look like what the tool should print.
Sources translate that ``ValueError`` into an unavailable metric.
"""

from __future__ import annotations

import re

_TOP_IDLE_RE = re.compile(r"Cpu\(s\).*?([0-9]+(?:[.,][0-9]+)?)\s*%?\s*id\b")
_SENSORS_LINE_RE = re.compile(r"(Core|Package|temp)")
_SENSORS_TEMP_RE = re.compile(r"([+-]?[0-9]+(?:\.[0-9]+)?)\s*°C")


def parse_top_cpu(output: str) -> float:
    """CPU busy percentage (100 - idle) from ``top -bn1``."""
    for line in output.splitlines():
        match = _TOP_IDLE_RE.search(line)
        if match:
            idle = float(match.group(1).replace(",", "."))
            return round(max(0.0, min(100.0, 100.0 - idle)), 1)
    raise ValueError("no Cpu(s) idle figure in top output")


def parse_free_row(output: str, row: str) -> tuple[int, int]:
    """(total, used) for the ``Mem`` or ``Swap`` row of ``free -b``."""
    prefix = f"{row}:"
    for line in output.splitlines():
        parts = line.split()
        if parts and parts[0] == prefix:
            if len(parts) < 3:
                raise ValueError(f"truncated {row} row in free output")
            return int(parts[1]), int(parts[2])
    raise ValueError(f"no {row} row in free output")


def usage_percent(total: int, used: int) -> float:
    if total <= 0:
        raise ValueError("total is zero")
    return round(used * 100.0 / total, 1)


def parse_df_usage(output: str) -> float:
    """Capacity percentage from ``df -P <mount>``."""
    lines = [line for line in output.splitlines() if line.strip()]
    if len(lines) < 2:
        raise ValueError("no filesystem row in df output")
    parts = lines[-1].split(None, 5)
    if len(parts) < 5 or not parts[4].endswith("%"):
        raise ValueError(f"unexpected df row: {lines[-1]!r}")
    return float(parts[4].rstrip("%"))


def parse_sensors_temperature(output: str) -> float:
    """First CPU temperature reading from ``sensors``."""
    for line in output.splitlines():
        if not _SENSORS_LINE_RE.search(line):
            continue
        match = _SENSORS_TEMP_RE.search(line)
        if match:
            return float(match.group(1))
    raise ValueError("no temperature reading in sensors output")


def parse_systemctl_show(output: str) -> dict[str, str]:
    """Key/value properties from ``systemctl show -p ...``."""
    props: dict[str, str] = {}
    for line in output.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            props[key.strip()] = value.strip()
    if "LoadState" not in props or "ActiveState" not in props:
        raise ValueError("LoadState/ActiveState missing from systemctl output")
    return props


def count_apt_upgrades(output: str) -> int:
    """Number of ``Inst`` lines in ``apt-get -s upgrade``."""
    return sum(1 for line in output.splitlines() if line.startswith("Inst "))


def count_apt_security_upgrades(output: str) -> int:
    """Number of ``Inst`` lines from a security archive in ``apt-get -s upgrade``."""
    return sum(
        1
        for line in output.splitlines()
        if line.startswith("Inst ") and "security" in line.lower()
    )


def count_yum_updates(output: str) -> int:
    """Number of package rows in ``yum/dnf check-update -q``."""
    count = 0
    for line in output.splitlines():
        if not line.strip() or line[0].isspace():
            continue
        if line.startswith(("Obsoleting", "Security:", "Last metadata")):
            continue
        if len(line.split()) >= 3:
            count += 1
    return count


def count_failed_units(output: str) -> int:
    """Rows of ``systemctl list-units --state=failed --no-legend --plain``."""
    count = 0
    for line in output.splitlines():
        parts = line.replace("\u25cf", " ").split()
        if not parts:
            continue
        if len(parts) < 4:
            raise ValueError(f"unexpected systemctl row: {line!r}")
        count += 1
    return count


def count_pids(output: str) -> int:
    """Number of process ids printed by ``pgrep``."""
    pids = [line.strip() for line in output.splitlines() if line.strip()]
    for pid in pids:
        if not pid.isdigit():
            raise ValueError(f"unexpected pgrep output: {pid!r}")
    return len(pids)


def parse_loadavg(text: str) -> float:
    """One-minute load average from ``/proc/loadavg``."""
    parts = text.split()
    if not parts:
        raise ValueError("empty loadavg")
    return float(parts[0])


def count_zombies(output: str) -> int:
    """Processes in state Z from ``ps -eo stat``."""
    lines = output.splitlines()
    if not lines or lines[0].strip() != "STAT":
        raise ValueError("unexpected ps output header")
    return sum(1 for line in lines[1:] if line.strip().startswith("Z"))
