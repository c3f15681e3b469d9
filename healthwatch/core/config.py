"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError

from healthwatch.core.exceptions import ConfigError

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/healthwatch.yaml")


class RunnerConfig(BaseModel):
    """Pass scheduling, timeouts and retry policy."""

    pass_timeout_secs: float = Field(default=30.0, gt=0)
    fetch_timeout_secs: float = Field(default=5.0, gt=0)
    retries: int = Field(default=0, ge=0)
    backoff_base_secs: float = Field(default=0.5, ge=0)
    backoff_cap_secs: float = Field(default=5.0, ge=0)


class ProbesConfig(BaseModel):
    """Which probes to register and how to run them."""

    disk_mounts: list[str] = ["/"]
    services: list[str] = []
    processes: list[str] = []
    package_manager: Literal["apt", "yum", "dnf"] = "apt"
    loadavg_path: str = "/proc/loadavg"
    retryable_metrics: list[str] = []


class ConsoleSinkConfig(BaseModel):
    """Human-readable report on stdout."""

    enabled: bool = True
    color: bool = True


class FileSinkConfig(BaseModel):
    """Machine-parseable report file, replaced on every pass."""

    enabled: bool = True
    path: str = "/tmp/healthwatch_report.json"
    format: Literal["json", "text"] = "json"
    backups: int = Field(default=3, ge=0)


class LogSinkConfig(BaseModel):
    """Structured log event per finding."""

    enabled: bool = False


class WebhookSinkConfig(BaseModel):
    """HTTP endpoint receiving the JSON report."""

    enabled: bool = False
    url: SecretStr = SecretStr("")
    timeout_secs: float = Field(default=10.0, gt=0)


class SinksConfig(BaseModel):
    """Container for all sink configurations."""

    console: ConsoleSinkConfig = ConsoleSinkConfig()
    file: FileSinkConfig = FileSinkConfig()
    log: LogSinkConfig = LogSinkConfig()
    webhook: WebhookSinkConfig = WebhookSinkConfig()


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"


class RuleConfig(BaseModel):
    """Raw rule definition as written in YAML.

    Field validation happens when the rule loader builds ``Rule`` objects,
    so that errors can name the offending rule.
    """

    name: str
    metric: str
    comparator: str = "GT"
    threshold: float
    severity: str = "WARNING"
    message: str | None = None


def _default_rules() -> list[RuleConfig]:
    return [
        RuleConfig(name="cpu_high", metric="cpu", threshold=80, severity="ALERT"),
        RuleConfig(name="memory_high", metric="memory", threshold=80, severity="ALERT"),
        RuleConfig(name="swap_high", metric="swap", threshold=50, severity="WARNING"),
        RuleConfig(name="root_disk_full", metric="disk:/", threshold=85, severity="ALERT"),
        RuleConfig(name="temperature_high", metric="temperature", threshold=70, severity="ALERT"),
        RuleConfig(name="load_high", metric="load", threshold=100, severity="WARNING"),
        RuleConfig(name="zombies_present", metric="zombies", threshold=0, severity="ALERT"),
        RuleConfig(name="updates_pending", metric="updates", threshold=50, severity="WARNING"),
        RuleConfig(
            name="security_updates_pending",
            metric="security_updates",
            threshold=0,
            severity="WARNING",
        ),
        RuleConfig(
            name="failed_units_present",
            metric="failed_units",
            threshold=0,
            severity="WARNING",
        ),
    ]


class Settings(BaseModel):
    """Root settings container."""

    runner: RunnerConfig = RunnerConfig()
    probes: ProbesConfig = ProbesConfig()
    sinks: SinksConfig = SinksConfig()
    logging: LoggingConfig = LoggingConfig()
    rules: list[RuleConfig] = Field(default_factory=_default_rules)


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/healthwatch.yaml.
            An explicitly given path must exist.

    Returns:
        Parsed Settings instance.

    Raises:
        ConfigError: The file is unreadable, not YAML, or fails validation.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH
    if path and not config_path.exists():
        raise ConfigError(f"config file not found: {config_path}")

    data: dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path) as f:
                raw = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"cannot read {config_path}: {exc}") from exc
        if isinstance(raw, dict):
            data = raw
        elif raw is not None:
            raise ConfigError(f"{config_path}: top level must be a mapping")

    try:
        _settings = Settings(**data)
    except ValidationError as exc:
        raise ConfigError(f"{config_path}: {exc}") from exc
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
