"""Structured logging setup using structlog.

Diagnostics go to stderr. Stdout belongs to the console report, so that
``healthwatch run > report.txt`` captures the report and nothing else.
"""

from __future__ import annotations

import logging
import sys

import structlog

from healthwatch.core.config import get_settings
from healthwatch.core.exceptions import ConfigError

# Third-party loggers that are only interesting when debugging.
_NOISY_LOGGERS = ("asyncio", "aiohttp")


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ConfigError(f"unknown log level {name!r}")
    return level


def _renderer(fmt: str) -> structlog.types.Processor:
    if fmt == "json":
        return structlog.processors.JSONRenderer(sort_keys=True)
    if fmt == "console":
        return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    raise ConfigError(f"unknown log format {fmt!r}; expected 'console' or 'json'")


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Route structlog and stdlib logging through one stderr handler.

    Args:
        level: Log level override (e.g. "DEBUG"). Uses config if None.
        fmt: Renderer override ("json" or "console"). Uses config if None.

    Raises:
        ConfigError: Unknown level or format.
    """
    settings = get_settings()
    log_level = _resolve_level(level or settings.logging.level)
    renderer = _renderer(fmt or settings.logging.format)

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *pre_chain,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
