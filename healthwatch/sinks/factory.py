"""Convenience factory for wiring the configured sinks."""

from __future__ import annotations

from healthwatch.core.config import SinksConfig
from healthwatch.sinks.base import AlertSink
from healthwatch.sinks.console import ConsoleSink
from healthwatch.sinks.dispatcher import SinkDispatcher
from healthwatch.sinks.file import ReportFileSink
from healthwatch.sinks.log import LogSink
from healthwatch.sinks.storage import ReportStore
from healthwatch.sinks.webhook import WebhookSink


def create_sinks(config: SinksConfig) -> SinkDispatcher:
    """Build a dispatcher over every enabled sink, console first."""
    sinks: list[AlertSink] = []

    if config.console.enabled:
        sinks.append(ConsoleSink(color=config.console.color))

    if config.file.enabled:
        sinks.append(
            ReportFileSink(
                ReportStore(config.file.path),
                fmt=config.file.format,
                backups=config.file.backups,
            )
        )

    if config.log.enabled:
        sinks.append(LogSink())

    if config.webhook.enabled:
        sinks.append(WebhookSink(config.webhook))

    return SinkDispatcher(sinks)
