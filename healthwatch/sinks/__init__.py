"""Report destinations — console, file, log, webhook."""

from healthwatch.sinks.base import AlertSink
from healthwatch.sinks.console import ConsoleSink
from healthwatch.sinks.dispatcher import SinkDispatcher
from healthwatch.sinks.factory import create_sinks
from healthwatch.sinks.file import ReportFileSink
from healthwatch.sinks.formatters import (
    format_summary,
    report_to_dict,
    report_to_json,
    report_to_text,
)
from healthwatch.sinks.log import LogSink
from healthwatch.sinks.storage import ReportStore
from healthwatch.sinks.webhook import WebhookSink

__all__ = [
    "AlertSink",
    "ConsoleSink",
    "LogSink",
    "ReportFileSink",
    "ReportStore",
    "SinkDispatcher",
    "WebhookSink",
    "create_sinks",
    "format_summary",
    "report_to_dict",
    "report_to_json",
    "report_to_text",
]
