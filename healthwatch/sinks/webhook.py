"""Webhook sink — POSTs the JSON report to an HTTP endpoint."""

from __future__ import annotations

import aiohttp
import structlog

from healthwatch.core.config import WebhookSinkConfig
from healthwatch.core.exceptions import WriteError
from healthwatch.core.types import Report
from healthwatch.sinks.base import AlertSink
from healthwatch.sinks.formatters import report_to_dict

logger = structlog.get_logger(__name__)


class WebhookSink(AlertSink):
    """Delivers each distinct report once.

    The payload carries ``pass_id`` so a receiver can drop duplicates when a
    delivery is retried after an ambiguous failure. A pass that fails after
    delivery is sent again with ``failed`` set.
    """

    name = "webhook"

    def __init__(self, config: WebhookSinkConfig) -> None:
        self._url = config.url.get_secret_value()
        self._timeout = aiohttp.ClientTimeout(total=config.timeout_secs)
        self._session: aiohttp.ClientSession | None = None
        self._delivered: Report | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def record(self, report: Report) -> None:
        if report == self._delivered:
            return
        if not self._url:
            raise WriteError(self.name, "no webhook url configured")

        payload = report_to_dict(report)
        try:
            session = self._get_session()
            async with session.post(self._url, json=payload) as resp:
                if resp.status >= 300:
                    body = await resp.text()
                    logger.warning(
                        "webhook_send_failed",
                        status=resp.status,
                        body=body[:200],
                    )
                    raise WriteError(self.name, f"HTTP {resp.status}")
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise WriteError(self.name, f"{type(exc).__name__}: {exc}") from exc

        self._delivered = report

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
