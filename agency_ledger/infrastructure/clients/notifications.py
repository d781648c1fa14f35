"""Notification webhook client with exponential backoff retry logic"""

import httpx
import asyncio
import logging
from typing import Dict, Any
from agency_ledger.config import settings
from agency_ledger.infrastructure.observability.metrics import (
    notification_latency_histogram,
    notification_failure_counter,
)

logger = logging.getLogger(__name__)


class NotificationClient:
    """Client for pushing back-office events (new payment, cheque returned, ...) to staff"""

    def __init__(self, webhook_url: str | None = None):
        self.webhook_url = settings.notification_webhook_url if webhook_url is None else webhook_url
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.timeout = settings.http_timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def send_event(self, payload: Dict[str, Any]) -> None:
        """
        Send one event to the notification webhook with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s (base * 2^(attempt-1))
        - Retries on HTTP errors and network failures
        - Re-raises the last error once retries are exhausted
        """
        attempt = 0
        async with httpx.AsyncClient() as client:
            while attempt < self.max_retries:
                try:
                    with notification_latency_histogram.time():
                        response = await client.post(
                            self.webhook_url,
                            json=payload,
                            timeout=self.timeout,
                        )
                        response.raise_for_status()
                        return

                except (httpx.HTTPStatusError, httpx.RequestError):
                    attempt += 1
                    notification_failure_counter.inc()

                    if attempt >= self.max_retries:
                        raise

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)


async def dispatch_notification(client: NotificationClient, payload: Dict[str, Any]) -> None:
    """Fire-and-forget wrapper: delivery problems are logged, never raised"""
    if not client.enabled:
        return
    try:
        await client.send_event(payload)
    except (httpx.HTTPStatusError, httpx.RequestError) as e:
        logger.error(
            f"Notification delivery failed: {e}",
            extra={"event": payload.get("event"), "attempts": client.max_retries},
        )
