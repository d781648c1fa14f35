"""Unit tests for the notification webhook client"""

import asyncio
import httpx
from unittest.mock import AsyncMock, patch
from agency_ledger.infrastructure.clients.notifications import NotificationClient, dispatch_notification


def test_empty_webhook_url_disables_dispatch():
    client = NotificationClient(webhook_url="")
    with patch.object(NotificationClient, "send_event", new_callable=AsyncMock) as send:
        asyncio.run(dispatch_notification(client, {"event": "PAYMENT_RECORDED"}))
    send.assert_not_called()


def test_send_event_retries_then_succeeds():
    client = NotificationClient(webhook_url="http://hooks.test/events")
    client.max_retries = 3
    client.backoff_base = 0

    request = httpx.Request("POST", client.webhook_url)
    responses = [
        httpx.ConnectError("connection refused", request=request),
        httpx.Response(200, request=request),
    ]

    with patch("httpx.AsyncClient.post", new_callable=AsyncMock, side_effect=responses) as post:
        asyncio.run(client.send_event({"event": "PAYMENT_RECORDED"}))

    assert post.call_count == 2


def test_dispatch_swallows_delivery_failure():
    client = NotificationClient(webhook_url="http://hooks.test/events")
    client.max_retries = 2
    client.backoff_base = 0

    request = httpx.Request("POST", client.webhook_url)
    with patch(
        "httpx.AsyncClient.post",
        new_callable=AsyncMock,
        return_value=httpx.Response(503, request=request),
    ) as post:
        asyncio.run(dispatch_notification(client, {"event": "CHEQUE_RETURNED"}))

    assert post.call_count == 2
