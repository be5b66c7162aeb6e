"""Unit tests for the payment events webhook client"""

import asyncio
import httpx
from unittest.mock import AsyncMock, patch
from agency_billing.infrastructure.clients.events import PAYMENT_CONFIRMED, EventsClient

WEBHOOK_URL = "http://hooks.test/events"


def _response(status_code: int) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("POST", WEBHOOK_URL))


def _client(max_retries: int = 3) -> EventsClient:
    client = EventsClient(webhook_url=WEBHOOK_URL)
    client.backoff_base = 0
    client.max_retries = max_retries
    return client


def test_disabled_client_sends_nothing():
    client = EventsClient(webhook_url="")
    with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
        assert asyncio.run(client.send_event({"event": PAYMENT_CONFIRMED})) is False
    mock_post.assert_not_called()


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
def test_send_event_retries_network_errors(mock_post: AsyncMock):
    mock_post.side_effect = [httpx.ConnectError("connection refused"), _response(202)]

    delivered = asyncio.run(_client().send_event({"event": PAYMENT_CONFIRMED}))

    assert delivered is True
    assert mock_post.call_count == 2
    assert mock_post.call_args.kwargs["json"] == {"event": PAYMENT_CONFIRMED}


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
def test_send_event_gives_up_without_raising(mock_post: AsyncMock):
    """Delivery failure is logged and reported, never raised"""
    mock_post.return_value = _response(503)

    delivered = asyncio.run(_client(max_retries=3).send_event({"event": PAYMENT_CONFIRMED}))

    assert delivered is False
    assert mock_post.call_count == 3
