"""Payment events webhook client with exponential backoff retry logic"""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from agency_billing.config import settings
from agency_billing.infrastructure.observability.metrics import webhook_latency_histogram, webhook_failure_counter

logger = logging.getLogger(__name__)

PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"
PAYMENT_GENERATED = "PAYMENT_GENERATED"


class EventsClient:
    """Client for notifying downstream services (reminders, notifications) of payment events"""

    def __init__(self, webhook_url: Optional[str] = None):
        self.webhook_url = webhook_url if webhook_url is not None else settings.events_webhook_url
        self.timeout = settings.http_timeout_seconds
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def send_event(self, payload: Dict[str, Any]) -> bool:
        """
        Deliver one event, retrying with exponential backoff.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s (base * 2^attempt)
        - Retries on 5xx errors and network failures
        - Gives up after max_retries; delivery failure never propagates

        Returns:
            True when the webhook accepted the event
        """
        if not self.enabled:
            return False

        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while attempt < self.max_retries:
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
                        return True

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    webhook_failure_counter.inc()

                    if attempt >= self.max_retries:
                        logger.error(
                            "Event delivery failed after %d attempts: %s",
                            attempt,
                            e,
                            extra={"event": payload.get("event")},
                        )
                        return False

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
        return False
