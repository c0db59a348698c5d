"""Change notification webhook client with exponential backoff retry logic"""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from ledgerdesk.config import settings
from ledgerdesk.infrastructure.observability.metrics import webhook_failure_counter, webhook_latency_histogram

logger = logging.getLogger(__name__)

RECORD_CHANGED = "RECORD_CHANGED"


class ChangeNotifier:
    """Tells other sessions that a record changed so they re-fetch it"""

    def __init__(self, webhook_url: Optional[str] = None):
        self.webhook_url = webhook_url or settings.change_webhook_url
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.timeout = settings.http_timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def publish(
        self,
        collection: str,
        record_id: Optional[int],
        operation: str,
        owner_id: Optional[str],
    ) -> None:
        """Send a RECORD_CHANGED event; no-op when no webhook is configured"""
        if not self.enabled:
            return
        await self.send_event(
            {
                "event": RECORD_CHANGED,
                "collection": collection,
                "record_id": record_id,
                "operation": operation,
                "owner_id": owner_id,
            }
        )

    async def send_event(self, payload: Dict[str, Any]) -> None:
        """
        Deliver an event with retry logic.

        Retry strategy:
        - Exponential backoff: base * 2^(attempt-1)
        - Retries on HTTP status errors and network failures
        - Tracks latency histogram and failure counter
        """
        attempt = 0
        async with httpx.AsyncClient() as client:
            while attempt < self.max_retries:
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(
                            self.webhook_url,
                            json=payload,
                            timeout=self.timeout,
                        )
                        response.raise_for_status()
                        return

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    webhook_failure_counter.inc()
                    logger.warning(
                        f"Change notification failed: {e}",
                        extra={"attempt": attempt, "record_id": payload.get("record_id")},
                    )

                    if attempt >= self.max_retries:
                        raise

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
