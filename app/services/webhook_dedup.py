"""
Webhook Event Ledger
====================

Optional event-id dedup for RevenueCat deliveries, enabled with
``WEBHOOK_EVENT_DEDUP_ENABLED``.

Each event id is claimed with ``SET NX EX`` before processing, so two
concurrent deliveries of the same event cannot both reach the store.
Correctness does not depend on the ledger: the store adapter's
compare-then-write already makes redelivery a no-op. Redis failures
therefore fail open and the event is processed.
"""

import logging
from typing import Awaitable, Callable

from redis.asyncio import Redis

from app.services.cache import CacheKeys

logger = logging.getLogger(__name__)


class RedisEventLedger:
    """Bounded-retention record of claimed webhook event ids."""

    PROVIDER = "revenuecat"

    def __init__(
        self,
        redis_factory: Callable[[], Awaitable[Redis]],
        ttl_seconds: int,
    ):
        self._redis_factory = redis_factory
        self.ttl_seconds = ttl_seconds

    async def claim(self, event_id: str) -> bool:
        """
        Claim an event id for processing.

        Returns:
            True if this delivery should be processed, False if the id was
            already claimed within the retention window.
        """
        key = CacheKeys.webhook_event(self.PROVIDER, event_id)
        try:
            client = await self._redis_factory()
            claimed = await client.set(key, "1", ex=self.ttl_seconds, nx=True)
        except Exception as exc:
            logger.warning("Webhook ledger claim failed for event %s: %s", event_id, exc)
            return True

        return bool(claimed)

    async def release(self, event_id: str) -> None:
        """Drop a claim so a later redelivery is processed again."""
        key = CacheKeys.webhook_event(self.PROVIDER, event_id)
        try:
            client = await self._redis_factory()
            await client.delete(key)
        except Exception as exc:
            logger.warning("Webhook ledger release failed for event %s: %s", event_id, exc)
