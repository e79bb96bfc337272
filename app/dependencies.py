"""
Common Dependencies
===================

Shared dependencies used across the application.
"""

from typing import Annotated, AsyncGenerator, Optional

from fastapi import Depends

from app.config import settings
from app.db.session import get_session_factory
from app.services.cache import get_redis
from app.services.entitlement_store import (
    EntitlementStoreAdapter,
    SessionScopedUserStore,
    UserStore,
)
from app.services.revenuecat import RevenueCatWebhookService
from app.services.webhook_dedup import RedisEventLedger


async def get_user_store() -> AsyncGenerator[UserStore, None]:
    """
    User store for one request.

    The database session is opened on first use and closed afterwards.
    """
    store = SessionScopedUserStore(get_session_factory)
    try:
        yield store
    finally:
        await store.close()


def get_event_ledger() -> Optional[RedisEventLedger]:
    """Event-id ledger, or None unless WEBHOOK_EVENT_DEDUP_ENABLED is set."""
    if not settings.WEBHOOK_EVENT_DEDUP_ENABLED:
        return None
    return RedisEventLedger(get_redis, settings.WEBHOOK_EVENT_DEDUP_TTL_SECONDS)


async def get_revenuecat_webhook_service(
    store: Annotated[UserStore, Depends(get_user_store)],
    event_ledger: Annotated[Optional[RedisEventLedger], Depends(get_event_ledger)],
) -> RevenueCatWebhookService:
    """Webhook service wired to the configured store, secret and ledger."""
    return RevenueCatWebhookService(
        store_adapter=EntitlementStoreAdapter(store),
        webhook_secret=settings.REVENUECAT_WEBHOOK_SECRET,
        event_ledger=event_ledger,
    )


RevenueCatWebhook = Annotated[
    RevenueCatWebhookService, Depends(get_revenuecat_webhook_service)
]
