"""
Pydantic Schemas
================

Request/response schemas for API validation.
"""

from app.schemas.webhook import (
    RevenueCatEnvironment,
    RevenueCatEventType,
    SubscriptionEvent,
    WebhookAck,
    WebhookErrorResponse,
    WebhookHealthResponse,
)

__all__ = [
    "RevenueCatEnvironment",
    "RevenueCatEventType",
    "SubscriptionEvent",
    "WebhookAck",
    "WebhookErrorResponse",
    "WebhookHealthResponse",
]
