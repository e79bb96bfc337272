"""
Webhooks API Endpoints
======================

Handles webhooks from RevenueCat.

Authentication:
    RevenueCat sends the configured authorization value in the
    ``Authorization`` header. It must equal ``Bearer <REVENUECAT_WEBHOOK_SECRET>``.
    Every delivery also carries an ``X-RevenueCat-Event`` header.

Retries:
    RevenueCat redelivers on any non-2xx. Authenticated, well-formed
    deliveries are always answered 200; see ``RevenueCatWebhookService``.
"""

import logging

from fastapi import APIRouter, Request

from app.config import settings
from app.dependencies import RevenueCatWebhook
from app.schemas.webhook import WebhookAck, WebhookErrorResponse, WebhookHealthResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/revenuecat",
    response_model=WebhookAck,
    responses={
        400: {"model": WebhookErrorResponse, "description": "Not a valid RevenueCat delivery"},
        401: {"model": WebhookErrorResponse, "description": "Missing or invalid authorization"},
        500: {"model": WebhookErrorResponse, "description": "Webhook secret not configured"},
    },
)
async def revenuecat_webhook(
    request: Request,
    service: RevenueCatWebhook,
) -> WebhookAck:
    """
    Handle RevenueCat webhook events and update the user's pro status.

    Events handled:
    - INITIAL_PURCHASE, RENEWAL, TRIAL_STARTED, TRIAL_CONVERTED,
      UNCANCELLATION, PRODUCT_CHANGE: pro
    - EXPIRATION, TRIAL_CANCELLED: free
    - CANCELLATION: free only once the paid period has lapsed
    - NON_RENEWING_PURCHASE: pro until its expiration
    - BILLING_ISSUE: no change (grace period)
    """
    header_name = settings.REVENUECAT_EVENT_HEADER
    body = await request.body()

    return await service.handle_delivery(
        authorization=request.headers.get("Authorization"),
        event_header=request.headers.get(header_name),
        raw_body=body,
        event_header_name=header_name,
    )


@router.get("/revenuecat", response_model=WebhookHealthResponse)
async def revenuecat_webhook_health() -> WebhookHealthResponse:
    """Health check reporting whether the webhook secret is configured."""
    return WebhookHealthResponse(webhook_configured=settings.webhook_configured)
