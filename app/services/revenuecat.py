"""
RevenueCat Webhook Service
==========================

Processes one RevenueCat webhook delivery end to end:

    Received -> Authenticated -> Decoded -> Mapped -> Applied | Rejected | Faulted

Acknowledgment policy:
    RevenueCat retries every non-2xx response. Only failures that a retry
    can never fix on its own *and* that the operator must see are raised
    as HTTP errors: missing secret (500), bad credentials (401), and
    deliveries that are not RevenueCat webhooks at all (400). Once a
    delivery is authenticated and well-formed, every outcome, including
    unknown users, unknown event types and storage faults, is
    acknowledged with 200 and ``success`` in the body.
"""

import logging
from typing import Callable, Optional

from app.core.errors import (
    AuthenticationError,
    BadRequestError,
    ConfigurationError,
    ErrorCodes,
    InvalidEventShape,
    MalformedPayload,
    StorageFault,
    UnknownSubject,
    UnrecognizedEventType,
)
from app.core.observability import record_webhook_attributes
from app.core.security import verify_webhook_signature
from app.schemas.webhook import SubscriptionEvent, WebhookAck
from app.services.entitlement_store import EntitlementStoreAdapter
from app.services.entitlements import EntitlementAction, map_event_to_entitlement
from app.services.event_decoder import decode_event
from app.services.webhook_dedup import RedisEventLedger
from app.utils.helpers import now_millis

logger = logging.getLogger(__name__)


class RevenueCatWebhookService:
    """Service for RevenueCat webhook deliveries."""

    def __init__(
        self,
        store_adapter: EntitlementStoreAdapter,
        webhook_secret: str,
        event_ledger: Optional[RedisEventLedger] = None,
        clock: Callable[[], int] = now_millis,
    ):
        self.store_adapter = store_adapter
        self.webhook_secret = webhook_secret
        self.event_ledger = event_ledger
        self.clock = clock

    # -------------------------------------------------------------------------
    # Delivery gates (may raise HTTP errors)
    # -------------------------------------------------------------------------

    def authenticate(self, authorization: Optional[str]) -> None:
        """Check the shared secret is provisioned and the header matches it."""
        if not self.webhook_secret:
            logger.error("REVENUECAT_WEBHOOK_SECRET not configured")
            raise ConfigurationError()

        if not authorization:
            logger.warning("RevenueCat webhook received without Authorization header")
            raise AuthenticationError(
                error="Missing Authorization header",
                code=ErrorCodes.WEBHOOK_MISSING_AUTH,
            )

        if not verify_webhook_signature(authorization, self.webhook_secret):
            logger.warning("RevenueCat webhook signature verification failed")
            raise AuthenticationError(
                error="Invalid webhook signature",
                code=ErrorCodes.WEBHOOK_INVALID_SIGNATURE,
            )

    @staticmethod
    def require_event_header(event_header: Optional[str], header_name: str) -> None:
        """Genuine deliveries always carry the RevenueCat event marker header."""
        if not event_header or not event_header.strip():
            logger.warning("RevenueCat webhook missing %s header", header_name)
            raise BadRequestError(
                error=f"Missing {header_name} header",
                code=ErrorCodes.WEBHOOK_MISSING_EVENT_HEADER,
            )

    @staticmethod
    def decode(raw_body: bytes) -> SubscriptionEvent:
        """Decode the body, converting decoder failures to 400s."""
        try:
            return decode_event(raw_body)
        except MalformedPayload as exc:
            logger.error("Failed to parse RevenueCat webhook body: %s", exc)
            raise BadRequestError(
                error="Invalid JSON payload",
                code=ErrorCodes.WEBHOOK_INVALID_PAYLOAD,
            ) from exc
        except InvalidEventShape as exc:
            logger.error("Invalid RevenueCat event structure: %s", exc)
            raise BadRequestError(
                error="Invalid event structure",
                code=ErrorCodes.WEBHOOK_INVALID_EVENT,
                message=str(exc),
            ) from exc

    # -------------------------------------------------------------------------
    # Processing (always acknowledged)
    # -------------------------------------------------------------------------

    async def process_event(self, event: SubscriptionEvent) -> WebhookAck:
        """
        Map and apply an authenticated, decoded event.

        Never raises; every failure becomes ``success=False``.
        """
        logger.info(
            "Received RevenueCat webhook: type=%s event_id=%s app_user_id=%s product=%s environment=%s",
            event.event_type,
            event.event_id,
            event.app_user_id,
            event.product_id,
            event.environment.value if event.environment else None,
        )

        if self.event_ledger is not None and event.event_id:
            if not await self.event_ledger.claim(event.event_id):
                logger.info("Duplicate RevenueCat event %s, skipping", event.event_id)
                return WebhookAck(success=True, message="Duplicate event ignored")

        try:
            ack = await self._apply(event)
        except UnknownSubject:
            ack = WebhookAck(success=False, message="User not found")
        except UnrecognizedEventType as exc:
            logger.warning("Unknown RevenueCat event type: %s", exc.event_type)
            ack = WebhookAck(success=False, message=str(exc))
        except StorageFault as exc:
            logger.error(
                "Storage failure processing RevenueCat event %s: %s",
                event.event_id,
                exc,
            )
            await self._release_claim(event)
            ack = WebhookAck(success=False, message="Internal server error")
        except Exception:
            logger.exception(
                "Error processing RevenueCat webhook: type=%s event_id=%s",
                event.event_type,
                event.event_id,
            )
            await self._release_claim(event)
            ack = WebhookAck(success=False, message="Internal server error")
        except BaseException:
            # Cancelled before any ack was sent; the redelivery must be processed
            logger.warning(
                "RevenueCat event %s interrupted, releasing ledger claim",
                event.event_id,
            )
            await self._release_claim(event)
            raise

        if ack.success:
            logger.info("RevenueCat webhook processed successfully: %s", ack.message)
        else:
            logger.error("RevenueCat webhook processing failed: %s", ack.message)

        record_webhook_attributes(
            event_type=event.event_type,
            outcome="applied" if ack.success else "failed",
            event_id=event.event_id,
        )
        return ack

    async def _apply(self, event: SubscriptionEvent) -> WebhookAck:
        decision = map_event_to_entitlement(
            event.event_type,
            event.expiration_at_ms,
            self.clock(),
        )
        logger.info(
            "RevenueCat event %s mapped to %s: %s",
            event.event_type,
            decision.action.value,
            decision.reason,
        )

        if decision.action is EntitlementAction.REJECT:
            raise UnrecognizedEventType(event.event_type)

        outcome = await self.store_adapter.apply_decision(event.subject_identity, decision)

        if decision.action is EntitlementAction.NO_CHANGE:
            return WebhookAck(success=True, message=decision.reason)
        if outcome.applied:
            return WebhookAck(
                success=True,
                message=f"User {outcome.user_id} updated to isPro={str(outcome.is_pro).lower()}",
            )
        return WebhookAck(
            success=True,
            message=f"User {outcome.user_id} already has isPro={str(outcome.is_pro).lower()}",
        )

    async def _release_claim(self, event: SubscriptionEvent) -> None:
        if self.event_ledger is not None and event.event_id:
            await self.event_ledger.release(event.event_id)

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    async def handle_delivery(
        self,
        authorization: Optional[str],
        event_header: Optional[str],
        raw_body: bytes,
        event_header_name: str = "X-RevenueCat-Event",
    ) -> WebhookAck:
        """
        Handle one webhook delivery.

        Raises:
            ConfigurationError: Shared secret not provisioned (500).
            AuthenticationError: Missing or wrong Authorization header (401).
            BadRequestError: Missing event header or unusable body (400).
        """
        try:
            self.authenticate(authorization)
            self.require_event_header(event_header, event_header_name)
            event = self.decode(raw_body)
        except (ConfigurationError, AuthenticationError, BadRequestError) as exc:
            record_webhook_attributes(outcome="rejected", status_code=exc.status_code)
            raise

        return await self.process_event(event)
