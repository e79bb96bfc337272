"""
Webhook Schemas
===============

Pydantic schemas for RevenueCat webhook payloads and responses.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    field_validator,
    model_validator,
)


# ─── RevenueCat Webhook Event Types ──────────────────────────────────────────


class RevenueCatEventType(str, Enum):
    """Event types that carry an entitlement mapping."""

    INITIAL_PURCHASE = "INITIAL_PURCHASE"
    RENEWAL = "RENEWAL"
    TRIAL_STARTED = "TRIAL_STARTED"
    TRIAL_CONVERTED = "TRIAL_CONVERTED"
    UNCANCELLATION = "UNCANCELLATION"
    EXPIRATION = "EXPIRATION"
    TRIAL_CANCELLED = "TRIAL_CANCELLED"
    BILLING_ISSUE = "BILLING_ISSUE"
    PRODUCT_CHANGE = "PRODUCT_CHANGE"
    NON_RENEWING_PURCHASE = "NON_RENEWING_PURCHASE"
    CANCELLATION = "CANCELLATION"

    @classmethod
    def parse(cls, value: str) -> Optional["RevenueCatEventType"]:
        """Return the matching member, or None for types we do not map."""
        try:
            return cls(value)
        except ValueError:
            return None


class RevenueCatEnvironment(str, Enum):
    """RevenueCat event environment."""

    PRODUCTION = "PRODUCTION"
    SANDBOX = "SANDBOX"


def _coerce_environment(value: Any) -> Optional[RevenueCatEnvironment]:
    """Informational only: unknown or mistyped values become None."""
    if isinstance(value, RevenueCatEnvironment):
        return value
    if isinstance(value, str):
        try:
            return RevenueCatEnvironment(value.upper())
        except ValueError:
            return None
    return None


# ─── Inbound Payload ─────────────────────────────────────────────────────────


class RevenueCatEventPayload(BaseModel):
    """
    The ``event`` object inside a webhook body.

    Only the fields the webhook uses are declared; everything else
    RevenueCat sends is ignored.
    """

    model_config = ConfigDict(extra="ignore")

    id: Optional[StrictStr] = None
    type: StrictStr = Field(min_length=1)
    app_user_id: Optional[StrictStr] = None
    original_app_user_id: Optional[StrictStr] = None
    product_id: Optional[StrictStr] = None
    transaction_id: Optional[StrictStr] = None
    original_transaction_id: Optional[StrictStr] = None
    purchased_at_ms: Optional[StrictInt] = None
    expiration_at_ms: Optional[StrictInt] = None
    environment: Optional[RevenueCatEnvironment] = None
    store: Optional[StrictStr] = None
    subscriber_attributes: dict[str, Any] = Field(default_factory=dict)

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, v: Any) -> Optional[RevenueCatEnvironment]:
        return _coerce_environment(v)

    @model_validator(mode="after")
    def require_identifier(self) -> "RevenueCatEventPayload":
        """An event must carry an id or an app_user_id."""
        if not self.id and not self.app_user_id:
            raise ValueError("event requires 'id' or 'app_user_id'")
        return self

    @property
    def email(self) -> Optional[str]:
        """The ``$email`` subscriber attribute, if present and a non-empty string."""
        attribute = self.subscriber_attributes.get("$email")
        if not isinstance(attribute, dict):
            return None
        value = attribute.get("value")
        if isinstance(value, str) and value.strip():
            return value
        return None


class RevenueCatWebhookPayload(BaseModel):
    """
    Top-level webhook body: ``{ "api_version": "1.0", "event": { ... } }``.
    """

    model_config = ConfigDict(extra="ignore")

    api_version: Optional[StrictStr] = None
    event: RevenueCatEventPayload


# ─── Decoded Event ───────────────────────────────────────────────────────────


class SubscriptionEvent(BaseModel):
    """
    One decoded inbound notification.

    Built once per delivery, never mutated, never persisted. ``event_type``
    keeps the raw provider string so unmapped types reach the mapper.
    """

    model_config = ConfigDict(frozen=True)

    event_id: Optional[str] = None
    event_type: str
    subject_identity: str
    app_user_id: Optional[str] = None
    product_id: Optional[str] = None
    transaction_id: Optional[str] = None
    original_transaction_id: Optional[str] = None
    expiration_at_ms: Optional[int] = None
    environment: Optional[RevenueCatEnvironment] = None
    api_version: Optional[str] = None


# ─── Responses ───────────────────────────────────────────────────────────────


class WebhookAck(BaseModel):
    """200 acknowledgment; ``success`` reports whether the event was applied."""

    success: bool
    message: str


class WebhookErrorResponse(BaseModel):
    """Body of 4xx/5xx webhook responses."""

    error: str
    code: Optional[str] = None
    message: str


class WebhookHealthResponse(BaseModel):
    """GET health check for the webhook endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = "ok"
    message: str = "RevenueCat webhook endpoint is active"
    webhook_configured: bool = Field(alias="webhookConfigured")
