"""
RevenueCat Event Decoder
========================

Turns a raw webhook body into a ``SubscriptionEvent``.

Decoding is pure: no I/O, no logging of payload contents beyond the
validation error summary.
"""

import json

from pydantic import ValidationError

from app.core.errors import InvalidEventShape, MalformedPayload
from app.schemas.webhook import RevenueCatWebhookPayload, SubscriptionEvent


def _summarize(exc: ValidationError) -> str:
    """First validation error as ``loc: msg`` (values are never echoed)."""
    errors = exc.errors()
    if not errors:
        return "invalid event"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "body"
    return f"{location}: {first.get('msg', 'invalid')}"


def decode_event(raw_body: bytes) -> SubscriptionEvent:
    """
    Decode a webhook body.

    Args:
        raw_body: Request body as received.

    Returns:
        The decoded, immutable event.

    Raises:
        MalformedPayload: Body is not UTF-8 JSON.
        InvalidEventShape: Body is JSON but not a usable RevenueCat event
            (no ``event`` object, no type, no id/app_user_id, no email
            subscriber attribute, or a mistyped field).
    """
    try:
        data = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedPayload(f"Body is not valid JSON: {exc.__class__.__name__}") from exc

    if not isinstance(data, dict):
        raise InvalidEventShape("Body must be a JSON object")

    try:
        payload = RevenueCatWebhookPayload.model_validate(data)
    except ValidationError as exc:
        raise InvalidEventShape(_summarize(exc)) from exc

    event = payload.event
    email = event.email
    if email is None:
        raise InvalidEventShape("event.subscriber_attributes.$email.value is required")

    return SubscriptionEvent(
        event_id=event.id,
        event_type=event.type,
        subject_identity=email,
        app_user_id=event.app_user_id,
        product_id=event.product_id,
        transaction_id=event.transaction_id,
        original_transaction_id=event.original_transaction_id,
        expiration_at_ms=event.expiration_at_ms,
        environment=event.environment,
        api_version=payload.api_version,
    )
