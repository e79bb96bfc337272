"""
Security Module
===============

Webhook authentication helpers.

RevenueCat sends the authorization value configured in its dashboard on
every delivery. We configure it as ``Bearer <REVENUECAT_WEBHOOK_SECRET>``.
"""

import hmac
from typing import Optional

BEARER_PREFIX = "Bearer "


def verify_webhook_signature(
    authorization_header: Optional[str],
    shared_secret: Optional[str],
) -> bool:
    """
    Verify a RevenueCat webhook ``Authorization`` header.

    Args:
        authorization_header: Raw value of the Authorization header.
        shared_secret: Server-held webhook secret.

    Returns:
        True only if the header is exactly ``"Bearer " + shared_secret``.
    """
    if not authorization_header or not shared_secret:
        return False

    expected = f"{BEARER_PREFIX}{shared_secret}".encode("utf-8")
    try:
        received = authorization_header.encode("utf-8")
    except (AttributeError, UnicodeEncodeError):
        return False

    return hmac.compare_digest(received, expected)
