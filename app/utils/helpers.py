"""
Helper Functions
================

Common utility functions used across the application.
"""

import time
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC datetime with timezone info."""
    return datetime.now(timezone.utc)


def now_millis() -> int:
    """Current time as epoch milliseconds (RevenueCat's timestamp unit)."""
    return int(time.time() * 1000)


def normalize_identity(identity: str) -> str:
    """Normalize an email-like subject identity for lookup and storage."""
    return identity.strip().lower()
