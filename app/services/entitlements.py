"""
Entitlement Mapping
===================

Maps a RevenueCat event onto the desired ``is_pro`` state.

Intent events (cancellation, billing trouble, plan changes) never revoke
access on their own. Only an expiration-class event, or a cancellation
whose paid period has already lapsed, turns pro off.

| Event                  | Decision                                            |
|------------------------|-----------------------------------------------------|
| INITIAL_PURCHASE       | SET_PRO                                             |
| RENEWAL                | SET_PRO                                             |
| TRIAL_STARTED          | SET_PRO                                             |
| TRIAL_CONVERTED        | SET_PRO                                             |
| UNCANCELLATION         | SET_PRO                                             |
| PRODUCT_CHANGE         | SET_PRO                                             |
| EXPIRATION             | SET_FREE                                            |
| TRIAL_CANCELLED        | SET_FREE                                            |
| BILLING_ISSUE          | NO_CHANGE (grace period)                            |
| NON_RENEWING_PURCHASE  | SET_PRO unless expiration_at_ms <= now, then FREE   |
| CANCELLATION           | SET_FREE if expiration_at_ms <= now, else NO_CHANGE |
| anything else          | REJECT                                              |
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from app.schemas.webhook import RevenueCatEventType


class EntitlementAction(str, Enum):
    """What to do with the user's pro flag."""

    SET_PRO = "set_pro"
    SET_FREE = "set_free"
    NO_CHANGE = "no_change"
    REJECT = "reject"


@dataclass(frozen=True)
class EntitlementDecision:
    """Mapper output. ``reason`` is for logs and acknowledgments only."""

    action: EntitlementAction
    reason: str

    @property
    def desired_is_pro(self) -> Optional[bool]:
        """Target flag value, or None when nothing should be written."""
        if self.action is EntitlementAction.SET_PRO:
            return True
        if self.action is EntitlementAction.SET_FREE:
            return False
        return None


def _pro(reason: str) -> EntitlementDecision:
    return EntitlementDecision(EntitlementAction.SET_PRO, reason)


def _free(reason: str) -> EntitlementDecision:
    return EntitlementDecision(EntitlementAction.SET_FREE, reason)


def _no_change(reason: str) -> EntitlementDecision:
    return EntitlementDecision(EntitlementAction.NO_CHANGE, reason)


def _cancellation(expiration_at_ms: Optional[int], now_ms: int) -> EntitlementDecision:
    if expiration_at_ms is not None and expiration_at_ms <= now_ms:
        return _free("Subscription cancelled and already expired")
    return _no_change("Subscription cancelled but still active until expiration")


def _non_renewing_purchase(expiration_at_ms: Optional[int], now_ms: int) -> EntitlementDecision:
    if expiration_at_ms is None or expiration_at_ms > now_ms:
        return _pro("Non-renewing purchase active")
    return _free("Non-renewing purchase already expired")


_FIXED_DECISIONS: dict[RevenueCatEventType, EntitlementDecision] = {
    RevenueCatEventType.INITIAL_PURCHASE: _pro("New subscription started"),
    RevenueCatEventType.RENEWAL: _pro("Subscription renewed"),
    RevenueCatEventType.TRIAL_STARTED: _pro("Trial started"),
    RevenueCatEventType.TRIAL_CONVERTED: _pro("Trial converted to paid"),
    RevenueCatEventType.UNCANCELLATION: _pro("Subscription uncancelled"),
    RevenueCatEventType.PRODUCT_CHANGE: _pro("Product changed - maintaining pro status"),
    RevenueCatEventType.EXPIRATION: _free("Subscription expired"),
    RevenueCatEventType.TRIAL_CANCELLED: _free("Trial cancelled without conversion"),
    RevenueCatEventType.BILLING_ISSUE: _no_change(
        "Billing issue - no status change during grace period"
    ),
}

_EXPIRY_DEPENDENT: dict[
    RevenueCatEventType, Callable[[Optional[int], int], EntitlementDecision]
] = {
    RevenueCatEventType.CANCELLATION: _cancellation,
    RevenueCatEventType.NON_RENEWING_PURCHASE: _non_renewing_purchase,
}

# Every event type must have exactly one mapping.
_unmapped = set(RevenueCatEventType) - set(_FIXED_DECISIONS) - set(_EXPIRY_DEPENDENT)
_double_mapped = set(_FIXED_DECISIONS) & set(_EXPIRY_DEPENDENT)
if _unmapped or _double_mapped:
    raise RuntimeError(
        f"Entitlement mapping incomplete: unmapped={sorted(t.value for t in _unmapped)} "
        f"duplicated={sorted(t.value for t in _double_mapped)}"
    )


def map_event_to_entitlement(
    event_type: str,
    expiration_at_ms: Optional[int],
    now_ms: int,
) -> EntitlementDecision:
    """
    Decide the entitlement change for one event.

    Args:
        event_type: Raw RevenueCat event type string.
        expiration_at_ms: Event expiry in epoch milliseconds, if any.
        now_ms: Current time in epoch milliseconds.

    Returns:
        The decision; unknown event types yield ``REJECT``.
    """
    known = RevenueCatEventType.parse(event_type)
    if known is None:
        return EntitlementDecision(
            EntitlementAction.REJECT,
            f"Unknown event type: {event_type}",
        )

    fixed = _FIXED_DECISIONS.get(known)
    if fixed is not None:
        return fixed

    return _EXPIRY_DEPENDENT[known](expiration_at_ms, now_ms)
