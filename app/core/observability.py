"""
Observability
=============

New Relic helpers for enriching the current transaction with webhook
attributes, so deliveries can be filtered by event type and outcome.
"""

from typing import Any, Optional

import newrelic.agent

from app.config import settings


def record_webhook_attributes(
    event_type: Optional[str] = None,
    outcome: Optional[str] = None,
    **extra: Any,
) -> None:
    """
    Attach webhook attributes to the active New Relic transaction.

    No-op when the agent is not running (tests, local development).
    Never pass secrets or subject identities here.
    """
    txn = newrelic.agent.current_transaction()
    if not txn:
        return

    attributes = [("environment", settings.ENVIRONMENT)]
    if event_type:
        attributes.append(("webhook.event_type", event_type))
    if outcome:
        attributes.append(("webhook.outcome", outcome))
    for key, value in extra.items():
        if value is not None:
            attributes.append((f"webhook.{key}", value))

    newrelic.agent.add_custom_attributes(attributes)
