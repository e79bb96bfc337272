"""
Shared Test Fixtures
====================

The app is exercised through ``httpx.AsyncClient`` over ASGI with the
user store swapped for an in-memory fake, so no database or Redis is
needed.
"""

import os
import uuid
from typing import Any, Callable, Optional

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("REVENUECAT_WEBHOOK_SECRET", "test-webhook-secret")

import pytest
from httpx import ASGITransport, AsyncClient

from app.config import settings
from app.dependencies import get_event_ledger, get_user_store
from app.main import app
from app.services.entitlement_store import UserEntitlement

TEST_SECRET = "test-webhook-secret"
WEBHOOK_URL = "/api/v1/webhooks/revenuecat"


class InMemoryUserStore:
    """``UserStore`` fake keyed by lower-cased email."""

    def __init__(self) -> None:
        self.users: dict[str, UserEntitlement] = {}
        self.lookups: list[str] = []
        self.writes: list[tuple[str, bool]] = []
        self.fail_on_write: Optional[Exception] = None

    def add_user(self, email: str, is_pro: bool = False) -> str:
        user_id = str(uuid.uuid4())
        self.users[email.lower()] = UserEntitlement(user_id=user_id, is_pro=is_pro)
        return user_id

    def is_pro(self, email: str) -> bool:
        return self.users[email.lower()].is_pro

    async def find_user_by_identity(self, identity: str) -> Optional[UserEntitlement]:
        self.lookups.append(identity)
        return self.users.get(identity)

    async def set_is_pro(self, user_id: str, value: bool) -> None:
        if self.fail_on_write is not None:
            raise self.fail_on_write
        self.writes.append((user_id, value))
        for email, user in self.users.items():
            if user.user_id == user_id:
                self.users[email] = UserEntitlement(user_id=user_id, is_pro=value)
                return


@pytest.fixture(autouse=True)
def webhook_secret(monkeypatch) -> str:
    """Pin the shared secret regardless of the environment."""
    monkeypatch.setattr(settings, "REVENUECAT_WEBHOOK_SECRET", TEST_SECRET)
    monkeypatch.setattr(settings, "WEBHOOK_EVENT_DEDUP_ENABLED", False)
    return TEST_SECRET


@pytest.fixture
def user_store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
async def client(user_store: InMemoryUserStore):
    """Async HTTP client against the app with the fake user store."""
    app.dependency_overrides[get_user_store] = lambda: user_store
    app.dependency_overrides[get_event_ledger] = lambda: None

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_event() -> Callable[..., dict[str, Any]]:
    """Build a RevenueCat webhook body."""

    def _make_event(
        event_type: str = "RENEWAL",
        email: Optional[str] = "a@b.com",
        **fields: Any,
    ) -> dict[str, Any]:
        event: dict[str, Any] = {
            "id": fields.pop("id", str(uuid.uuid4())),
            "type": event_type,
            "app_user_id": fields.pop("app_user_id", "rc-user-1"),
            "product_id": "pro_monthly",
            "environment": "PRODUCTION",
            "subscriber_attributes": {},
        }
        if email is not None:
            event["subscriber_attributes"]["$email"] = {
                "value": email,
                "updated_at_ms": 1700000000000,
            }
        event.update(fields)
        return {"api_version": "1.0", "event": event}

    return _make_event


@pytest.fixture
def webhook_headers() -> dict[str, str]:
    return {
        "Authorization": f"Bearer {TEST_SECRET}",
        "X-RevenueCat-Event": "true",
        "Content-Type": "application/json",
    }
