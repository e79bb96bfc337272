"""
Entitlement Store
=================

Idempotent read-compare-write of a user's ``is_pro`` flag.

The adapter resolves the subject identity (lower-cased email) to a user,
compares the desired flag with the stored one and only writes when they
differ, so a redelivered event is a no-op.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.errors import StorageFault, UnknownSubject
from app.models.user import User
from app.services.entitlements import EntitlementDecision
from app.utils.helpers import normalize_identity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserEntitlement:
    """The slice of a user record the webhook cares about."""

    user_id: str
    is_pro: bool


@dataclass(frozen=True)
class ApplyOutcome:
    """Result of applying a decision to a resolved user."""

    applied: bool
    user_id: str
    is_pro: bool


class UserStore(Protocol):
    """Point lookup and write of the pro flag, keyed by identity."""

    async def find_user_by_identity(self, identity: str) -> Optional[UserEntitlement]:
        ...

    async def set_is_pro(self, user_id: str, value: bool) -> None:
        ...


class SqlAlchemyUserStore:
    """``UserStore`` backed by the ``users`` table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_user_by_identity(self, identity: str) -> Optional[UserEntitlement]:
        stmt = select(User.user_id, User.is_pro).where(
            func.lower(User.email) == identity
        )
        result = await self.db.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return UserEntitlement(user_id=str(row.user_id), is_pro=bool(row.is_pro))

    async def set_is_pro(self, user_id: str, value: bool) -> None:
        stmt = (
            update(User)
            .where(User.user_id == uuid.UUID(user_id))
            .values(is_pro=value)
        )
        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise


class SessionScopedUserStore:
    """
    Request-scoped ``UserStore`` that opens its database session on first use.

    A missing ``DATABASE_URL`` or an engine that cannot be built surfaces
    from the first lookup, inside the adapter's ``StorageFault`` handling,
    rather than while FastAPI resolves the request's dependencies.
    """

    def __init__(self, session_factory: Callable[[], async_sessionmaker[AsyncSession]]):
        self._session_factory = session_factory
        self._session: Optional[AsyncSession] = None

    def _store(self) -> SqlAlchemyUserStore:
        if self._session is None:
            self._session = self._session_factory()()
        return SqlAlchemyUserStore(self._session)

    async def find_user_by_identity(self, identity: str) -> Optional[UserEntitlement]:
        return await self._store().find_user_by_identity(identity)

    async def set_is_pro(self, user_id: str, value: bool) -> None:
        await self._store().set_is_pro(user_id, value)

    async def close(self) -> None:
        """Close the session if one was opened."""
        if self._session is not None:
            await self._session.close()
            self._session = None


class EntitlementStoreAdapter:
    """Applies ``EntitlementDecision``s to a ``UserStore``."""

    def __init__(self, store: UserStore):
        self.store = store

    async def apply_decision(
        self,
        subject_identity: str,
        decision: EntitlementDecision,
    ) -> ApplyOutcome:
        """
        Apply a decision to the user identified by ``subject_identity``.

        Args:
            subject_identity: Email-like identity from the event.
            decision: Mapper output.

        Returns:
            ``ApplyOutcome`` with ``applied=True`` only if a write happened.

        Raises:
            UnknownSubject: No user has this identity.
            StorageFault: The lookup or write failed.
        """
        identity = normalize_identity(subject_identity)

        try:
            user = await self.store.find_user_by_identity(identity)
        except Exception as exc:
            raise StorageFault(f"User lookup failed: {exc.__class__.__name__}") from exc

        if user is None:
            logger.warning("No user found for webhook subject identity")
            raise UnknownSubject(identity)

        desired = decision.desired_is_pro
        if desired is None:
            return ApplyOutcome(applied=False, user_id=user.user_id, is_pro=user.is_pro)

        if user.is_pro == desired:
            logger.info(
                "User %s already has is_pro=%s, skipping update",
                user.user_id,
                desired,
            )
            return ApplyOutcome(applied=False, user_id=user.user_id, is_pro=desired)

        try:
            await self.store.set_is_pro(user.user_id, desired)
        except Exception as exc:
            raise StorageFault(f"Pro flag write failed: {exc.__class__.__name__}") from exc

        logger.info(
            "Updated user %s pro status: %s -> %s",
            user.user_id,
            user.is_pro,
            desired,
        )
        return ApplyOutcome(applied=True, user_id=user.user_id, is_pro=desired)
