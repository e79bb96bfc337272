"""
User Model
==========

SQLAlchemy model for the subset of the user account the subscription
webhook reads and writes.
"""

import uuid

from sqlalchemy import Boolean, Index, String, Uuid, false, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """
    User account model.

    Profile, recipe and social data live in other tables owned by the
    CRUD layer; the webhook only ever touches ``is_pro``.
    """

    __tablename__ = "users"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # Stored lower-cased, matching how the identity arrives from RevenueCat
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    is_pro: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )

    def __repr__(self) -> str:
        return f"<User(user_id={self.user_id}, email={self.email}, is_pro={self.is_pro})>"


# Case-insensitive uniqueness backing the webhook's lower(email) lookup
Index("ix_users_email_lower", func.lower(User.email), unique=True)
