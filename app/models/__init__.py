"""
Database Models
===============

SQLAlchemy ORM models.

All models are imported here to ensure they are registered
with SQLAlchemy's metadata for migrations.
"""

from app.models.user import User

__all__ = ["User"]
