"""
db/base.py
----------
Declarative base and shared mixins.

TimestampMixin: Adds created_at / updated_at columns to any model.
Primary keys are UUID strings generated client-side so every table
(organizations, departments, users, licenses, auth_users) shares one
id format with the in-memory store.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String, func, inspect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


def generate_uuid() -> str:
    return str(uuid.uuid4())


class UUIDPrimaryKey:
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)


class TimestampMixin:
    """Adds server-side created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


def row_to_dict(obj: Base) -> dict[str, Any]:
    """Plain column → value mapping of a loaded ORM instance."""
    return {attr.key: getattr(obj, attr.key) for attr in inspect(obj).mapper.column_attrs}
