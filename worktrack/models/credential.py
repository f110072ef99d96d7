"""
models/credential.py
--------------------
Identity-service credential (auth_users). Owned by AuthClient; the rest
of the application only ever sees the Credential schema, which omits
encrypted_password.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from worktrack.db.base import Base, TimestampMixin, UUIDPrimaryKey


class Credential(UUIDPrimaryKey, TimestampMixin, Base):
    __tablename__ = "auth_users"

    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False, index=True)
    encrypted_password: Mapped[str] = mapped_column(String(255), nullable=False)
    user_metadata: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    last_sign_in_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Credential id={self.id} email={self.email}>"
