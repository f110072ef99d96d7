"""
schemas/session.py
------------------
The resolved identity snapshot exposed to the rest of the application.
"""

from enum import Enum as PyEnum
from typing import Optional

from pydantic import BaseModel

from worktrack.schemas.auth import CredentialRead
from worktrack.schemas.organization import OrganizationRead
from worktrack.schemas.user import UserRead


class SessionStatus(str, PyEnum):
    uninitialized = "uninitialized"
    resolving = "resolving"
    anonymous = "anonymous"
    identified = "identified"


class SessionSnapshot(BaseModel):
    """
    Immutable view of credential → user → organization.

    loading is true only until the first bootstrap resolution finishes.
    error holds the message of the most recent failed lookup, if any.
    """
    identity: Optional[CredentialRead] = None
    user: Optional[UserRead] = None
    organization: Optional[OrganizationRead] = None
    loading: bool = True
    error: Optional[str] = None
    status: SessionStatus = SessionStatus.uninitialized

    model_config = {"frozen": True}
