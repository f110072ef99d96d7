"""
schemas/auth.py
---------------
Identity-service shapes: credentials, sessions, auth-change events and
the login / password request bodies.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, Optional

from pydantic import BaseModel, EmailStr, Field


class AuthChangeEvent(str, PyEnum):
    signed_in = "SIGNED_IN"
    signed_out = "SIGNED_OUT"
    user_updated = "USER_UPDATED"
    password_recovery = "PASSWORD_RECOVERY"


class CredentialRead(BaseModel):
    """Public view of an auth_users row (encrypted_password omitted)."""
    id: str
    email: str
    user_metadata: dict[str, Any] = Field(default_factory=dict)
    last_sign_in_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AuthSession(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: CredentialRead


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: CredentialRead


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordRecoveryRequest(BaseModel):
    token: str = Field(..., min_length=1)


class PasswordUpdate(BaseModel):
    password: str = Field(..., min_length=1, max_length=128)
