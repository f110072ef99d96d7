"""
schemas/user.py
---------------
Pydantic models for User records and team membership requests.

Security note:
  - UserRead never carries password material.
  - MemberCreated.temporary_password is returned exactly once, to the
    admin who added the member, for out-of-band delivery.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from worktrack.core.permissions import Role
from worktrack.schemas.auth import CredentialRead


class UserRead(BaseModel):
    id: str
    organization_id: str
    department_id: Optional[str] = None
    auth_user_id: str
    email: str
    first_name: str
    last_name: str
    role: Role
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    is_active: bool = True
    is_verified: bool = False
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MemberCreate(BaseModel):
    """Used by owners, admins and managers to add a member to their organization."""
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    role: Role = Role.employee
    department_id: Optional[str] = Field(
        default=None, description="Defaults to the caller's department"
    )

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        return v.strip()


class MemberCreated(BaseModel):
    user: UserRead
    credential: CredentialRead
    temporary_password: str
