"""
schemas/signup.py
-----------------
Request and result models for organization signup.

SignupRequest carries what the orchestrator needs; SignupForm adds the
password policy checks that belong to the HTTP boundary.
"""

from pydantic import BaseModel, Field, field_validator, model_validator

from worktrack.core.config import settings
from worktrack.schemas.auth import CredentialRead
from worktrack.schemas.license import LicenseRead
from worktrack.schemas.organization import DepartmentRead, OrganizationRead
from worktrack.schemas.user import UserRead


class SignupRequest(BaseModel):
    organization_name: str = Field(default="", max_length=255, examples=["Acme Corporation"])
    email_domain: str = Field(default="", max_length=255, examples=["acme.com"])
    department_name: str = Field(default=settings.DEFAULT_DEPARTMENT_NAME, max_length=255)
    email: str = Field(default="", max_length=320, examples=["john@acme.com"])
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)
    password: str = Field(default="", max_length=128)

    @field_validator(
        "organization_name", "email_domain", "department_name",
        "email", "first_name", "last_name",
    )
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()


class SignupForm(SignupRequest):
    """Inbound body of POST /signup."""
    confirm_password: str = Field(..., max_length=128)

    @model_validator(mode="after")
    def check_password(self) -> "SignupForm":
        if len(self.password) < settings.PASSWORD_MIN_LENGTH:
            raise ValueError(
                f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters"
            )
        if self.confirm_password != self.password:
            raise ValueError("Passwords do not match")
        return self

    def to_request(self) -> SignupRequest:
        return SignupRequest.model_validate(self.model_dump(exclude={"confirm_password"}))


class SignupResult(BaseModel):
    organization: OrganizationRead
    department: DepartmentRead
    credential: CredentialRead
    user: UserRead
    license: LicenseRead
