"""
schemas/license.py
------------------
Pydantic model for License records.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional

from pydantic import BaseModel, Field


class LicenseStatus(str, PyEnum):
    active = "active"
    expired = "expired"
    suspended = "suspended"
    cancelled = "cancelled"


class LicenseRead(BaseModel):
    id: str
    organization_id: str
    plan_name: str
    license_key: str
    status: LicenseStatus
    max_users: int
    max_storage_gb: int
    features: list[str] = Field(default_factory=list)
    start_date: datetime
    expiry_date: Optional[datetime] = None
    auto_renew: bool = True
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
