"""
schemas/organization.py
-----------------------
Pydantic models for Organization and Department records.

Naming convention:
  <Entity>Read → record as returned by the store (also the response body)
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class OrganizationRead(BaseModel):
    id: str
    name: str
    type: str
    email_domain: Optional[str] = None
    config: dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DepartmentRead(BaseModel):
    id: str
    organization_id: str
    name: str
    description: Optional[str] = None
    parent_department_id: Optional[str] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
