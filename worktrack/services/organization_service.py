"""
services/organization_service.py
--------------------------------
Read-side queries for an organization's members and departments.

Critical security invariant:
  Every query MUST filter on organization_id. The id always comes from
  the caller's resolved session, never from request input.
"""

from worktrack.core.exceptions import NotFoundError
from worktrack.schemas.organization import DepartmentRead
from worktrack.schemas.user import UserRead
from worktrack.services.store import RecordStore


class OrganizationService:

    @staticmethod
    async def list_members(store: RecordStore, organization_id: str) -> list[UserRead]:
        """All users of the organization, oldest first."""
        rows = await store.select_many(
            "users", order_by="created_at", organization_id=organization_id
        )
        return [UserRead.model_validate(row) for row in rows]

    @staticmethod
    async def list_departments(
        store: RecordStore, organization_id: str
    ) -> list[DepartmentRead]:
        rows = await store.select_many(
            "departments", order_by="name", organization_id=organization_id
        )
        return [DepartmentRead.model_validate(row) for row in rows]

    @staticmethod
    async def get_department(
        store: RecordStore, organization_id: str, department_id: str
    ) -> DepartmentRead:
        """
        Fetch a department of the organization.
        Raises NotFoundError if it does not exist or belongs to another tenant.
        """
        row = await store.select_one(
            "departments", id=department_id, organization_id=organization_id
        )
        if row is None:
            raise NotFoundError(f"Department '{department_id}' not found")
        return DepartmentRead.model_validate(row)
