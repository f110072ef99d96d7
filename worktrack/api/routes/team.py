"""
api/routes/team.py
------------------
Team management within the caller's organization.

GET  /team/members     : Members of the organization.
GET  /team/departments : Departments of the organization.
POST /team/members     : Owner/admin/manager adds a member (any
                          assignable role) and receives a one-time
                          temporary password to pass on.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from worktrack.dependencies import (
    get_auth_client,
    get_current_member,
    get_store,
    require_team_manager,
)
from worktrack.schemas.organization import DepartmentRead
from worktrack.schemas.session import SessionSnapshot
from worktrack.schemas.user import MemberCreate, MemberCreated, UserRead
from worktrack.services.auth_service import AuthClient
from worktrack.services.organization_service import OrganizationService
from worktrack.services.signup_service import SignupService
from worktrack.services.store import RecordStore

router = APIRouter(prefix="/team", tags=["Team"])


@router.get(
    "/members",
    response_model=list[UserRead],
    summary="List members of the current organization",
)
async def list_members(
    store: Annotated[RecordStore, Depends(get_store)],
    member: Annotated[SessionSnapshot, Depends(get_current_member)],
) -> list[UserRead]:
    return await OrganizationService.list_members(store, member.organization.id)


@router.get(
    "/departments",
    response_model=list[DepartmentRead],
    summary="List departments of the current organization",
)
async def list_departments(
    store: Annotated[RecordStore, Depends(get_store)],
    member: Annotated[SessionSnapshot, Depends(get_current_member)],
) -> list[DepartmentRead]:
    return await OrganizationService.list_departments(store, member.organization.id)


@router.post(
    "/members",
    response_model=MemberCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Add a member to the current organization",
)
async def add_member(
    body: MemberCreate,
    store: Annotated[RecordStore, Depends(get_store)],
    auth: Annotated[AuthClient, Depends(get_auth_client)],
    manager: Annotated[SessionSnapshot, Depends(require_team_manager)],
) -> MemberCreated:
    """
    The organization is always the caller's own. The department defaults
    to the caller's and must belong to the same organization.
    """
    organization_id = manager.organization.id
    department_id = body.department_id or manager.user.department_id
    department = await OrganizationService.get_department(store, organization_id, department_id)
    return await SignupService(store, auth).add_member(organization_id, department.id, body)
