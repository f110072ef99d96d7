"""
services/signup_service.py
--------------------------
Organization signup and member onboarding.

Both operations are sequences of independent remote calls; the store
offers no transaction spanning them. They run as a saga: each committed
step registers a compensating action, and when a later step fails the
compensations run in reverse order before SignupStepError is raised.

Signup order (each step needs the id produced by an earlier one):
  1. organizations   2. departments   3. auth_users (credential)
  4. users           5. licenses
"""

from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel

from worktrack.core.config import settings
from worktrack.core.exceptions import (
    InputValidationError,
    SignupStepError,
    WorkTrackError,
)
from worktrack.core.logging import get_logger
from worktrack.core.permissions import ASSIGNABLE_ROLES, Role
from worktrack.core.security import generate_license_key, generate_temporary_password
from worktrack.schemas.auth import CredentialRead
from worktrack.schemas.license import LicenseRead
from worktrack.schemas.organization import DepartmentRead, OrganizationRead
from worktrack.schemas.signup import SignupRequest, SignupResult
from worktrack.schemas.user import MemberCreate, MemberCreated, UserRead
from worktrack.services.auth_service import CREDENTIALS_TABLE, AuthClient
from worktrack.services.store import RecordStore

logger = get_logger(__name__)

Compensation = Callable[[], Awaitable[None]]


class LicensePlan(BaseModel):
    plan_name: str
    max_users: int
    max_storage_gb: int
    features: list[str]


STARTER_PLAN = LicensePlan(
    plan_name="starter",
    max_users=50,
    max_storage_gb=100,
    features=["task_management", "timesheet", "chat"],
)


class SignupSaga:
    """
    Runs steps in order and remembers how to undo each committed one.

    Usage:
        saga = SignupSaga("signup", compensate=True)
        org = await saga.step("organizations", insert_org, undo=delete_org)
    """

    def __init__(self, name: str, compensate: bool = True) -> None:
        self.name = name
        self.compensate = compensate
        self.completed: list[dict[str, Any]] = []
        self._undo: list[tuple[str, Optional[Compensation]]] = []

    async def step(
        self,
        table: str,
        action: Callable[[], Awaitable[Any]],
        undo: Optional[Callable[[Any], Awaitable[None]]] = None,
    ) -> Any:
        number = len(self.completed) + 1
        try:
            result = await action()
        except Exception as exc:
            cause = exc if isinstance(exc, WorkTrackError) else WorkTrackError(
                str(exc) or type(exc).__name__,
                code="UNEXPECTED_ERROR",
                details={"exception": type(exc).__name__},
            )
            logger.warning(
                "Saga step failed",
                saga=self.name,
                step=number,
                table=table,
                error=cause.message,
            )
            compensated, failures = await self._rollback()
            raise SignupStepError(
                step=number,
                table=table,
                cause=cause,
                completed=list(self.completed),
                compensated=compensated,
                compensation_failures=failures,
            ) from exc

        record_id = getattr(result, "id", None)
        self.completed.append({"step": number, "table": table, "id": record_id})
        self._undo.append((table, (lambda: undo(result)) if undo else None))
        return result

    async def _rollback(self) -> tuple[list[str], list[dict[str, str]]]:
        compensated: list[str] = []
        failures: list[dict[str, str]] = []
        if not self.compensate:
            return compensated, failures

        for table, undo in reversed(self._undo):
            if undo is None:
                continue
            try:
                await undo()
            except Exception as exc:
                message = exc.message if isinstance(exc, WorkTrackError) else str(exc)
                logger.error(
                    "Compensation failed, manual cleanup required",
                    saga=self.name,
                    table=table,
                    error=message,
                )
                failures.append({"table": table, "error": message})
            else:
                compensated.append(table)
        logger.info("Saga compensated", saga=self.name, compensated=compensated)
        return compensated, failures


def _require(**fields: Optional[str]) -> None:
    missing = [name for name, value in fields.items() if not (value or "").strip()]
    if missing:
        raise InputValidationError(missing)


class SignupService:

    def __init__(
        self,
        store: RecordStore,
        auth: AuthClient,
        compensate: Optional[bool] = None,
    ) -> None:
        self._store = store
        self._auth = auth
        self._compensate = (
            settings.SIGNUP_COMPENSATE_ON_FAILURE if compensate is None else compensate
        )

    async def _delete(self, table: str, record_id: str) -> None:
        await self._store.delete_one(table, record_id)

    async def create_organization(self, data: SignupRequest) -> SignupResult:
        """
        Create an organization together with its first department, its
        owner (credential + user) and a starter license.

        Raises:
            InputValidationError: a required field is blank; nothing was written.
            SignupStepError: step N failed; steps after N never ran.
        """
        _require(
            organization_name=data.organization_name,
            email_domain=data.email_domain,
            email=data.email,
            first_name=data.first_name,
            last_name=data.last_name,
            password=data.password,
        )
        department_name = (data.department_name or "").strip() or settings.DEFAULT_DEPARTMENT_NAME
        email = data.email.strip().lower()
        saga = SignupSaga("signup", compensate=self._compensate)

        async def insert_organization() -> OrganizationRead:
            row = await self._store.insert_one(
                "organizations",
                {
                    "name": data.organization_name,
                    "email_domain": data.email_domain,
                    "type": settings.DEFAULT_ORGANIZATION_TYPE,
                },
            )
            return OrganizationRead.model_validate(row)

        organization = await saga.step(
            "organizations",
            insert_organization,
            undo=lambda org: self._delete("organizations", org.id),
        )

        async def insert_department() -> DepartmentRead:
            row = await self._store.insert_one(
                "departments",
                {"organization_id": organization.id, "name": department_name},
            )
            return DepartmentRead.model_validate(row)

        department = await saga.step(
            "departments",
            insert_department,
            undo=lambda dept: self._delete("departments", dept.id),
        )

        credential = await saga.step(
            CREDENTIALS_TABLE,
            lambda: self._auth.sign_up(
                email,
                data.password,
                metadata={"first_name": data.first_name, "last_name": data.last_name},
            ),
            undo=lambda cred: self._auth.admin_delete_user(cred.id),
        )

        async def insert_owner() -> UserRead:
            row = await self._store.insert_one(
                "users",
                {
                    "organization_id": organization.id,
                    "department_id": department.id,
                    "auth_user_id": credential.id,
                    "email": email,
                    "first_name": data.first_name,
                    "last_name": data.last_name,
                    "role": Role.owner.value,
                    "is_verified": True,
                },
            )
            return UserRead.model_validate(row)

        user = await saga.step(
            "users", insert_owner, undo=lambda u: self._delete("users", u.id)
        )

        async def insert_license() -> LicenseRead:
            row = await self._store.insert_one(
                "licenses",
                {
                    "organization_id": organization.id,
                    "license_key": generate_license_key(),
                    "status": "active",
                    **STARTER_PLAN.model_dump(),
                },
            )
            return LicenseRead.model_validate(row)

        license_ = await saga.step("licenses", insert_license)

        logger.info(
            "Organization created",
            organization_id=organization.id,
            owner_id=user.id,
            plan=license_.plan_name,
        )
        return SignupResult(
            organization=organization,
            department=department,
            credential=credential,
            user=user,
            license=license_,
        )

    async def add_member(
        self,
        organization_id: str,
        department_id: str,
        data: MemberCreate,
    ) -> MemberCreated:
        """
        Register a credential with a temporary password and attach a user
        row to an existing organization and department.

        The temporary password is only returned; the users row never
        stores it.
        """
        _require(
            organization_id=organization_id,
            department_id=department_id,
            email=data.email,
            first_name=data.first_name,
            last_name=data.last_name,
        )
        role = Role(data.role)
        if role not in ASSIGNABLE_ROLES:
            raise InputValidationError(
                ["role"], message=f"Role '{role.value}' cannot be assigned to a new member"
            )

        email = data.email.strip().lower()
        temporary_password = generate_temporary_password()
        saga = SignupSaga("add_member", compensate=self._compensate)

        credential: CredentialRead = await saga.step(
            CREDENTIALS_TABLE,
            lambda: self._auth.sign_up(
                email,
                temporary_password,
                metadata={"first_name": data.first_name, "last_name": data.last_name},
            ),
            undo=lambda cred: self._auth.admin_delete_user(cred.id),
        )

        async def insert_member() -> UserRead:
            row = await self._store.insert_one(
                "users",
                {
                    "organization_id": organization_id,
                    "department_id": department_id,
                    "auth_user_id": credential.id,
                    "email": email,
                    "first_name": data.first_name,
                    "last_name": data.last_name,
                    "role": role.value,
                },
            )
            return UserRead.model_validate(row)

        user = await saga.step("users", insert_member)

        logger.info(
            "Member added",
            organization_id=organization_id,
            user_id=user.id,
            role=role.value,
        )
        return MemberCreated(
            user=user, credential=credential, temporary_password=temporary_password
        )
