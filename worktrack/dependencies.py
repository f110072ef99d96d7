"""
dependencies.py
---------------
FastAPI dependency injection for the store, the identity client and the
resolved session.

Flow:
  1. OAuth2PasswordBearer extracts the optional Bearer token.
  2. get_auth_client builds a per-request AuthClient holding that token.
  3. get_session_snapshot runs a SessionResolver for the request and
     tears it down (listener unsubscribed) once the response is sent.
  4. get_current_member requires an identity with a WorkTrack user row.
  5. require_team_manager layers the team capability on top.

The organization_id used to scope queries always comes from the
resolved user record, never from the request.
"""

from typing import Annotated, AsyncIterator, Optional

from fastapi import Depends, status
from fastapi.security import OAuth2PasswordBearer

from worktrack.core.exceptions import PermissionDeniedError, SessionError, WorkTrackError
from worktrack.core.logging import get_logger
from worktrack.core.permissions import can_manage_team
from worktrack.db.session import AsyncSessionLocal
from worktrack.schemas.session import SessionSnapshot
from worktrack.services.auth_service import AuthClient
from worktrack.services.session_resolver import SessionResolver
from worktrack.services.store import RecordStore, SqlRecordStore

logger = get_logger(__name__)

# tokenUrl must match the login endpoint path
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/login", auto_error=False)


def get_store() -> RecordStore:
    return SqlRecordStore(AsyncSessionLocal)


def get_auth_client(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    store: Annotated[RecordStore, Depends(get_store)],
) -> AuthClient:
    return AuthClient(store, access_token=token)


async def get_session_snapshot(
    auth: Annotated[AuthClient, Depends(get_auth_client)],
    store: Annotated[RecordStore, Depends(get_store)],
) -> AsyncIterator[SessionSnapshot]:
    async with SessionResolver(auth, store) as resolver:
        yield resolver.state.snapshot


async def get_current_member(
    snapshot: Annotated[SessionSnapshot, Depends(get_session_snapshot)],
) -> SessionSnapshot:
    """
    Require a signed-in identity that resolved to a user and organization.
    Raises SessionError (401) without an identity, a 503 WorkTrackError if
    resolution failed, PermissionDeniedError (403) if the identity has no
    WorkTrack profile.
    """
    if snapshot.identity is None:
        if snapshot.error:
            logger.warning("Session rejected", error=snapshot.error)
        raise SessionError("Could not validate credentials")
    if snapshot.error:
        raise WorkTrackError(
            snapshot.error,
            code="SESSION_UNRESOLVED",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    if snapshot.user is None or snapshot.organization is None:
        raise PermissionDeniedError("No WorkTrack profile is linked to this account")
    return snapshot


async def require_team_manager(
    member: Annotated[SessionSnapshot, Depends(get_current_member)],
) -> SessionSnapshot:
    """Raises PermissionDeniedError unless the member's role can manage the team."""
    if not can_manage_team(member.user.role):
        raise PermissionDeniedError("Team management privileges required")
    return member
