"""
api/routes/auth.py
------------------
Authentication and session endpoints.

POST /login            : Exchange credentials for a bearer token.
                          Accepts OAuth2 form data (Swagger UI).
POST /logout           : End the presented session.
POST /password/reset   : Request a password recovery token by email.
POST /password/recover : Exchange a recovery token for a session.
PUT  /password         : Change the password of the current session.
GET  /session          : Resolved identity → user → organization snapshot.
GET  /navigation       : Navigation items visible to the current role.
GET  /me               : The current user's WorkTrack profile.
"""

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from fastapi.security import OAuth2PasswordRequestForm

from worktrack.core.permissions import NavigationItem, visible_navigation
from worktrack.dependencies import (
    get_auth_client,
    get_current_member,
    get_session_snapshot,
)
from worktrack.schemas.auth import (
    AuthSession,
    CredentialRead,
    PasswordRecoveryRequest,
    PasswordResetRequest,
    PasswordUpdate,
    TokenResponse,
)
from worktrack.schemas.session import SessionSnapshot
from worktrack.schemas.user import UserRead
from worktrack.services.auth_service import AuthClient

router = APIRouter(tags=["Authentication"])


def _token_response(session: AuthSession) -> TokenResponse:
    expires_in = int((session.expires_at - datetime.now(timezone.utc)).total_seconds())
    return TokenResponse(
        access_token=session.access_token,
        token_type=session.token_type,
        expires_in=max(expires_in, 0),
        user=session.user,
    )


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login and receive a bearer token",
)
async def login(
    # The OAuth2 "username" field carries the email address.
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    auth: Annotated[AuthClient, Depends(get_auth_client)],
) -> TokenResponse:
    """
    Authenticate with email + password.

    Via curl/Postman send form data (not JSON):
        -d "username=you@email.com&password=yourpassword"
    """
    session = await auth.sign_in_with_password(form_data.username, form_data.password)
    return _token_response(session)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="End the current session",
)
async def logout(auth: Annotated[AuthClient, Depends(get_auth_client)]) -> Response:
    await auth.sign_out()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/password/reset",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Request a password recovery email",
)
async def request_password_reset(
    body: PasswordResetRequest,
    auth: Annotated[AuthClient, Depends(get_auth_client)],
) -> dict:
    """Always 202, whether or not the address is registered."""
    await auth.reset_password_for_email(body.email)
    return {"status": "accepted"}


@router.post(
    "/password/recover",
    response_model=TokenResponse,
    summary="Exchange a recovery token for a session",
)
async def recover_password(
    body: PasswordRecoveryRequest,
    auth: Annotated[AuthClient, Depends(get_auth_client)],
) -> TokenResponse:
    session = await auth.verify_recovery(body.token)
    return _token_response(session)


@router.put(
    "/password",
    response_model=CredentialRead,
    summary="Change the password of the signed-in user",
)
async def update_password(
    body: PasswordUpdate,
    auth: Annotated[AuthClient, Depends(get_auth_client)],
) -> CredentialRead:
    return await auth.update_password(body.password)


@router.get(
    "/session",
    response_model=SessionSnapshot,
    summary="Resolve the current identity, user and organization",
)
async def get_session(
    snapshot: Annotated[SessionSnapshot, Depends(get_session_snapshot)],
) -> SessionSnapshot:
    """Anonymous callers receive an empty snapshot rather than a 401."""
    return snapshot


@router.get(
    "/navigation",
    response_model=list[NavigationItem],
    summary="Navigation items visible to the current user",
)
async def get_navigation(
    member: Annotated[SessionSnapshot, Depends(get_current_member)],
) -> list[NavigationItem]:
    return sorted(visible_navigation(member.user.role), key=lambda item: item.value)


@router.get(
    "/me",
    response_model=UserRead,
    summary="Get the currently authenticated user",
)
async def get_me(
    member: Annotated[SessionSnapshot, Depends(get_current_member)],
) -> UserRead:
    return member.user
