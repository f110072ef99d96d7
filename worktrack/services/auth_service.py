"""
services/auth_service.py
------------------------
Identity service client.

An AuthClient holds at most one current session (a signed JWT) and
reports every change of it to subscribers:

    client = AuthClient(store)
    subscription = client.on_auth_state_change(callback)
    await client.sign_in_with_password("john@acme.com", "secret123")
    ...
    subscription.unsubscribe()

Credentials live in the auth_users table of the record store. Only the
bcrypt hash is stored; plain passwords never leave this module.
"""

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from jose import ExpiredSignatureError, JWTError

from worktrack.core.config import settings
from worktrack.core.exceptions import (
    AuthError,
    CredentialExistsError,
    InvalidCredentialsError,
    PasswordPolicyError,
    SessionError,
)
from worktrack.core.logging import get_logger
from worktrack.core.security import (
    ACCESS_PURPOSE,
    RECOVERY_PURPOSE,
    create_session_token,
    decode_session_token,
    hash_password,
    verify_password,
)
from worktrack.schemas.auth import AuthChangeEvent, AuthSession, CredentialRead
from worktrack.services.store import RecordStore

logger = get_logger(__name__)

CREDENTIALS_TABLE = "auth_users"

AuthStateCallback = Callable[[AuthChangeEvent, Optional[AuthSession]], Awaitable[None]]
RecoverySender = Callable[[str, str], Awaitable[None]]


async def _log_recovery(email: str, token: str) -> None:
    # Email delivery is handled outside this service.
    logger.info("Password recovery issued", email=email)


class Subscription:
    """Handle returned by AuthClient.on_auth_state_change."""

    def __init__(self, client: "AuthClient", callback: AuthStateCallback) -> None:
        self._client = client
        self.callback = callback

    def unsubscribe(self) -> None:
        self._client._remove_listener(self)


class AuthClient:

    def __init__(
        self,
        store: RecordStore,
        access_token: Optional[str] = None,
        recovery_sender: Optional[RecoverySender] = None,
    ) -> None:
        self._store = store
        self._access_token = access_token
        self._recovery_sender = recovery_sender or _log_recovery
        self._listeners: list[Subscription] = []

    # ── Subscriptions ─────────────────────────────────────────────────────────

    def on_auth_state_change(self, callback: AuthStateCallback) -> Subscription:
        subscription = Subscription(self, callback)
        self._listeners.append(subscription)
        return subscription

    def _remove_listener(self, subscription: Subscription) -> None:
        if subscription in self._listeners:
            self._listeners.remove(subscription)

    async def _notify(self, event: AuthChangeEvent, session: Optional[AuthSession]) -> None:
        for subscription in list(self._listeners):
            await subscription.callback(event, session)

    # ── Session ───────────────────────────────────────────────────────────────

    async def get_session(self) -> Optional[AuthSession]:
        """
        Return the current session, or None when signed out.

        An expired token silently ends the session. A token that fails
        signature validation raises SessionError.
        """
        if self._access_token is None:
            return None
        try:
            payload = decode_session_token(self._access_token)
        except ExpiredSignatureError:
            logger.info("Session expired")
            self._access_token = None
            return None
        except JWTError as exc:
            raise SessionError(f"Invalid session token: {exc}") from exc

        if payload.get("purpose") != ACCESS_PURPOSE or not payload.get("sub"):
            raise SessionError("Token is not an access token")

        row = await self._store.select_one(CREDENTIALS_TABLE, id=payload["sub"])
        if row is None:
            self._access_token = None
            return None
        return AuthSession(
            access_token=self._access_token,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            user=CredentialRead.model_validate(row),
        )

    def _start_session(self, row: dict[str, Any]) -> AuthSession:
        token, expires_at = create_session_token(subject=row["id"], email=row["email"])
        self._access_token = token
        return AuthSession(
            access_token=token,
            expires_at=expires_at,
            user=CredentialRead.model_validate(row),
        )

    # ── Sign up / in / out ────────────────────────────────────────────────────

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> CredentialRead:
        """
        Register a credential. The caller's current session is left as is,
        so an admin adding a member stays signed in as themselves.
        """
        email = email.strip().lower()
        if not email or not password:
            raise AuthError("Email and password are required", code="INVALID_SIGNUP", status_code=422)
        if await self._store.select_one(CREDENTIALS_TABLE, email=email) is not None:
            raise CredentialExistsError()

        row = await self._store.insert_one(
            CREDENTIALS_TABLE,
            {
                "email": email,
                "encrypted_password": hash_password(password),
                "user_metadata": metadata or {},
            },
        )
        logger.info("Credential registered", auth_user_id=row["id"])
        return CredentialRead.model_validate(row)

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        row = await self._store.select_one(CREDENTIALS_TABLE, email=email.strip().lower())
        if row is None or not verify_password(password, row["encrypted_password"]):
            raise InvalidCredentialsError()

        row = await self._store.update_one(
            CREDENTIALS_TABLE, row["id"], {"last_sign_in_at": datetime.now(timezone.utc)}
        )
        session = self._start_session(row)
        logger.info("Signed in", auth_user_id=row["id"])
        await self._notify(AuthChangeEvent.signed_in, session)
        return session

    async def sign_out(self) -> None:
        self._access_token = None
        logger.info("Signed out")
        await self._notify(AuthChangeEvent.signed_out, None)

    # ── Passwords ─────────────────────────────────────────────────────────────

    async def reset_password_for_email(self, email: str) -> None:
        """
        Issue a recovery token for the address, if it is registered.
        Unknown addresses are accepted silently so callers cannot probe
        which emails exist.
        """
        row = await self._store.select_one(CREDENTIALS_TABLE, email=email.strip().lower())
        if row is None:
            return
        token, _ = create_session_token(
            subject=row["id"], email=row["email"], purpose=RECOVERY_PURPOSE
        )
        await self._recovery_sender(row["email"], token)

    async def verify_recovery(self, token: str) -> AuthSession:
        """Exchange a recovery token for a regular session."""
        try:
            payload = decode_session_token(token)
        except JWTError as exc:
            raise SessionError(f"Invalid recovery token: {exc}") from exc
        if payload.get("purpose") != RECOVERY_PURPOSE:
            raise SessionError("Token is not a recovery token")

        row = await self._store.select_one(CREDENTIALS_TABLE, id=payload.get("sub"))
        if row is None:
            raise SessionError("Recovery token refers to an unknown user")
        session = self._start_session(row)
        await self._notify(AuthChangeEvent.password_recovery, session)
        return session

    async def update_password(self, new_password: str) -> CredentialRead:
        if len(new_password) < settings.PASSWORD_MIN_LENGTH:
            raise PasswordPolicyError(
                f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters"
            )
        session = await self.get_session()
        if session is None:
            raise SessionError("Auth session missing")

        row = await self._store.update_one(
            CREDENTIALS_TABLE, session.user.id, {"encrypted_password": hash_password(new_password)}
        )
        credential = CredentialRead.model_validate(row)
        logger.info("Password updated", auth_user_id=credential.id)
        await self._notify(
            AuthChangeEvent.user_updated, session.model_copy(update={"user": credential})
        )
        return credential

    # ── Admin ─────────────────────────────────────────────────────────────────

    async def admin_delete_user(self, auth_user_id: str) -> None:
        await self._store.delete_one(CREDENTIALS_TABLE, auth_user_id)
        logger.info("Credential deleted", auth_user_id=auth_user_id)
