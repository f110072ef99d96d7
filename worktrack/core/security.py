"""
core/security.py
----------------
Password hashing, session tokens and random secrets.

Design decisions:
  - bcrypt via passlib; the work factor comes from BCRYPT_ROUNDS so test
    runs can lower it.
  - Session tokens are HS256 JWTs whose 'sub' is the credential id. A
    'purpose' claim separates ordinary access tokens from password
    recovery tokens, so one can never be replayed as the other.
  - License keys and temporary passwords come from the secrets module.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt
from passlib.context import CryptContext

from worktrack.core.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS
)

ACCESS_PURPOSE = "access"
RECOVERY_PURPOSE = "recovery"


# ── Password Utilities ────────────────────────────────────────────────────────

def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the plain-text password."""
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """Constant-time comparison of plain password against stored hash."""
    return pwd_context.verify(plain, hashed)


def generate_temporary_password() -> str:
    """Random password handed to invited members out-of-band."""
    return secrets.token_urlsafe(12)


def generate_license_key() -> str:
    """Return 'lic-' followed by 32 random hex characters."""
    return f"lic-{secrets.token_hex(16)}"


# ── JWT Utilities ─────────────────────────────────────────────────────────────

def create_session_token(
    subject: str,
    email: str,
    purpose: str = ACCESS_PURPOSE,
    expires_delta: Optional[timedelta] = None,
) -> tuple[str, datetime]:
    """
    Mint a signed session token.

    Args:
        subject: Credential UUID (stored in 'sub' claim).
        email: Credential email, echoed back to clients.
        purpose: 'access' for sessions, 'recovery' for password resets.
        expires_delta: Optional custom expiry; defaults to settings value.

    Returns:
        (token, expires_at)
    """
    if expires_delta is None:
        minutes = (
            settings.RECOVERY_TOKEN_EXPIRE_MINUTES
            if purpose == RECOVERY_PURPOSE
            else settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )
        expires_delta = timedelta(minutes=minutes)
    now = datetime.now(timezone.utc)
    expire = now + expires_delta
    payload: Dict[str, Any] = {
        "sub": subject,
        "email": email,
        "purpose": purpose,
        "exp": expire,
        "iat": now,
    }
    token = jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return token, expire


def decode_session_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a session token.

    Raises:
        ExpiredSignatureError: If the token has expired.
        JWTError: If the token is invalid or tampered with.

    Returns:
        Raw payload dict.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
