"""
Authentication service for the ManPower platform.

Handles sign-up, sign-in, sign-out, token refresh and token resolution.
Uses bcrypt for password hashing and PyJWT for token generation and
verification. Every issued token carries the id of a server-side
``AuthSession`` in its ``sid`` claim; revoking the session invalidates
all of its tokens.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from manpower.core.config import settings
from manpower.models.user import AuthSession, User, UserRole

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class AuthError(Exception):
    """Base exception for authentication failures."""


class EmailAlreadyRegisteredError(AuthError):
    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__("A user with this email address already exists.")


class InvalidCredentialsError(AuthError):
    def __init__(self) -> None:
        super().__init__("Invalid email or password.")


class InvalidTokenError(AuthError):
    """Raised for expired, malformed, mistyped or revoked tokens."""


# ---------------------------------------------------------------------------
# Resolved identity
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AuthIdentity:
    """The identity behind a valid access token."""

    user_id: uuid.UUID
    email: str
    session_id: uuid.UUID
    role: Optional[str] = None


# ---------------------------------------------------------------------------
# Password hashing (bcrypt used directly, passlib is incompatible with 4.x+)
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a plaintext password using bcrypt."""
    # bcrypt only looks at the first 72 bytes
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a bcrypt hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.checkpw(pw_bytes, hashed_password.encode("utf-8"))


# ---------------------------------------------------------------------------
# JWT token generation
# ---------------------------------------------------------------------------

def _encode(
    user: User,
    session_id: uuid.UUID,
    token_type: str,
    expires_at: datetime,
) -> str:
    payload = {
        "sub": str(user.id),
        "sid": str(session_id),
        "email": user.email,
        "role": user.role.value,
        "type": token_type,
        "exp": expires_at,
        "iat": datetime.now(timezone.utc),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(user: User, session_id: uuid.UUID) -> tuple[str, datetime]:
    """Create a short-lived access token.

    Returns:
        Tuple of (token_string, expiration_datetime).
    """
    expires_at = datetime.now(timezone.utc) + timedelta(
        minutes=settings.access_token_expire_minutes
    )
    return _encode(user, session_id, "access", expires_at), expires_at


def create_refresh_token(user: User, session_id: uuid.UUID) -> tuple[str, datetime]:
    """Create a long-lived refresh token.

    Returns:
        Tuple of (token_string, expiration_datetime).
    """
    expires_at = datetime.now(timezone.utc) + timedelta(
        days=settings.refresh_token_expire_days
    )
    return _encode(user, session_id, "refresh", expires_at), expires_at


def create_tokens(user: User, session_id: uuid.UUID) -> dict[str, Any]:
    """Create both tokens for a session.

    Returns:
        Dictionary with access_token, refresh_token, expires_at and
        session_id.
    """
    access_token, access_expires = create_access_token(user, session_id)
    refresh_token, _ = create_refresh_token(user, session_id)
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "expires_at": access_expires,
        "session_id": session_id,
    }


def decode_token(token: str) -> dict[str, Any]:
    """Decode and verify a JWT token.

    Raises:
        jwt.ExpiredSignatureError: If the token has expired.
        jwt.InvalidTokenError: If the token is otherwise invalid.
    """
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
    )


def _parse_role(role: str | UserRole) -> UserRole:
    """Convert a role string to a ``UserRole``; only client and employee exist."""
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(role.lower().strip())
    except ValueError:
        raise ValueError(f"Invalid role: {role}. Must be 'client' or 'employee'.")


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    """Look up a user by email address."""
    stmt = select(User).where(User.email == email.lower().strip())
    result = await db.execute(stmt)
    return result.scalars().first()


async def get_user_by_id(db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
    """Look up a user by primary key."""
    stmt = select(User).where(User.id == user_id)
    result = await db.execute(stmt)
    return result.scalars().first()


async def _open_session(db: AsyncSession, user: User) -> AuthSession:
    auth_session = AuthSession(user_id=user.id)
    db.add(auth_session)
    await db.flush()
    return auth_session


async def _resolve(
    db: AsyncSession,
    token: str,
    expected_type: str,
) -> tuple[dict[str, Any], AuthSession]:
    """Validate a token and its session.

    Raises:
        InvalidTokenError: On any failure, with a human-readable reason.
    """
    try:
        payload = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise InvalidTokenError(f"The {expected_type} token has expired.")
    except jwt.InvalidTokenError:
        raise InvalidTokenError(f"Invalid {expected_type} token.")

    if payload.get("type") != expected_type:
        raise InvalidTokenError(f"Invalid token type: expected {expected_type!r}.")

    try:
        uuid.UUID(payload["sub"])
        session_id = uuid.UUID(payload["sid"])
    except (KeyError, TypeError, ValueError):
        raise InvalidTokenError("Invalid token: malformed claims.")

    result = await db.execute(select(AuthSession).where(AuthSession.id == session_id))
    auth_session = result.scalar_one_or_none()
    if auth_session is None or not auth_session.is_active:
        raise InvalidTokenError("This session has been signed out.")
    if str(auth_session.user_id) != payload["sub"]:
        raise InvalidTokenError("Invalid token: session mismatch.")

    return payload, auth_session


# ---------------------------------------------------------------------------
# Service functions
# ---------------------------------------------------------------------------

async def register(
    db: AsyncSession,
    email: str,
    password: str,
    full_name: str,
    role: str | UserRole,
) -> tuple[User, dict[str, Any]]:
    """Register a new user and open their first session.

    Raises:
        EmailAlreadyRegisteredError: If the email is taken.
        ValueError: If the role is not client or employee.
    """
    email = email.lower().strip()
    user_role = _parse_role(role)

    if await get_user_by_email(db, email) is not None:
        raise EmailAlreadyRegisteredError(email)

    user = User(
        email=email,
        password_hash=hash_password(password),
        full_name=full_name.strip(),
        role=user_role,
        skills=[],
        last_login_at=datetime.now(timezone.utc),
    )
    db.add(user)
    await db.flush()

    auth_session = await _open_session(db, user)
    logger.info("User registered: %s (role=%s)", user.id, user_role.value)
    return user, create_tokens(user, auth_session.id)


async def login(
    db: AsyncSession,
    email: str,
    password: str,
) -> tuple[User, dict[str, Any]]:
    """Authenticate with email and password and open a new session.

    Raises:
        InvalidCredentialsError: For an unknown email or a wrong password.
    """
    user = await get_user_by_email(db, email)
    if user is None or user.password_hash is None:
        raise InvalidCredentialsError()
    if not verify_password(password, user.password_hash):
        raise InvalidCredentialsError()

    user.last_login_at = datetime.now(timezone.utc)
    auth_session = await _open_session(db, user)
    logger.info("User signed in: %s (session=%s)", user.id, auth_session.id)
    return user, create_tokens(user, auth_session.id)


async def refresh_token(
    db: AsyncSession,
    refresh_token_str: str,
) -> tuple[User, dict[str, Any]]:
    """Exchange a refresh token for a new token pair on the same session.

    Raises:
        InvalidTokenError: If the token is invalid, expired or revoked.
    """
    _payload, auth_session = await _resolve(db, refresh_token_str, "refresh")
    user = await get_user_by_id(db, auth_session.user_id)
    if user is None:
        raise InvalidTokenError("User not found.")

    auth_session.refreshed_at = datetime.now(timezone.utc)
    await db.flush()
    return user, create_tokens(user, auth_session.id)


async def sign_out(db: AsyncSession, session_id: uuid.UUID) -> Optional[AuthSession]:
    """Revoke a session. Signing out twice is harmless.

    Returns the session, or None if it does not exist.
    """
    result = await db.execute(select(AuthSession).where(AuthSession.id == session_id))
    auth_session = result.scalar_one_or_none()
    if auth_session is None:
        return None
    if auth_session.is_active:
        auth_session.revoked_at = datetime.now(timezone.utc)
        await db.flush()
        logger.info("Session revoked: %s (user=%s)", session_id, auth_session.user_id)
    return auth_session


async def get_current_session(db: AsyncSession, token: Optional[str]) -> Optional[AuthIdentity]:
    """Resolve an access token to an identity, or None if it is unusable."""
    if not token:
        return None
    try:
        payload, auth_session = await _resolve(db, token, "access")
    except InvalidTokenError as exc:
        logger.debug("Access token rejected: %s", exc)
        return None
    return AuthIdentity(
        user_id=auth_session.user_id,
        email=payload.get("email", ""),
        session_id=auth_session.id,
        role=payload.get("role"),
    )


async def get_current_user(db: AsyncSession, token: str) -> User:
    """Decode an access token and return the corresponding user.

    Raises:
        InvalidTokenError: If the token is invalid, expired, revoked or the
            user no longer exists.
    """
    _payload, auth_session = await _resolve(db, token, "access")
    user = await get_user_by_id(db, auth_session.user_id)
    if user is None:
        raise InvalidTokenError("User not found.")
    return user


async def get_session_id(db: AsyncSession, token: str) -> uuid.UUID:
    """Return the session id behind a valid access token."""
    _payload, auth_session = await _resolve(db, token, "access")
    return auth_session.id
