"""
Shared FastAPI dependencies for the ManPower backend.

Provides the async database session dependency used by all route handlers,
authentication and role dependencies that resolve the current user from a
JWT Bearer token, the data gateway, and a per-request session state holder.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from manpower.core.config import settings
from manpower.models.user import User, UserRole
from manpower.services import auth_service
from manpower.services.gateway import DataGateway
from manpower.services.gateway import get_gateway as _process_gateway
from manpower.services.sessionState import SessionState

# ---------------------------------------------------------------------------
# Async engine & session factory
# ---------------------------------------------------------------------------
# The engine is created once at module import time.  The session factory
# produces lightweight ``AsyncSession`` instances that are scoped to a single
# request via the ``get_db`` dependency below.
# ---------------------------------------------------------------------------

engine = create_async_engine(
    settings.database_url,
    echo=settings.sql_echo,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session that commits when the request
    succeeds and rolls back on any exception.

    Usage in a route::

        @router.get("/items")
        async def list_items(db: DBSession):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


DBSession = Annotated[AsyncSession, Depends(get_db)]


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------

def get_gateway() -> DataGateway:
    """Dependency wrapper around the process-wide data gateway."""
    return _process_gateway()


Gateway = Annotated[DataGateway, Depends(get_gateway)]


# ---------------------------------------------------------------------------
# Authentication dependencies
# ---------------------------------------------------------------------------

_bearer_scheme = HTTPBearer(auto_error=True)
_bearer_scheme_optional = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_access_token(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
) -> str:
    return credentials.credentials


async def get_optional_token(
    credentials: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(_bearer_scheme_optional)
    ],
) -> Optional[str]:
    return credentials.credentials if credentials is not None else None


AccessToken = Annotated[str, Depends(get_access_token)]
OptionalToken = Annotated[Optional[str], Depends(get_optional_token)]


async def get_current_user(token: AccessToken, db: DBSession) -> User:
    """Validate the Bearer token and return the authenticated ``User``.

    Raises 401 if the token is missing, expired, revoked, or belongs to a
    user that no longer exists.
    """
    try:
        return await auth_service.get_current_user(db, token)
    except auth_service.AuthError as exc:
        raise _unauthorized(str(exc))


async def get_optional_user(token: OptionalToken, db: DBSession) -> Optional[User]:
    """Like ``get_current_user`` but returns ``None`` without a usable token."""
    if token is None:
        return None
    try:
        return await auth_service.get_current_user(db, token)
    except auth_service.AuthError:
        return None


CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[Optional[User], Depends(get_optional_user)]


def require_role(role: UserRole):
    """Build a dependency that admits only users with ``role`` (403 otherwise)."""

    async def _require_role(current_user: CurrentUser) -> User:
        if current_user.role != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"This action requires the '{role.value}' role.",
            )
        return current_user

    return _require_role


ClientUser = Annotated[User, Depends(require_role(UserRole.CLIENT))]
EmployeeUser = Annotated[User, Depends(require_role(UserRole.EMPLOYEE))]


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------

async def get_session_state(
    token: OptionalToken,
    gateway: Gateway,
) -> AsyncGenerator[SessionState, None]:
    """Resolve a ``SessionState`` for the request's Bearer token (anonymous
    when absent) and detach it from the auth event bus afterwards."""
    session = SessionState(gateway)
    await session.initialize(token)
    try:
        yield session
    finally:
        session.close()


SessionDep = Annotated[SessionState, Depends(get_session_state)]
