"""
Data Gateway
============

A single handle onto the backend services: the database session factory
for table operations, the identity operations, object storage and the
realtime change feed. Components that live outside a request (session
state holders, conversation feeds, socket handlers) receive a gateway
instead of reaching for module globals.

``get_gateway()`` returns the process-wide instance and is also the
FastAPI dependency; tests install their own with ``configure_gateway``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from manpower.events.authEvents import (
    AuthChange,
    AuthEvent,
    AuthEventBus,
    AuthListener,
    auth_events,
)
from manpower.models.user import User, UserRole
from manpower.realtime.changeFeed import ChangeFeed
from manpower.services import auth_service
from manpower.services.auth_service import AuthIdentity
from manpower.storage import LocalStorageProvider, StorageProvider

logger = logging.getLogger(__name__)


class AuthClient:
    """Identity operations; each runs in its own committed transaction and
    announces its outcome on the event bus afterwards."""

    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        events: AuthEventBus,
    ) -> None:
        self._sessions = sessions
        self.events = events

    async def sign_up(
        self,
        email: str,
        password: str,
        full_name: str,
        role: str | UserRole,
    ) -> tuple[User, dict[str, Any]]:
        async with self._sessions() as db:
            user, tokens = await auth_service.register(db, email, password, full_name, role)
            await db.commit()
        await self.events.emit(AuthChange(AuthEvent.SIGNED_IN, user.id, tokens["session_id"]))
        return user, tokens

    async def sign_in(self, email: str, password: str) -> tuple[User, dict[str, Any]]:
        async with self._sessions() as db:
            user, tokens = await auth_service.login(db, email, password)
            await db.commit()
        await self.events.emit(AuthChange(AuthEvent.SIGNED_IN, user.id, tokens["session_id"]))
        return user, tokens

    async def sign_out(self, session_id: uuid.UUID) -> None:
        async with self._sessions() as db:
            auth_session = await auth_service.sign_out(db, session_id)
            await db.commit()
        if auth_session is not None:
            await self.events.emit(
                AuthChange(AuthEvent.SIGNED_OUT, auth_session.user_id, session_id)
            )

    async def refresh(self, refresh_token: str) -> dict[str, Any]:
        async with self._sessions() as db:
            user, tokens = await auth_service.refresh_token(db, refresh_token)
            await db.commit()
        await self.events.emit(
            AuthChange(AuthEvent.TOKEN_REFRESHED, user.id, tokens["session_id"])
        )
        return tokens

    async def get_current_session(self, access_token: Optional[str]) -> Optional[AuthIdentity]:
        if not access_token:
            return None
        async with self._sessions() as db:
            return await auth_service.get_current_session(db, access_token)

    async def notify_user_updated(self, user_id: uuid.UUID) -> None:
        await self.events.emit(AuthChange(AuthEvent.USER_UPDATED, user_id))

    def subscribe(
        self,
        callback: AuthListener,
        user_id: Optional[uuid.UUID] = None,
    ) -> Callable[[], None]:
        return self.events.subscribe(callback, user_id)


@dataclass
class DataGateway:
    sessions: async_sessionmaker[AsyncSession]
    storage: StorageProvider
    changes: ChangeFeed = field(default_factory=ChangeFeed)
    events: AuthEventBus = field(default_factory=AuthEventBus)
    auth: AuthClient = field(init=False)

    def __post_init__(self) -> None:
        self.auth = AuthClient(self.sessions, self.events)


_gateway: Optional[DataGateway] = None


def get_gateway() -> DataGateway:
    """Return the process-wide gateway, creating it on first use."""
    global _gateway
    if _gateway is None:
        from manpower.api.deps import async_session_factory

        _gateway = DataGateway(
            sessions=async_session_factory,
            storage=LocalStorageProvider(),
            events=auth_events,
        )
        logger.info("Data gateway created")
    return _gateway


def configure_gateway(gateway: Optional[DataGateway]) -> None:
    """Install (or with None, clear) the process-wide gateway."""
    global _gateway
    _gateway = gateway
