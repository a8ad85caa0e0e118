"""
Session State Holder
====================

Resolves "who is signed in and what is their profile" for one request or
one realtime connection, and keeps that answer current by listening to
the gateway's auth events.

Lifecycle::

    initializing --> ready | error --> signed_out

``loading`` is True only until ``initialize`` has resolved, whether or not
an identity or profile was found. A failed session lookup or profile fetch
is logged and leaves status ``error``; it never blocks.
"""

from __future__ import annotations

import enum
import inspect
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from manpower.events.authEvents import AuthChange, AuthEvent
from manpower.models.user import User, UserRole
from manpower.services.auth_service import AuthIdentity
from manpower.services.routeGuard import PUBLIC_LANDING, home_route_for

if TYPE_CHECKING:
    from manpower.services.gateway import DataGateway

logger = logging.getLogger(__name__)


class SessionStatus(str, enum.Enum):
    INITIALIZING = "initializing"
    READY = "ready"
    ERROR = "error"
    SIGNED_OUT = "signed_out"


SessionListener = Callable[["SessionState"], Union[Awaitable[Any], Any]]


class SessionState:
    def __init__(self, gateway: DataGateway) -> None:
        self._gateway = gateway
        self._identity: Optional[AuthIdentity] = None
        self._profile: Optional[User] = None
        self._status = SessionStatus.INITIALIZING
        self._loading = True
        self._listeners: list[SessionListener] = []
        self._detach_auth: Optional[Callable[[], None]] = None

    # -- read-only view --------------------------------------------------

    @property
    def user(self) -> Optional[AuthIdentity]:
        return self._identity

    @property
    def profile(self) -> Optional[User]:
        return self._profile

    @property
    def role(self) -> Optional[UserRole]:
        return self._profile.role if self._profile is not None else None

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def home_route(self) -> str:
        return home_route_for(self.role)

    # -- lifecycle -------------------------------------------------------

    async def initialize(self, access_token: Optional[str]) -> SessionState:
        """Resolve the session for ``access_token`` (None for anonymous)."""
        try:
            self._identity = await self._gateway.auth.get_current_session(access_token)
            if self._identity is not None:
                self._attach(self._identity)
                await self._load_profile()
            else:
                self._profile = None
                self._status = SessionStatus.READY
        except SQLAlchemyError:
            logger.exception("Session lookup failed")
            self._detach()
            self._identity = None
            self._profile = None
            self._status = SessionStatus.ERROR
        finally:
            self._loading = False
        await self._notify()
        return self

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call ``listener(session)`` after every state change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def refresh_profile(self) -> None:
        if self._identity is None:
            return
        await self._load_profile()
        await self._notify()

    async def sign_out(self) -> str:
        """Revoke the session and clear identity; returns the landing route."""
        identity = self._identity
        self._detach()
        if identity is not None:
            await self._gateway.auth.sign_out(identity.session_id)
        self._clear()
        await self._notify()
        return PUBLIC_LANDING

    def close(self) -> None:
        self._detach()
        self._listeners.clear()

    # -- internals -------------------------------------------------------

    def _attach(self, identity: AuthIdentity) -> None:
        self._detach()
        self._detach_auth = self._gateway.auth.subscribe(
            self._on_auth_change, user_id=identity.user_id
        )

    def _detach(self) -> None:
        if self._detach_auth is not None:
            self._detach_auth()
            self._detach_auth = None

    def _clear(self) -> None:
        self._identity = None
        self._profile = None
        self._status = SessionStatus.SIGNED_OUT

    async def _load_profile(self) -> None:
        identity = self._identity
        if identity is None:
            return
        try:
            async with self._gateway.sessions() as db:
                self._profile = await db.get(User, identity.user_id)
        except SQLAlchemyError:
            logger.exception("Profile fetch failed for user %s", identity.user_id)
            self._profile = None
            self._status = SessionStatus.ERROR
            return
        if self._profile is None:
            logger.warning("No profile row for user %s", identity.user_id)
        self._status = SessionStatus.READY

    async def _on_auth_change(self, change: AuthChange) -> None:
        identity = self._identity
        if identity is None:
            return
        if change.event == AuthEvent.SIGNED_OUT:
            # Another session of the same user signing out does not affect us
            if change.session_id is not None and change.session_id != identity.session_id:
                return
            self._detach()
            self._clear()
        else:
            await self._load_profile()
        await self._notify()

    async def _notify(self) -> None:
        for listener in list(self._listeners):
            result = listener(self)
            if inspect.isawaitable(result):
                await result
