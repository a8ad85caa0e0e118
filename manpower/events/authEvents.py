"""
Auth Event Bus
==============

In-process publish/subscribe channel for identity changes. Session state
holders and realtime connections subscribe here to learn when a user signs
in, signs out, refreshes a token or edits their profile.

Events emitted:
  - SIGNED_IN
  - SIGNED_OUT
  - TOKEN_REFRESHED
  - USER_UPDATED

Callbacks may be plain functions or coroutine functions. A failing
callback is logged and does not prevent delivery to the others.
"""

from __future__ import annotations

import enum
import inspect
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)


class AuthEvent(str, enum.Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


@dataclass(frozen=True)
class AuthChange:
    event: AuthEvent
    user_id: uuid.UUID
    session_id: Optional[uuid.UUID] = None


AuthListener = Callable[[AuthChange], Union[Awaitable[Any], Any]]


class AuthEventBus:
    """Fan-out of ``AuthChange`` notifications, optionally filtered by user."""

    def __init__(self) -> None:
        self._listeners: list[tuple[Optional[uuid.UUID], AuthListener]] = []

    def subscribe(
        self,
        callback: AuthListener,
        user_id: Optional[uuid.UUID] = None,
    ) -> Callable[[], None]:
        """Register ``callback``; returns a function that removes it again.

        With ``user_id`` set, only changes for that user are delivered.
        """
        entry = (user_id, callback)
        self._listeners.append(entry)

        def unsubscribe() -> None:
            try:
                self._listeners.remove(entry)
            except ValueError:
                pass

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def emit(self, change: AuthChange) -> None:
        logger.info(
            "Auth event %s for user %s (session=%s)",
            change.event.value,
            change.user_id,
            change.session_id,
        )
        # Listeners may unsubscribe while being notified
        for user_id, callback in list(self._listeners):
            if user_id is not None and user_id != change.user_id:
                continue
            try:
                result = callback(change)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "Auth listener failed for %s (user=%s)",
                    change.event.value,
                    change.user_id,
                )


# Process-wide bus used by the default gateway
auth_events = AuthEventBus()
