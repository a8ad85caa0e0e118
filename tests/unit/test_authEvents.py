"""Unit tests for the auth event bus."""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from manpower.events.authEvents import AuthChange, AuthEvent, AuthEventBus

pytestmark = pytest.mark.asyncio


class TestAuthEventBus:

    async def test_sync_and_async_listeners(self):
        bus = AuthEventBus()
        sync_listener = MagicMock()
        async_listener = AsyncMock()
        bus.subscribe(sync_listener)
        bus.subscribe(async_listener)
        change = AuthChange(AuthEvent.SIGNED_IN, uuid.uuid4(), uuid.uuid4())

        await bus.emit(change)

        sync_listener.assert_called_once_with(change)
        async_listener.assert_awaited_once_with(change)

    async def test_user_filter(self):
        bus = AuthEventBus()
        user_id = uuid.uuid4()
        listener = MagicMock()
        bus.subscribe(listener, user_id=user_id)

        await bus.emit(AuthChange(AuthEvent.USER_UPDATED, uuid.uuid4()))
        listener.assert_not_called()

        await bus.emit(AuthChange(AuthEvent.USER_UPDATED, user_id))
        listener.assert_called_once()

    async def test_unsubscribe(self):
        bus = AuthEventBus()
        listener = MagicMock()
        unsubscribe = bus.subscribe(listener)

        unsubscribe()
        unsubscribe()
        await bus.emit(AuthChange(AuthEvent.SIGNED_OUT, uuid.uuid4()))

        listener.assert_not_called()
        assert bus.listener_count == 0

    async def test_failing_listener_does_not_stop_delivery(self):
        bus = AuthEventBus()
        bus.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        survivor = AsyncMock()
        bus.subscribe(survivor)

        await bus.emit(AuthChange(AuthEvent.TOKEN_REFRESHED, uuid.uuid4()))

        survivor.assert_awaited_once()

    async def test_listener_may_unsubscribe_while_notified(self):
        bus = AuthEventBus()
        calls = []

        def once(change):
            calls.append(change)
            unsubscribe()

        unsubscribe = bus.subscribe(once)
        await bus.emit(AuthChange(AuthEvent.SIGNED_OUT, uuid.uuid4()))
        await bus.emit(AuthChange(AuthEvent.SIGNED_OUT, uuid.uuid4()))

        assert len(calls) == 1
