"""
Unit tests for the Socket.IO connection registry and the sign-out hook.

No server is started; ``sio.disconnect`` is patched so the tests only
check which sids a sign-out reaches.
"""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from manpower.events.authEvents import AuthChange, AuthEvent
from manpower.models.chat import ConversationKey
from manpower.realtime import socketServer

pytestmark = pytest.mark.asyncio


@pytest.fixture
def registry():
    """Two sids of one user on different sessions, cleared afterwards."""
    user_id = str(uuid.uuid4())
    session_a, session_b = str(uuid.uuid4()), str(uuid.uuid4())
    socketServer._register_connection("sid-a", user_id, {"session_id": session_a})
    socketServer._register_connection("sid-b", user_id, {"session_id": session_b})
    feed = MagicMock()
    feed.close = AsyncMock()
    socketServer.set_feed("sid-a", feed)
    yield {"user_id": user_id, "session_a": session_a, "session_b": session_b, "feed": feed}
    for sid in ("sid-a", "sid-b"):
        socketServer._unregister_connection(sid)
        socketServer._feeds.pop(sid, None)


class TestRegistry:

    async def test_one_user_many_sids(self, registry):
        assert socketServer.get_user_sids(registry["user_id"]) == {"sid-a", "sid-b"}
        assert socketServer.get_sid_meta("sid-a")["user_id"] == registry["user_id"]

    async def test_unregister(self, registry):
        assert socketServer._unregister_connection("sid-a") == registry["user_id"]
        assert socketServer._unregister_connection("sid-a") is None
        assert socketServer.get_user_sids(registry["user_id"]) == {"sid-b"}

    async def test_conversation_room(self):
        conversation_id = uuid.uuid4()
        room = socketServer.conversation_room(ConversationKey.proposal(conversation_id))
        assert room == f"conversation:proposal:{conversation_id}"


class TestSignOutHook:

    async def test_only_matching_session_is_disconnected(self, registry):
        change = AuthChange(
            AuthEvent.SIGNED_OUT,
            uuid.UUID(registry["user_id"]),
            uuid.UUID(registry["session_a"]),
        )
        with patch.object(socketServer.sio, "disconnect", new_callable=AsyncMock) as disconnect:
            await socketServer._on_auth_change(change)

        disconnect.assert_awaited_once_with("sid-a", namespace=socketServer.CHAT_NAMESPACE)
        registry["feed"].close.assert_awaited_once()
        assert socketServer.get_feed("sid-a") is None

    async def test_other_events_ignored(self, registry):
        change = AuthChange(AuthEvent.USER_UPDATED, uuid.UUID(registry["user_id"]))
        with patch.object(socketServer.sio, "disconnect", new_callable=AsyncMock) as disconnect:
            await socketServer._on_auth_change(change)

        disconnect.assert_not_awaited()
        registry["feed"].close.assert_not_awaited()


class TestClientManager:

    async def test_in_process_manager_without_redis(self, monkeypatch):
        monkeypatch.setattr(socketServer.settings, "redis_url", "")
        assert socketServer._build_client_manager() is None
