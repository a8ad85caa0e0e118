"""
WebSocket Server
================

Socket.IO server for live conversations. Clients connect on the ``/chat``
namespace, bind a contract or proposal conversation and receive its full
message list whenever it changes.

Architecture:
  - python-socketio AsyncServer mounted as ASGI middleware on FastAPI
  - Redis client manager when ``settings.redis_url`` is set, so room
    broadcasts reach clients connected to other server processes
  - Access-token authentication on connect through the gateway; a session
    that signs out has its sockets disconnected
  - One ``ConversationFeed`` per connected sid

Connection lifecycle:
  1. Client connects with ``auth: { token: "<access jwt>" }``
  2. Server resolves the session and joins the personal room ``user:<id>``
  3. Client binds a conversation (see ``handlers.chatHandler``); the sid
     also joins ``conversation:<kind>:<id>``
  4. On disconnect the feed is closed and the registry entry removed
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import socketio

from manpower.core.config import settings
from manpower.events.authEvents import AuthChange, AuthEvent
from manpower.models.chat import ConversationKey
from manpower.realtime.conversationFeed import ConversationFeed
from manpower.services.chatService import MessageView
from manpower.services.gateway import get_gateway

logger = logging.getLogger(__name__)

CHAT_NAMESPACE = "/chat"


# ---------------------------------------------------------------------------
# Socket.IO server instance
# ---------------------------------------------------------------------------

def _build_client_manager() -> Optional[socketio.AsyncRedisManager]:
    if not settings.redis_url:
        return None
    return socketio.AsyncRedisManager(settings.redis_url, write_only=False)


client_manager = _build_client_manager()

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.ws_cors_allowed_origins,
    client_manager=client_manager,
    logger=False,
    engineio_logger=False,
    ping_timeout=settings.ws_ping_timeout,
    ping_interval=settings.ws_ping_interval,
    max_http_buffer_size=1_000_000,  # 1 MB
    namespaces=[CHAT_NAMESPACE],
)


# ---------------------------------------------------------------------------
# Connection registry: maps user_id -> set of sids (one user, many devices)
# Also maps sid -> user metadata, and sid -> its conversation feed.
# ---------------------------------------------------------------------------

_user_sids: dict[str, set[str]] = {}
_sid_meta: dict[str, dict[str, Any]] = {}
_feeds: dict[str, ConversationFeed] = {}
_auth_unsubscribe = None


def get_user_sids(user_id: str) -> set[str]:
    """Return all session IDs for a given user (may span multiple devices)."""
    return _user_sids.get(user_id, set())


def get_sid_meta(sid: str) -> dict[str, Any] | None:
    """Return the metadata dict for a given session ID."""
    return _sid_meta.get(sid)


def get_feed(sid: str) -> ConversationFeed | None:
    return _feeds.get(sid)


def set_feed(sid: str, feed: ConversationFeed) -> None:
    _feeds[sid] = feed


def _register_connection(sid: str, user_id: str, meta: dict[str, Any]) -> None:
    """Track a new connection in the in-process registry."""
    _user_sids.setdefault(user_id, set()).add(sid)
    _sid_meta[sid] = {**meta, "user_id": user_id}


def _unregister_connection(sid: str) -> str | None:
    """Remove a connection from the registry. Returns the user_id or None."""
    meta = _sid_meta.pop(sid, None)
    if meta is None:
        return None
    user_id: str = meta["user_id"]
    user_set = _user_sids.get(user_id)
    if user_set:
        user_set.discard(sid)
        if not user_set:
            del _user_sids[user_id]
    return user_id


def conversation_room(key: ConversationKey) -> str:
    return f"conversation:{key}"


# ---------------------------------------------------------------------------
# Auth events: a signed-out session loses its sockets
# ---------------------------------------------------------------------------

async def _on_auth_change(change: AuthChange) -> None:
    if change.event != AuthEvent.SIGNED_OUT:
        return
    session_id = str(change.session_id) if change.session_id else None
    for sid in list(get_user_sids(str(change.user_id))):
        meta = _sid_meta.get(sid) or {}
        if session_id is None or meta.get("session_id") == session_id:
            logger.info("Disconnecting sid=%s after sign-out of session=%s", sid, session_id)
            feed = _feeds.pop(sid, None)
            if feed is not None:
                await feed.close()
            await sio.disconnect(sid, namespace=CHAT_NAMESPACE)


def _ensure_auth_subscription() -> None:
    global _auth_unsubscribe
    if _auth_unsubscribe is None:
        _auth_unsubscribe = get_gateway().auth.subscribe(_on_auth_change)


# ---------------------------------------------------------------------------
# /chat connect / disconnect
# ---------------------------------------------------------------------------

@sio.on("connect", namespace=CHAT_NAMESPACE)
async def connect_chat(sid: str, environ: dict[str, Any], auth: dict[str, Any] | None = None) -> bool:
    """Authenticate on /chat.

    The client must provide ``auth: { token: "<jwt>" }`` on connect.
    Returns ``False`` to reject unauthenticated connections.
    """
    token = (auth or {}).get("token")
    identity = await get_gateway().auth.get_current_session(token)
    if identity is None:
        logger.info("Rejected /chat connect for sid=%s", sid)
        return False

    _ensure_auth_subscription()
    user_id = str(identity.user_id)
    _register_connection(
        sid,
        user_id,
        {"session_id": str(identity.session_id), "role": identity.role},
    )
    await sio.enter_room(sid, f"user:{user_id}", namespace=CHAT_NAMESPACE)
    logger.info("Connected /chat: sid=%s user_id=%s", sid, user_id)
    return True


@sio.on("disconnect", namespace=CHAT_NAMESPACE)
async def disconnect_chat(sid: str, *args: Any) -> None:
    feed = _feeds.pop(sid, None)
    if feed is not None:
        await feed.close()
    user_id = _unregister_connection(sid)
    logger.info("Disconnected /chat: sid=%s user_id=%s", sid, user_id)


# ---------------------------------------------------------------------------
# Broadcast helpers (used by handlers and routes)
# ---------------------------------------------------------------------------

async def broadcast_new_message(view: MessageView, *, skip_sid: str | None = None) -> None:
    """Send a stored message to every socket bound to its conversation,
    including those held by other server processes."""
    key = ConversationKey(view.kind, view.conversation_id)
    room = conversation_room(key)
    await sio.emit("message:new", view.to_payload(), room=room, namespace=CHAT_NAMESPACE, skip_sid=skip_sid)
    logger.debug("Broadcast message:new to room=%s", room)


async def close_feeds() -> None:
    """Close every conversation feed held by this process."""
    global _auth_unsubscribe
    for sid in list(_feeds):
        feed = _feeds.pop(sid)
        await feed.close()
    if _auth_unsubscribe is not None:
        _auth_unsubscribe()
        _auth_unsubscribe = None


# ---------------------------------------------------------------------------
# ASGI app for mounting onto FastAPI
# ---------------------------------------------------------------------------

socket_app = socketio.ASGIApp(
    socketio_server=sio,
    socketio_path="/ws/socket.io",
)
