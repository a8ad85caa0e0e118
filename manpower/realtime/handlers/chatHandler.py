"""
Conversation Chat Handler
=========================

WebSocket handler for live conversations on the ``/chat`` namespace.
Each connected sid owns one ``ConversationFeed``; binding a conversation
loads its history, and every later insert (from this socket, another
socket or the REST API) re-sends the full ordered list.

Events received FROM clients:
  conversation:bind     { kind: "contract" | "proposal", id }
  conversation:unbind   {}
  conversation:send     { content }

Events emitted TO clients:
  conversation:messages { kind, id, messages: [ ... ] }
  message:new           { id, kind, conversation_id, sender_id, sender_name, content, created_at }
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from manpower.models.chat import ConversationKey
from manpower.models.user import User
from manpower.realtime.conversationFeed import ConversationFeed
from manpower.services import chatService
from manpower.services.chatService import ChatError, MessageView
from manpower.services.gateway import get_gateway

from ..socketServer import (
    CHAT_NAMESPACE,
    broadcast_new_message,
    conversation_room,
    get_feed,
    get_sid_meta,
    set_feed,
    sio,
)

logger = logging.getLogger(__name__)


def _error(message: str) -> dict[str, Any]:
    return {"ok": False, "error": message}


async def _sender_name(user_id: uuid.UUID) -> str | None:
    async with get_gateway().sessions() as db:
        user = await db.get(User, user_id)
        return user.display_name if user is not None else None


async def _feed_for(sid: str) -> ConversationFeed | None:
    """Return the sid's feed, creating it on first use."""
    feed = get_feed(sid)
    if feed is not None:
        return feed
    meta = get_sid_meta(sid)
    if meta is None:
        return None
    user_id = uuid.UUID(meta["user_id"])

    async def push(key: ConversationKey, messages: list[MessageView]) -> None:
        await sio.emit(
            "conversation:messages",
            {
                "kind": key.kind.value,
                "id": str(key.id),
                "messages": [view.to_payload() for view in messages],
            },
            to=sid,
            namespace=CHAT_NAMESPACE,
        )

    feed = ConversationFeed(get_gateway(), user_id, on_update=push, sender_name=await _sender_name(user_id))
    set_feed(sid, feed)
    return feed


@sio.on("conversation:bind", namespace=CHAT_NAMESPACE)
async def handle_bind(sid: str, data: dict[str, Any]) -> dict[str, Any]:
    """Bind the sid's feed to a conversation.

    Payload: { "kind": "contract" | "proposal", "id": "<uuid>" }
    """
    try:
        key = chatService.parse_key((data or {}).get("kind"), (data or {}).get("id"))
    except (ValueError, TypeError):
        return _error("kind must be 'contract' or 'proposal' and id a valid UUID")

    feed = await _feed_for(sid)
    if feed is None:
        return _error("Not authenticated")

    previous = feed.key
    try:
        messages = await feed.bind(key)
    except ChatError as exc:
        if previous is not None:
            await sio.leave_room(sid, conversation_room(previous), namespace=CHAT_NAMESPACE)
        return _error(str(exc))

    if previous is not None and previous != key:
        await sio.leave_room(sid, conversation_room(previous), namespace=CHAT_NAMESPACE)
    await sio.enter_room(sid, conversation_room(key), namespace=CHAT_NAMESPACE)
    logger.info("sid=%s bound %s", sid, key)
    return {"ok": True, "conversation": str(key), "count": len(messages)}


@sio.on("conversation:unbind", namespace=CHAT_NAMESPACE)
async def handle_unbind(sid: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
    feed = get_feed(sid)
    if feed is None or feed.key is None:
        return {"ok": True}
    key = feed.key
    await feed.unbind()
    await sio.leave_room(sid, conversation_room(key), namespace=CHAT_NAMESPACE)
    return {"ok": True}


@sio.on("conversation:send", namespace=CHAT_NAMESPACE)
async def handle_send(sid: str, data: dict[str, Any]) -> dict[str, Any]:
    """Send a message to the bound conversation.

    Payload: { "content": "<text>" }
    """
    feed = get_feed(sid)
    if feed is None or feed.key is None:
        return _error("No conversation is bound")

    try:
        view = await feed.send(str((data or {}).get("content") or ""))
    except ChatError as exc:
        return _error(str(exc))

    await broadcast_new_message(view, skip_sid=sid)
    return {"ok": True, "message": view.to_payload()}
