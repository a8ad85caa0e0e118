"""
Conversation Feed
=================

Live view of one conversation for one user. ``bind`` loads the history
and subscribes to message inserts for the conversation on the change
feed; a pump task pulls those events and, on each one, refetches the full
list and hands it to ``on_update``. ``send`` shows an optimistic pending
entry, stores the message, publishes the insert, and swaps the pending
entry for the stored row (or drops it and re-raises on failure).

A feed is bound to at most one conversation at a time; ``unbind`` (or
``close``) cancels the pump and releases the channel.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Union

from manpower.models.base import utcnow
from manpower.models.chat import ConversationKey
from manpower.realtime.changeFeed import Channel
from manpower.services import chatService
from manpower.services.chatService import ChatError, MessageView

if TYPE_CHECKING:
    from manpower.services.gateway import DataGateway

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[ConversationKey, list[MessageView]], Union[Awaitable[Any], Any]]


class ConversationFeed:
    def __init__(
        self,
        gateway: DataGateway,
        user_id: uuid.UUID,
        on_update: Optional[UpdateCallback] = None,
        sender_name: Optional[str] = None,
    ) -> None:
        self._gateway = gateway
        self._user_id = user_id
        self._sender_name = sender_name
        self._on_update = on_update
        self._key: Optional[ConversationKey] = None
        self._messages: list[MessageView] = []
        self._pending: list[MessageView] = []
        self._channel: Optional[Channel] = None
        self._pump: Optional[asyncio.Task] = None

    @property
    def key(self) -> Optional[ConversationKey]:
        return self._key

    @property
    def bound(self) -> bool:
        return self._key is not None

    @property
    def messages(self) -> list[MessageView]:
        """Stored messages in order, followed by any in-flight sends."""
        return [*self._messages, *self._pending]

    async def bind(self, key: ConversationKey) -> list[MessageView]:
        """Switch the feed to ``key``.

        Raises:
            ConversationNotFoundError, NotParticipantError: The previous
                binding is released either way.
        """
        await self.unbind()

        async with self._gateway.sessions() as db:
            await chatService.verify_participant(db, key, self._user_id)
            stored = await chatService.fetch_messages(db, key)
            history = [MessageView.from_message(message) for message in stored]

        channel = self._gateway.changes.open_channel(f"messages:{key}")
        channel.on_insert(chatService.MESSAGES_TABLE, {key.column: key.id, "kind": key.kind.value})

        self._key = key
        self._messages = history
        self._channel = channel
        self._pump = asyncio.create_task(self._run_pump(channel, key), name=f"feed:{key}")
        logger.info("Feed bound: user=%s conversation=%s (%d messages)", self._user_id, key, len(history))

        await self._emit()
        return self.messages

    async def unbind(self) -> None:
        pump, channel = self._pump, self._channel
        self._pump = None
        self._channel = None
        if channel is not None:
            self._gateway.changes.unsubscribe(channel)
        if pump is not None and not pump.done():
            pump.cancel()
            try:
                await pump
            except asyncio.CancelledError:
                pass
        if self._key is not None:
            logger.info("Feed unbound: user=%s conversation=%s", self._user_id, self._key)
        self._key = None
        self._messages = []
        self._pending = []

    async def close(self) -> None:
        await self.unbind()
        self._on_update = None

    async def refresh(self) -> list[MessageView]:
        """Refetch the bound conversation and replace local state."""
        key = self._key
        if key is None:
            return []
        async with self._gateway.sessions() as db:
            stored = await chatService.fetch_messages(db, key)
        # The binding may have changed while we were reading
        if self._key != key:
            return self.messages
        self._messages = [MessageView.from_message(message) for message in stored]
        stored_ids = {view.id for view in self._messages}
        self._pending = [view for view in self._pending if view.id not in stored_ids]
        await self._emit()
        return self.messages

    async def send(self, content: str) -> MessageView:
        """Send a message to the bound conversation.

        Raises:
            ChatError: If no conversation is bound, or any chat service
                error from storing the message.
        """
        key = self._key
        if key is None:
            raise ChatError("No conversation is bound.")
        text = chatService.validate_content(content)

        placeholder = MessageView(
            id=None,
            kind=key.kind,
            conversation_id=key.id,
            sender_id=self._user_id,
            sender_name=self._sender_name,
            content=text,
            created_at=utcnow(),
            pending=True,
        )
        self._pending.append(placeholder)
        await self._emit()

        try:
            async with self._gateway.sessions() as db:
                message = await chatService.send_message(db, key, self._user_id, text)
                stored = MessageView.from_message(message)
                await db.commit()
        except Exception:
            self._drop_pending(placeholder)
            await self._emit()
            raise

        self._drop_pending(placeholder)
        if self._key == key and all(view.id != stored.id for view in self._messages):
            self._messages.append(replace(stored, pending=False))
        chatService.publish_message(self._gateway.changes, message)
        await self._emit()
        return stored

    # -- internals -------------------------------------------------------

    def _drop_pending(self, placeholder: MessageView) -> None:
        self._pending = [view for view in self._pending if view is not placeholder]

    async def _run_pump(self, channel: Channel, key: ConversationKey) -> None:
        async for _event in channel:
            if self._key != key:
                break
            try:
                await self.refresh()
            except Exception:
                logger.exception("Feed refresh failed for %s", key)

    async def _emit(self) -> None:
        if self._on_update is None or self._key is None:
            return
        result = self._on_update(self._key, self.messages)
        if inspect.isawaitable(result):
            await result
