"""
Change Feed
===========

In-process row-change notification. Writers publish inserts after their
transaction commits; readers open a named channel, register one or more
insert subscriptions with equality filters, and *pull* events from the
channel's queue::

    channel = feed.open_channel("messages:contract:<id>")
    channel.on_insert("messages", {"contract_id": "<id>"})
    async for event in channel:
        ...
    feed.unsubscribe(channel)

Filter values and record values are compared as strings, so UUIDs and
enum values can be given in either form. A closed channel receives no
further events and its iterator terminates.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

logger = logging.getLogger(__name__)

INSERT = "INSERT"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event_type: str
    record: dict[str, Any]


@dataclass(frozen=True)
class Subscription:
    table: str
    event_type: str = INSERT
    filters: dict[str, str] = field(default_factory=dict)

    def matches(self, table: str, event_type: str, record: dict[str, Any]) -> bool:
        if table != self.table or event_type != self.event_type:
            return False
        return all(
            key in record and record[key] is not None and str(record[key]) == value
            for key, value in self.filters.items()
        )


_CLOSED = object()


class Channel:
    """A named queue of change events for a set of subscriptions."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscriptions: list[Subscription] = []
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    def on_insert(self, table: str, filters: Optional[dict[str, Any]] = None) -> Channel:
        """Subscribe to inserts on ``table`` whose record matches ``filters``."""
        normalized = {key: str(value) for key, value in (filters or {}).items()}
        self._subscriptions.append(Subscription(table, INSERT, normalized))
        return self

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def wants(self, table: str, event_type: str, record: dict[str, Any]) -> bool:
        if self._closed:
            return False
        return any(sub.matches(table, event_type, record) for sub in self._subscriptions)

    def deliver(self, event: ChangeEvent) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    async def get(self) -> Optional[ChangeEvent]:
        """Wait for the next event; returns None once the channel is closed."""
        if self._closed and self._queue.empty():
            return None
        item = await self._queue.get()
        if item is _CLOSED:
            return None
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Drop undelivered events and wake any waiting reader
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> Channel:
        return self

    async def __anext__(self) -> ChangeEvent:
        event = await self.get()
        if event is None:
            raise StopAsyncIteration
        return event

    def __repr__(self) -> str:
        return f"<Channel(name={self.name!r}, subscriptions={len(self._subscriptions)}, closed={self._closed})>"


class ChangeFeed:
    """Registry of open channels and the publish side of the feed."""

    def __init__(self) -> None:
        self._channels: list[Channel] = []

    def open_channel(self, name: str) -> Channel:
        channel = Channel(name)
        self._channels.append(channel)
        logger.debug("Channel opened: %s", name)
        return channel

    def unsubscribe(self, channel: Channel) -> None:
        channel.close()
        try:
            self._channels.remove(channel)
        except ValueError:
            return
        logger.debug("Channel closed: %s", channel.name)

    @property
    def channel_count(self) -> int:
        return len(self._channels)

    def publish_insert(self, table: str, record: dict[str, Any]) -> int:
        """Deliver an insert to every matching channel.

        Returns the number of channels the event was delivered to.
        """
        event = ChangeEvent(table=table, event_type=INSERT, record=dict(record))
        delivered = 0
        for channel in list(self._channels):
            if channel.wants(table, INSERT, event.record):
                channel.deliver(event)
                delivered += 1
        logger.debug("Insert on %s delivered to %d channel(s)", table, delivered)
        return delivered
