"""Unit tests for the in-process change feed."""

import asyncio
import uuid

import pytest

from manpower.realtime.changeFeed import ChangeFeed

pytestmark = pytest.mark.asyncio


class TestChangeFeed:

    async def test_matching_insert_is_delivered(self):
        feed = ChangeFeed()
        contract_id = uuid.uuid4()
        channel = feed.open_channel("messages:contract")
        channel.on_insert("messages", {"contract_id": contract_id})

        delivered = feed.publish_insert("messages", {"contract_id": str(contract_id), "content": "hi"})

        assert delivered == 1
        event = await channel.get()
        assert event.table == "messages"
        assert event.event_type == "INSERT"
        assert event.record["content"] == "hi"

    async def test_filters_must_all_match(self):
        feed = ChangeFeed()
        channel = feed.open_channel("c")
        channel.on_insert("messages", {"contract_id": "a", "kind": "contract"})

        assert feed.publish_insert("messages", {"contract_id": "a", "kind": "proposal"}) == 0
        assert feed.publish_insert("messages", {"contract_id": "a"}) == 0
        assert feed.publish_insert("messages", {"contract_id": None, "kind": "contract"}) == 0
        assert feed.publish_insert("proposals", {"contract_id": "a", "kind": "contract"}) == 0
        assert channel.pending == 0

    async def test_fan_out_to_several_channels(self):
        feed = ChangeFeed()
        first = feed.open_channel("one").on_insert("messages")
        second = feed.open_channel("two").on_insert("messages")

        assert feed.publish_insert("messages", {"id": "1"}) == 2
        assert first.pending == 1
        assert second.pending == 1

    async def test_unsubscribe_stops_delivery_and_ends_iteration(self):
        feed = ChangeFeed()
        channel = feed.open_channel("c").on_insert("messages")
        feed.publish_insert("messages", {"id": "1"})

        feed.unsubscribe(channel)

        assert channel.closed is True
        assert feed.channel_count == 0
        assert feed.publish_insert("messages", {"id": "2"}) == 0
        assert [event async for event in channel] == []

    async def test_close_wakes_waiting_reader(self):
        feed = ChangeFeed()
        channel = feed.open_channel("c").on_insert("messages")
        reader = asyncio.create_task(channel.get())
        await asyncio.sleep(0)

        feed.unsubscribe(channel)

        assert await asyncio.wait_for(reader, timeout=1) is None

    async def test_unsubscribe_twice_is_harmless(self):
        feed = ChangeFeed()
        channel = feed.open_channel("c")
        feed.unsubscribe(channel)
        feed.unsubscribe(channel)
        assert feed.channel_count == 0

    async def test_record_is_copied(self):
        feed = ChangeFeed()
        channel = feed.open_channel("c").on_insert("messages")
        record = {"id": "1"}
        feed.publish_insert("messages", record)
        record["id"] = "changed"

        event = await channel.get()
        assert event.record == {"id": "1"}
