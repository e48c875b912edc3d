"""
Unit tests for core.pubsub module.
Tests the log channel buffer, subscriber queues and the logging handler.
"""
import asyncio
import logging

import pytest

from forum.core.pubsub import LogChannel, LogChannelHandler


def entry(message: str) -> dict:
    return {"time": "2024-01-01T00:00:00+00:00", "level": "INFO", "logger": "test", "message": message}


class TestLogChannelBuffer:
    """Tests for the bounded history buffer."""

    def test_recent_returns_entries_oldest_first(self):
        channel = LogChannel(maxlen=10)
        channel.publish(entry("one"))
        channel.publish(entry("two"))
        assert [e["message"] for e in channel.recent()] == ["one", "two"]

    def test_buffer_is_bounded(self):
        channel = LogChannel(maxlen=3)
        for i in range(5):
            channel.publish(entry(str(i)))
        assert [e["message"] for e in channel.recent()] == ["2", "3", "4"]

    def test_recent_limit(self):
        channel = LogChannel(maxlen=10)
        for i in range(4):
            channel.publish(entry(str(i)))
        assert [e["message"] for e in channel.recent(2)] == ["2", "3"]
        assert channel.recent(0) == []

    def test_clear(self):
        channel = LogChannel()
        channel.publish(entry("x"))
        channel.clear()
        assert channel.recent() == []


class TestLogChannelSubscribers:
    """Tests for subscription and fan-out."""

    @pytest.mark.asyncio
    async def test_publish_reaches_every_subscriber(self):
        channel = LogChannel()
        q1 = channel.subscribe()
        q2 = channel.subscribe()
        assert channel.subscriber_count == 2

        channel.publish(entry("hello"))

        got1 = await asyncio.wait_for(q1.get(), timeout=1)
        got2 = await asyncio.wait_for(q2.get(), timeout=1)
        assert got1["message"] == got2["message"] == "hello"

    @pytest.mark.asyncio
    async def test_unsubscribed_queue_receives_nothing(self):
        channel = LogChannel()
        queue = channel.subscribe()
        channel.unsubscribe(queue)
        assert channel.subscriber_count == 0

        channel.publish(entry("ignored"))
        await asyncio.sleep(0)
        assert queue.empty()

    @pytest.mark.asyncio
    async def test_subscriber_only_sees_entries_after_subscribing(self):
        channel = LogChannel()
        channel.publish(entry("before"))
        queue = channel.subscribe()
        channel.publish(entry("after"))
        got = await asyncio.wait_for(queue.get(), timeout=1)
        assert got["message"] == "after"

    def test_unsubscribe_unknown_queue_does_not_error(self):
        LogChannel().unsubscribe(asyncio.Queue())


class TestLogChannelHandler:
    """Tests for the logging.Handler bridge."""

    def test_handler_publishes_formatted_records(self):
        channel = LogChannel()
        logger = logging.getLogger("forum.tests.pubsub")
        logger.setLevel(logging.DEBUG)
        handler = LogChannelHandler(channel)
        logger.addHandler(handler)
        try:
            logger.info("user %s logged in", "ada")
            logger.debug("below handler level")
        finally:
            logger.removeHandler(handler)

        entries = channel.recent()
        assert len(entries) == 1
        assert entries[0]["message"] == "user ada logged in"
        assert entries[0]["level"] == "INFO"
        assert entries[0]["logger"] == "forum.tests.pubsub"
        assert entries[0]["time"].endswith("+00:00")
