"""Tests for the in-process push channel."""
from __future__ import annotations

import asyncio

from threadfeed.services import PushChannel


def test_delivery_happens_after_publish_returns():
    async def scenario():
        channel = PushChannel()
        received = []
        channel.subscribe("posts", received.append)

        assert channel.publish("posts", {"id": "p1"}) == 1
        assert received == []

        await asyncio.sleep(0)
        return received

    received = asyncio.run(scenario())

    assert len(received) == 1
    assert received[0].table == "posts"
    assert received[0].event_type == "INSERT"
    assert received[0].payload == {"id": "p1"}


def test_events_are_routed_by_table_and_event_type():
    async def scenario():
        channel = PushChannel()
        posts, comments, updates = [], [], []
        channel.subscribe("posts", posts.append)
        channel.subscribe("comments", comments.append)
        channel.subscribe("posts", updates.append, event_type="update")

        channel.publish("posts", {"id": "p1"})
        channel.publish("comments", {"id": "c1"})
        channel.publish("posts", {"id": "p1", "title": "edited"}, event_type="UPDATE")
        channel.publish("profiles", {"id": "u1"})
        await asyncio.sleep(0)
        return posts, comments, updates

    posts, comments, updates = asyncio.run(scenario())

    assert [event.payload["id"] for event in posts] == ["p1"]
    assert [event.payload["id"] for event in comments] == ["c1"]
    assert [event.payload.get("title") for event in updates] == ["edited"]


def test_unsubscribe_drops_events_already_queued():
    async def scenario():
        channel = PushChannel()
        received = []
        subscription = channel.subscribe("posts", received.append)

        channel.publish("posts", {"id": "p1"})
        subscription.unsubscribe()
        await asyncio.sleep(0)

        assert channel.publish("posts", {"id": "p2"}) == 0
        await asyncio.sleep(0)
        return received, subscription

    received, subscription = asyncio.run(scenario())

    assert received == []
    assert subscription.active is False


def test_subscriber_count_tracks_active_subscriptions():
    channel = PushChannel()
    first = channel.subscribe("posts", lambda event: None)
    second = channel.subscribe("posts", lambda event: None)
    assert channel.subscriber_count("posts") == 2

    first.unsubscribe()
    first.unsubscribe()
    assert channel.subscriber_count("posts") == 1

    second.unsubscribe()
    assert channel.subscriber_count("posts") == 0


def test_publish_without_subscribers_needs_no_event_loop():
    assert PushChannel().publish("posts", {"id": "p1"}) == 0
