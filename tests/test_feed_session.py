"""Tests for feed loading, live updates and post submission."""
from __future__ import annotations

import asyncio
from io import BytesIO

import pytest
from PIL import Image

from fakes import MemoryObjectStore, MemoryRecordStore
from threadfeed.services import (
    AuthRequiredError,
    ContentValidationError,
    FeedSession,
    MediaBlob,
    PushChannel,
    QueryError,
    StaticIdentity,
    UploadError,
)


def _png(width: int, height: int) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


def _session(records, channel, user_id="u1", objects=None) -> FeedSession:
    return FeedSession(records, channel, StaticIdentity(user_id), objects, clock=records.now)


def test_start_loads_newest_first_and_applies_pushed_posts():
    async def scenario():
        channel = PushChannel()
        records = MemoryRecordStore(channel)
        records.seed("posts", id="old", title="Old", content="first")
        records.seed("posts", id="new", title="New", content="second")

        session = _session(records, channel)
        await session.start()
        loaded = session.store.ids

        await records.insert("posts", {"title": "Live", "content": "pushed", "author_id": "u2"})
        await asyncio.sleep(0)
        session.close()
        return loaded, session.store.ids

    loaded, after_push = asyncio.run(scenario())

    assert loaded == ["new", "old"]
    assert len(after_push) == 3
    assert after_push[1:] == ["new", "old"]


def test_pushed_comments_bump_comment_counts():
    async def scenario():
        channel = PushChannel()
        records = MemoryRecordStore(channel)
        records.seed("posts", id="p1", title="Hello", content="World")

        async with _session(records, channel) as session:
            await records.insert("comments", {"post_id": "p1", "author_id": "u2", "content": "hi"})
            await asyncio.sleep(0)
            return session.store.posts[0].comment_count

    assert asyncio.run(scenario()) == 1


def test_own_post_appears_once_after_push_echo():
    async def scenario():
        channel = PushChannel()
        records = MemoryRecordStore(channel)
        records.seed("posts", id="a", title="A", content="a")
        records.seed("posts", id="b", title="B", content="b")

        session = _session(records, channel)
        await session.start()
        post = await session.submit_post(title="Mine", content="body", tags=[" news ", ""])
        optimistic = (session.store.ids, session.store.is_pending(post.id))
        await asyncio.sleep(0)
        session.close()
        return post, optimistic, session.store

    post, optimistic, store = asyncio.run(scenario())

    assert optimistic == ([post.id, "b", "a"], True)
    assert store.ids == [post.id, "b", "a"]
    assert not store.is_pending(post.id)
    assert post.tags == ["news"]
    assert post.author_id == "u1"


def test_closed_session_ignores_later_events():
    async def scenario():
        channel = PushChannel()
        records = MemoryRecordStore(channel)
        session = _session(records, channel)
        await session.start()
        assert session.subscribed
        session.close()

        await records.insert("posts", {"title": "Late", "content": "event"})
        await asyncio.sleep(0)
        return session

    session = asyncio.run(scenario())

    assert session.subscribed is False
    assert session.store.ids == []


def test_start_is_idempotent_for_subscriptions():
    async def scenario():
        channel = PushChannel()
        session = _session(MemoryRecordStore(channel), channel)
        await session.start()
        await session.start()
        counts = (channel.subscriber_count("posts"), channel.subscriber_count("comments"))
        session.close()
        return counts

    assert asyncio.run(scenario()) == (1, 1)


def test_failed_fetch_leaves_feed_empty_and_raises():
    async def scenario():
        channel = PushChannel()
        records = MemoryRecordStore(channel)
        records.seed("posts", id="a", title="A", content="a")
        session = _session(records, channel)
        await session.start()

        records.fail_queries.add("posts")
        with pytest.raises(QueryError):
            await session.start()
        session.close()
        return session

    session = asyncio.run(scenario())

    assert session.store.ids == []
    assert isinstance(session.error, QueryError)
    assert session.loading is False


def test_failed_fetch_stops_live_updates_until_restarted():
    async def scenario():
        channel = PushChannel()
        records = MemoryRecordStore(channel)
        records.fail_queries.add("posts")
        session = _session(records, channel)
        with pytest.raises(QueryError):
            await session.start()

        await records.insert("posts", {"title": "During", "content": "outage"})
        await asyncio.sleep(0)
        after_failure = (session.store.ids, session.subscribed, channel.subscriber_count("posts"))

        records.fail_queries.clear()
        await session.start()
        await records.insert("posts", {"title": "After", "content": "recovery"})
        await asyncio.sleep(0)
        session.close()
        return after_failure, session.store.posts

    after_failure, posts = asyncio.run(scenario())

    assert after_failure == ([], False, 0)
    assert [post.title for post in posts] == ["After", "During"]


class _CommentDuringFetchStore(MemoryRecordStore):
    """Gains a comment on the first post while the feed fetch is in flight."""

    async def query(self, table, filter=None, order=None, limit=None):
        if table == "posts" and not self.inserted:
            await self.insert("comments", {"post_id": "p1", "author_id": "u2", "content": "racing"})
            await asyncio.sleep(0)
        return await super().query(table, filter, order, limit)


class _PostAfterSnapshotStore(MemoryRecordStore):
    """Gains a post right after the feed snapshot has been read."""

    async def query(self, table, filter=None, order=None, limit=None):
        rows = await super().query(table, filter, order, limit)
        if table == "posts" and not self.inserted:
            await self.insert("posts", {"title": "Late", "content": "arrival"})
            await asyncio.sleep(0)
        return rows


def test_comment_created_during_fetch_is_counted_once():
    async def scenario():
        channel = PushChannel()
        records = _CommentDuringFetchStore(channel)
        records.seed("posts", id="p1", title="Hello", content="World")

        session = _session(records, channel)
        await session.start()
        await asyncio.sleep(0)
        settled = session.store.posts[0].comment_count

        await records.insert("comments", {"post_id": "p1", "author_id": "u3", "content": "later"})
        await asyncio.sleep(0)
        session.close()
        return settled, session.store.posts[0].comment_count

    settled, after_new_comment = asyncio.run(scenario())

    assert settled == 1
    assert after_new_comment == 2


def test_post_pushed_during_fetch_survives_the_load():
    async def scenario():
        channel = PushChannel()
        records = _PostAfterSnapshotStore(channel)
        records.seed("posts", id="a", title="A", content="a")

        session = _session(records, channel)
        await session.start()
        await asyncio.sleep(0)
        session.close()
        return session.store.ids

    ids = asyncio.run(scenario())

    assert ids[1:] == ["a"]
    assert len(ids) == 2


def test_submit_requires_a_signed_in_user():
    async def scenario():
        channel = PushChannel()
        records = MemoryRecordStore(channel)
        objects = MemoryObjectStore()
        session = _session(records, channel, user_id=None, objects=objects)
        with pytest.raises(AuthRequiredError):
            await session.submit_post(
                title="t", content="c", media=MediaBlob("a.png", "image/png", _png(10, 10))
            )
        return records, objects

    records, objects = asyncio.run(scenario())

    assert records.inserted == []
    assert objects.objects == {}


def test_blank_title_is_rejected_before_upload():
    async def scenario():
        channel = PushChannel()
        objects = MemoryObjectStore()
        session = _session(MemoryRecordStore(channel), channel, objects=objects)
        with pytest.raises(ContentValidationError):
            await session.submit_post(
                title="  ", content="c", media=MediaBlob("a.png", "image/png", _png(10, 10))
            )
        return objects

    assert asyncio.run(scenario()).objects == {}


def test_image_is_resized_before_upload():
    async def scenario():
        channel = PushChannel()
        records = MemoryRecordStore(channel)
        objects = MemoryObjectStore()
        session = _session(records, channel, objects=objects)
        post = await session.submit_post(
            title="Photo", content="look", media=MediaBlob("holiday.png", "image/png", _png(3000, 1500))
        )
        return post, objects

    post, objects = asyncio.run(scenario())

    [(key, blob)] = objects.objects.items()
    assert key.startswith("posts/") and key.endswith(".jpg")
    assert blob.content_type == "image/jpeg"
    with Image.open(BytesIO(blob.data)) as image:
        assert image.size == (1200, 600)
    assert post.media_url == f"https://cdn.example.test/{key}"
    assert post.media_type == "image"


def test_undecodable_image_is_uploaded_unchanged():
    async def scenario():
        channel = PushChannel()
        objects = MemoryObjectStore()
        session = _session(MemoryRecordStore(channel), channel, objects=objects)
        original = MediaBlob("broken.png", "image/png", b"definitely not a png")
        post = await session.submit_post(title="Broken", content="file", media=original)
        return post, original, objects

    post, original, objects = asyncio.run(scenario())

    [(key, blob)] = objects.objects.items()
    assert blob is original
    assert key.endswith(".png")
    assert post.media_type == "image"


def test_video_passes_through_as_video():
    async def scenario():
        channel = PushChannel()
        objects = MemoryObjectStore()
        session = _session(MemoryRecordStore(channel), channel, objects=objects)
        clip = MediaBlob("clip.mp4", "video/mp4", b"\x00\x00\x00\x18ftypmp42")
        post = await session.submit_post(title="Clip", content="watch", media=clip)
        return post, clip, objects

    post, clip, objects = asyncio.run(scenario())

    assert list(objects.objects.values()) == [clip]
    assert post.media_type == "video"


def test_upload_failure_aborts_the_post():
    async def scenario():
        channel = PushChannel()
        records = MemoryRecordStore(channel)
        session = _session(records, channel, objects=MemoryObjectStore(fail=True))
        await session.start()
        with pytest.raises(UploadError):
            await session.submit_post(
                title="Photo", content="look", media=MediaBlob("a.png", "image/png", _png(20, 20))
            )
        session.close()
        return records, session

    records, session = asyncio.run(scenario())

    assert records.inserted == []
    assert session.store.ids == []
    assert session.submitting is False
