"""Client-side ordered view of the post feed."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, Mapping

from ..schemas import PostRecord

logger = logging.getLogger(__name__)

PostLike = PostRecord | Mapping[str, Any]


def _coerce(post: PostLike) -> PostRecord:
    if isinstance(post, PostRecord):
        return post
    return PostRecord.model_validate(dict(post))


def _as_utc(value: Any) -> datetime | None:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class FeedStore:
    """Newest-first post sequence that never holds the same post id twice.

    Push-delivered and optimistic inserts are both prepended in the order they
    are applied; identity, not timestamps, decides whether an insert is new.
    """

    def __init__(self) -> None:
        self._posts: list[PostRecord] = []
        self._ids: set[str] = set()
        self._pending: set[str] = set()
        self._as_of: datetime | None = None

    def __len__(self) -> int:
        return len(self._posts)

    def __iter__(self) -> Iterator[PostRecord]:
        return iter(list(self._posts))

    def __contains__(self, post_id: object) -> bool:
        return post_id in self._ids

    @property
    def posts(self) -> list[PostRecord]:
        return list(self._posts)

    @property
    def ids(self) -> list[str]:
        return [post.id for post in self._posts]

    def is_pending(self, post_id: str) -> bool:
        """True while an optimistic insert has not been echoed by the push channel."""
        return post_id in self._pending

    def load(self, posts: Iterable[PostLike], *, as_of: datetime | None = None) -> None:
        """Replace the whole sequence with an initial fetch ordered newest first.

        ``as_of`` marks when the fetch completed: comment counts in ``posts``
        already include every comment created up to that moment.
        """

        loaded: list[PostRecord] = []
        seen: set[str] = set()
        for item in posts:
            post = _coerce(item)
            if post.id in seen:
                continue
            seen.add(post.id)
            loaded.append(post)
        self._posts = loaded
        self._ids = seen
        self._pending.clear()
        self._as_of = _as_utc(as_of)

    def _prepend(self, post: PostRecord) -> None:
        self._posts.insert(0, post)
        self._ids.add(post.id)

    def apply_remote_insert(self, post: PostLike) -> bool:
        """Prepend a post announced by the push channel; return False for an echo."""

        record = _coerce(post)
        if record.id in self._ids:
            if record.id in self._pending:
                self._pending.discard(record.id)
                logger.debug("Post %s confirmed by push channel", record.id)
            return False
        self._prepend(record)
        return True

    def apply_optimistic_insert(self, post: PostLike) -> bool:
        """Prepend the local user's freshly inserted post; return False if already shown."""

        record = _coerce(post)
        if record.id in self._ids:
            return False
        self._prepend(record)
        self._pending.add(record.id)
        return True

    def apply_comment_insert(self, comment: Mapping[str, Any]) -> bool:
        """Bump the comment count of the post a new comment belongs to.

        Comments created at or before the loaded snapshot are already counted.
        """

        post_id = comment.get("post_id")
        if post_id not in self._ids:
            return False
        created_at = _as_utc(comment.get("created_at"))
        if self._as_of is not None and created_at is not None and created_at <= self._as_of:
            return False
        for index, post in enumerate(self._posts):
            if post.id == post_id:
                self._posts[index] = post.model_copy(update={"comment_count": post.comment_count + 1})
                return True
        return False


__all__ = ["FeedStore"]
