"""Lifetime of one feed view: initial fetch, live updates and post submission."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable

from ..schemas import PostRecord
from .contracts import ChangeEvent, IdentityProvider, MediaBlob, ObjectStore, PushSource, RecordStore, Subscription
from .errors import AuthRequiredError, QueryError
from .feed_store import FeedStore
from .post_service import list_feed, submit_post

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FeedSession:
    """Keeps a :class:`FeedStore` in sync with the record store and push channel.

    The push handlers only forward events to the store's idempotent insert
    operations; ordering and de-duplication stay inside the store. Call
    :meth:`close` when the feed is no longer displayed.
    """

    def __init__(
        self,
        records: RecordStore,
        channel: PushSource,
        identity: IdentityProvider,
        objects: ObjectStore | None = None,
        *,
        store: FeedStore | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store or FeedStore()
        self.loading = False
        self.submitting = False
        self.error: Exception | None = None
        self._records = records
        self._channel = channel
        self._identity = identity
        self._objects = objects
        self._clock = clock
        self._subscriptions: list[Subscription] = []
        self._backlog: list[ChangeEvent] = []

    async def __aenter__(self) -> "FeedSession":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    @property
    def subscribed(self) -> bool:
        return any(subscription.active for subscription in self._subscriptions)

    def _on_insert(self, event: ChangeEvent) -> None:
        # Events arriving mid-fetch are applied on top of the snapshot once it loads.
        if self.loading:
            self._backlog.append(event)
            return
        self._apply(event)

    def _apply(self, event: ChangeEvent) -> None:
        if event.table == "posts":
            self.store.apply_remote_insert(event.payload)
        elif event.table == "comments":
            self.store.apply_comment_insert(event.payload)

    def _subscribe(self) -> None:
        if self.subscribed:
            return
        self._subscriptions = [
            self._channel.subscribe("posts", self._on_insert, event_type="INSERT"),
            self._channel.subscribe("comments", self._on_insert, event_type="INSERT"),
        ]

    async def start(self, *, limit: int | None = None) -> list[PostRecord]:
        """Subscribe to live inserts and load the feed newest first.

        A failed fetch leaves the store empty and unsubscribed, records the error
        and re-raises; retrying with another ``start`` is left to the caller.
        """

        self._subscribe()
        self._backlog = []
        self.loading = True
        try:
            posts = await list_feed(self._records, limit=limit)
        except QueryError as exc:
            logger.warning("Feed could not be loaded: %s", exc)
            self.error = exc
            self.close()
            self.store.load([])
            raise
        finally:
            self.loading = False

        self.store.load(posts, as_of=self._clock())
        self.error = None
        backlog, self._backlog = self._backlog, []
        for event in backlog:
            self._apply(event)
        return self.store.posts

    async def submit_post(
        self,
        *,
        title: str,
        content: str,
        tags: Iterable[str] | None = None,
        media: MediaBlob | None = None,
    ) -> PostRecord:
        """Create a post and show it immediately at the top of the feed."""

        user = self._identity.current_user()
        if user is None:
            raise AuthRequiredError("You must be logged in to post")

        self.submitting = True
        try:
            record = await submit_post(
                self._records,
                self._objects,
                author_id=user.id,
                title=title,
                content=content,
                tags=tags,
                media=media,
            )
        finally:
            self.submitting = False

        post = PostRecord.model_validate(record)
        self.store.apply_optimistic_insert(post)
        return post

    def close(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []
        self._backlog = []


__all__ = ["FeedSession"]
