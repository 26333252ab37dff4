"""Contracts for the collaborators consumed by the feed and comment core.

The core only talks to storage, persistence, push delivery and identity through
these protocols. ``record_store``, ``storage_service``, ``push_channel`` and
``identity`` provide the implementations used by the service.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Callable, Mapping, Protocol


@dataclass(frozen=True)
class MediaBlob:
    """An in-memory file as selected by the user."""

    filename: str
    content_type: str
    data: bytes

    @property
    def extension(self) -> str:
        return PurePosixPath(self.filename).suffix.lower()

    @property
    def stem(self) -> str:
        return PurePosixPath(self.filename).stem

    @property
    def is_image(self) -> bool:
        return (self.content_type or "").lower().startswith("image/")


@dataclass(frozen=True)
class OrderBy:
    column: str
    ascending: bool = True


@dataclass(frozen=True)
class ChangeEvent:
    """A change notification delivered by the push channel."""

    event_type: str
    table: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CurrentUser:
    id: str


EventHandler = Callable[[ChangeEvent], None]


class ObjectStore(Protocol):
    async def upload(self, key: str, blob: MediaBlob) -> str:
        """Store ``blob`` under ``key`` and return its public URL."""

    def public_url(self, key: str) -> str:
        ...


class RecordStore(Protocol):
    async def query(
        self,
        table: str,
        filter: Mapping[str, Any] | None = None,
        order: OrderBy | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        ...

    async def insert(self, table: str, record: Mapping[str, Any]) -> dict[str, Any]:
        ...


class Subscription(Protocol):
    @property
    def active(self) -> bool:
        ...

    def unsubscribe(self) -> None:
        ...


class PushSource(Protocol):
    def subscribe(self, table: str, handler: EventHandler, event_type: str = "INSERT") -> Subscription:
        ...


class IdentityProvider(Protocol):
    def current_user(self) -> CurrentUser | None:
        ...


__all__ = [
    "MediaBlob",
    "OrderBy",
    "ChangeEvent",
    "CurrentUser",
    "EventHandler",
    "ObjectStore",
    "RecordStore",
    "Subscription",
    "PushSource",
    "IdentityProvider",
]
