"""Pydantic schemas for post resources."""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

MediaKind = Literal["image", "video"]


class MediaReference(BaseModel):
    """Public location of an uploaded media object."""

    url: str
    kind: MediaKind


class PostRecord(BaseModel):
    """Serialized representation of a persisted post."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime
    title: str
    content: str
    author_id: str | None = None
    media_url: str | None = None
    media_type: MediaKind | None = None
    tags: list[str] = Field(default_factory=list)
    comment_count: int = 0

    @property
    def media(self) -> MediaReference | None:
        if not self.media_url:
            return None
        return MediaReference(url=self.media_url, kind=self.media_type or "image")


class PostFeedResponse(BaseModel):
    """Envelope used when returning a collection of posts."""

    items: list[PostRecord]


__all__ = ["MediaKind", "MediaReference", "PostRecord", "PostFeedResponse"]
