"""Pydantic schemas for threaded comments."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=500)
    parent_id: str | None = None


class CommentRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime
    content: str
    author_id: str
    post_id: str
    parent_id: str | None = None
    author_name: str | None = None


class CommentNodeResponse(BaseModel):
    """A comment with its display name resolved and its replies nested."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime
    content: str
    author_id: str
    post_id: str
    parent_id: str | None = None
    author_name: str
    replies: list["CommentNodeResponse"] = Field(default_factory=list)


class CommentTreeResponse(BaseModel):
    items: list[CommentNodeResponse]
    total: int


CommentNodeResponse.model_rebuild()


__all__ = ["CommentCreate", "CommentRecord", "CommentNodeResponse", "CommentTreeResponse"]
