"""Convenience exports for schema layer."""
from .comments import CommentCreate, CommentNodeResponse, CommentRecord, CommentTreeResponse
from .posts import MediaKind, MediaReference, PostFeedResponse, PostRecord

__all__ = [
    "CommentCreate",
    "CommentNodeResponse",
    "CommentRecord",
    "CommentTreeResponse",
    "MediaKind",
    "MediaReference",
    "PostFeedResponse",
    "PostRecord",
]
