"""Convenience exports for ORM models."""
from .post import Comment, Post
from .profile import Profile

__all__ = [
    "Comment",
    "Post",
    "Profile",
]
