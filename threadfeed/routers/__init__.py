"""Aggregate router exports."""
from .posts import router as posts_router
from .realtime import router as realtime_router

__all__ = [
    "posts_router",
    "realtime_router",
]
