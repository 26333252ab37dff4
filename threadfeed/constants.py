"""Project-wide constant values."""
from __future__ import annotations

MEDIA_MAX_DIMENSION = 1200
MEDIA_JPEG_QUALITY = 0.7
MEDIA_OUTPUT_FORMAT = "JPEG"
MEDIA_OUTPUT_CONTENT_TYPE = "image/jpeg"
MEDIA_OUTPUT_EXTENSION = ".jpg"

MAX_COMMENT_DEPTH = 5  # rendering bound only, replies deeper than this are flattened

ANONYMOUS_AUTHOR = "Anonymous"

__all__ = [
    "MEDIA_MAX_DIMENSION",
    "MEDIA_JPEG_QUALITY",
    "MEDIA_OUTPUT_FORMAT",
    "MEDIA_OUTPUT_CONTENT_TYPE",
    "MEDIA_OUTPUT_EXTENSION",
    "MAX_COMMENT_DEPTH",
    "ANONYMOUS_AUTHOR",
]
