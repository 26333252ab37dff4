"""Normalise user media before it is uploaded to object storage.

Images are decoded, scaled down so that neither side exceeds
``MEDIA_MAX_DIMENSION`` and re-encoded as JPEG at a fixed quality. Anything that
is not declared as an image passes through untouched.
"""
from __future__ import annotations

import logging
import re
import uuid
from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

from ..constants import (
    MEDIA_JPEG_QUALITY,
    MEDIA_MAX_DIMENSION,
    MEDIA_OUTPUT_CONTENT_TYPE,
    MEDIA_OUTPUT_EXTENSION,
    MEDIA_OUTPUT_FORMAT,
)
from ..schemas import MediaKind, MediaReference
from .contracts import MediaBlob, ObjectStore
from .errors import DecodeError

logger = logging.getLogger(__name__)


def target_dimensions(width: int, height: int, max_dimension: int = MEDIA_MAX_DIMENSION) -> tuple[int, int]:
    """Return the bounded size for an image, preserving its aspect ratio.

    Images already within bounds keep their size; nothing is ever scaled up.
    """

    if width <= 0 or height <= 0:
        raise ValueError("Image dimensions must be positive")
    scale = min(max_dimension / width, max_dimension / height, 1.0)
    if scale >= 1.0:
        return width, height
    return (
        max(1, min(max_dimension, round(width * scale))),
        max(1, min(max_dimension, round(height * scale))),
    )


def media_kind(blob: MediaBlob) -> MediaKind:
    return "image" if blob.is_image else "video"


def prepare_media(blob: MediaBlob, *, max_dimension: int = MEDIA_MAX_DIMENSION) -> MediaBlob:
    """Return an upload-ready version of ``blob``.

    Raises :class:`DecodeError` when an image cannot be decoded; callers may
    fall back to uploading the original bytes.
    """

    if not blob.is_image:
        return blob

    buffer = BytesIO()
    try:
        with Image.open(BytesIO(blob.data)) as source:
            source.load()
            image = ImageOps.exif_transpose(source)
            size = target_dimensions(image.width, image.height, max_dimension)
            if size != (image.width, image.height):
                image = image.resize(size, Image.Resampling.LANCZOS)
            if image.mode != "RGB":
                image = image.convert("RGB")
            image.save(
                buffer,
                format=MEDIA_OUTPUT_FORMAT,
                quality=int(round(MEDIA_JPEG_QUALITY * 100)),
                optimize=True,
            )
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise DecodeError(f"Unable to decode {blob.filename!r} as an image") from exc

    prepared = MediaBlob(
        filename=f"{blob.stem or 'image'}{MEDIA_OUTPUT_EXTENSION}",
        content_type=MEDIA_OUTPUT_CONTENT_TYPE,
        data=buffer.getvalue(),
    )
    logger.debug(
        "Prepared %s: %d -> %d bytes at %dx%d", blob.filename, len(blob.data), len(prepared.data), *size
    )
    return prepared


def _sanitize_folder(folder: str) -> str:
    segments: list[str] = []
    for part in (folder or "").replace("\\", "/").split("/"):
        if part in {"", ".", ".."}:
            continue
        cleaned = re.sub(r"[^A-Za-z0-9._-]", "-", part.strip())
        cleaned = re.sub(r"-+", "-", cleaned).strip("-._")
        if cleaned:
            segments.append(cleaned)
    return "/".join(segments)


def object_key(filename: str | None, folder: str = "posts") -> str:
    """Generate a random object key that keeps the file's extension."""

    extension = MediaBlob(filename or "", "", b"").extension
    if extension and not re.fullmatch(r"\.[a-z0-9]{1,10}", extension):
        extension = ""
    unique_name = uuid.uuid4().hex
    safe_folder = _sanitize_folder(folder)
    return f"{safe_folder}/{unique_name}{extension}" if safe_folder else f"{unique_name}{extension}"


async def upload_media(store: ObjectStore, blob: MediaBlob, *, folder: str = "posts") -> MediaReference:
    """Upload ``blob`` under a fresh key; ``UploadError`` propagates to the caller."""

    key = object_key(blob.filename, folder)
    url = await store.upload(key, blob)
    return MediaReference(url=url, kind=media_kind(blob))


__all__ = [
    "media_kind",
    "object_key",
    "prepare_media",
    "target_dimensions",
    "upload_media",
]
