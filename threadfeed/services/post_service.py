"""Post and comment operations shared by the HTTP routes and client sessions."""
from __future__ import annotations

import logging
from typing import Any, Iterable

from .comment_tree import CommentNode, build_comment_tree
from .contracts import MediaBlob, ObjectStore, OrderBy, RecordStore
from .errors import ContentValidationError, DecodeError, NotFoundError, UploadError
from .media_preparer import prepare_media, upload_media

logger = logging.getLogger(__name__)


def normalize_tags(tags: Iterable[str] | None) -> list[str]:
    """Trim tags and drop blanks, keeping the order they were entered in."""

    return [tag.strip() for tag in (tags or []) if tag and tag.strip()]


def prepare_upload(blob: MediaBlob) -> MediaBlob:
    """Run the media preparer, falling back to the original file if it cannot be decoded."""

    try:
        return prepare_media(blob)
    except DecodeError as exc:
        logger.warning("Uploading %s unmodified: %s", blob.filename, exc)
        return blob


async def list_feed(records: RecordStore, *, limit: int | None = None) -> list[dict[str, Any]]:
    """Return posts newest first."""

    return await records.query("posts", order=OrderBy("created_at", ascending=False), limit=limit)


async def get_post(records: RecordStore, post_id: str) -> dict[str, Any]:
    rows = await records.query("posts", {"id": post_id}, limit=1)
    if not rows:
        raise NotFoundError("Post not found")
    return rows[0]


async def submit_post(
    records: RecordStore,
    objects: ObjectStore | None,
    *,
    author_id: str | None,
    title: str,
    content: str,
    tags: Iterable[str] | None = None,
    media: MediaBlob | None = None,
) -> dict[str, Any]:
    """Upload optional media and insert a new post.

    ``UploadError`` aborts the submission before anything is inserted.
    """

    title_text = (title or "").strip()
    content_text = (content or "").strip()
    if not title_text or not content_text:
        raise ContentValidationError("Title and content are required")

    media_url: str | None = None
    media_type: str | None = None
    if media is not None:
        if objects is None:
            raise UploadError("No object store is configured for media uploads")
        reference = await upload_media(objects, prepare_upload(media))
        media_url, media_type = reference.url, reference.kind

    return await records.insert(
        "posts",
        {
            "title": title_text,
            "content": content_text,
            "author_id": author_id,
            "media_url": media_url,
            "media_type": media_type,
            "tags": normalize_tags(tags),
        },
    )


async def fetch_comment_rows(
    records: RecordStore, post_id: str
) -> tuple[list[dict[str, Any]], dict[str, str]]:
    """Load a post's comments oldest first plus the display names of their authors."""

    comments = await records.query("comments", {"post_id": post_id}, OrderBy("created_at", ascending=True))
    author_ids = list(dict.fromkeys(row["author_id"] for row in comments if row.get("author_id")))
    profiles = await records.query("profiles", {"id": author_ids}) if author_ids else []
    names = {profile["id"]: profile["username"] for profile in profiles if profile.get("username")}
    return comments, names


async def list_comment_tree(records: RecordStore, post_id: str) -> list[CommentNode]:
    await get_post(records, post_id)
    comments, names = await fetch_comment_rows(records, post_id)
    return build_comment_tree(comments, names)


async def create_comment(
    records: RecordStore,
    *,
    post_id: str,
    author_id: str,
    content: str,
    parent_id: str | None = None,
) -> dict[str, Any]:
    """Insert a comment after checking the post and the parent's post membership."""

    text = (content or "").strip()
    if not text:
        raise ContentValidationError("Comment cannot be empty")

    await get_post(records, post_id)
    if parent_id is not None:
        parents = await records.query("comments", {"id": parent_id}, limit=1)
        if not parents or parents[0]["post_id"] != post_id:
            raise ContentValidationError("Invalid parent comment")

    return await records.insert(
        "comments",
        {"content": text, "post_id": post_id, "author_id": author_id, "parent_id": parent_id},
    )


__all__ = [
    "create_comment",
    "fetch_comment_rows",
    "get_post",
    "list_comment_tree",
    "list_feed",
    "normalize_tags",
    "prepare_upload",
    "submit_post",
]
