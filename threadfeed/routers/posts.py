"""Post and comment API routes."""
from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status

from ..database import create_session
from ..schemas import (
    CommentCreate,
    CommentNodeResponse,
    CommentRecord,
    CommentTreeResponse,
    PostFeedResponse,
    PostRecord,
)
from ..services import (
    ContentValidationError,
    CurrentUser,
    InsertError,
    MediaBlob,
    NotFoundError,
    QueryError,
    S3ObjectStore,
    SqlRecordStore,
    StorageConfigurationError,
    UploadError,
    count_nodes,
    create_comment,
    get_current_user,
    get_post,
    list_comment_tree,
    list_feed,
    push_channel,
    submit_post,
)
from ..services.contracts import ObjectStore, RecordStore

router = APIRouter(prefix="/posts", tags=["posts"])

logger = logging.getLogger(__name__)


def get_record_store() -> RecordStore:
    """Store whose inserts are announced on the shared push channel."""
    return SqlRecordStore(create_session, channel=push_channel)


def get_object_store_factory() -> Callable[[], ObjectStore]:
    # Storage settings are only required once a request carries a file.
    return S3ObjectStore


@router.get("/", response_model=PostFeedResponse)
async def list_feed_endpoint(
    limit: Optional[int] = Query(None, ge=1, le=100),
    records: RecordStore = Depends(get_record_store),
) -> PostFeedResponse:
    try:
        rows = await list_feed(records, limit=limit)
    except QueryError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load feed") from exc
    return PostFeedResponse(items=[PostRecord.model_validate(row) for row in rows])


@router.post("/", response_model=PostRecord, status_code=status.HTTP_201_CREATED)
async def create_post_endpoint(
    title: str = Form(..., min_length=1),
    content: str = Form(..., min_length=1),
    tags: list[str] = Form([]),
    file: UploadFile | None = File(None),
    records: RecordStore = Depends(get_record_store),
    object_store_factory: Callable[[], ObjectStore] = Depends(get_object_store_factory),
    current_user: CurrentUser = Depends(get_current_user),
) -> PostRecord:
    """Create a post, optionally uploading an attached image or video.

    Expects ``multipart/form-data``; ``tags`` may be repeated and keeps the
    order it was sent in.
    """

    media: MediaBlob | None = None
    objects: ObjectStore | None = None
    if file is not None:
        media = MediaBlob(
            filename=file.filename or "upload",
            content_type=file.content_type or "application/octet-stream",
            data=await file.read(),
        )
        try:
            objects = object_store_factory()
        except StorageConfigurationError as exc:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    try:
        record = await submit_post(
            records,
            objects,
            author_id=current_user.id,
            title=title,
            content=content,
            tags=tags,
            media=media,
        )
    except ContentValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except UploadError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except InsertError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create post") from exc

    logger.info("Post %s created by %s", record["id"], current_user.id)
    return PostRecord.model_validate(record)


@router.get("/{post_id}", response_model=PostRecord)
async def get_post_endpoint(
    post_id: str,
    records: RecordStore = Depends(get_record_store),
) -> PostRecord:
    try:
        row = await get_post(records, post_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except QueryError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load post") from exc
    return PostRecord.model_validate(row)


@router.get("/{post_id}/comments", response_model=CommentTreeResponse)
async def list_comments_endpoint(
    post_id: str,
    records: RecordStore = Depends(get_record_store),
) -> CommentTreeResponse:
    try:
        roots = await list_comment_tree(records, post_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except QueryError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load comments") from exc

    return CommentTreeResponse(
        items=[CommentNodeResponse.model_validate(root) for root in roots],
        total=count_nodes(roots),
    )


@router.post("/{post_id}/comments", response_model=CommentRecord, status_code=status.HTTP_201_CREATED)
async def create_comment_endpoint(
    post_id: str,
    payload: CommentCreate,
    records: RecordStore = Depends(get_record_store),
    current_user: CurrentUser = Depends(get_current_user),
) -> CommentRecord:
    try:
        record = await create_comment(
            records,
            post_id=post_id,
            author_id=current_user.id,
            content=payload.content,
            parent_id=payload.parent_id,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ContentValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except (QueryError, InsertError) as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to add comment") from exc

    return CommentRecord.model_validate(record)


__all__ = ["router", "get_record_store", "get_object_store_factory"]
