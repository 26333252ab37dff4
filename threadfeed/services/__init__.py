"""Convenience exports for service layer."""
from .comment_thread import ComposerState, RenderedComment, ThreadedCommentView
from .comment_tree import CommentNode, build_comment_tree, count_nodes, iter_nodes
from .contracts import ChangeEvent, CurrentUser, MediaBlob, OrderBy
from .errors import (
    AuthRequiredError,
    ContentValidationError,
    DecodeError,
    InsertError,
    NotFoundError,
    QueryError,
    StorageConfigurationError,
    ThreadfeedError,
    UploadError,
)
from .feed_session import FeedSession
from .feed_store import FeedStore
from .identity import StaticIdentity, TokenIdentity, get_current_user, get_optional_user
from .media_preparer import prepare_media, target_dimensions, upload_media
from .post_service import create_comment, get_post, list_comment_tree, list_feed, submit_post
from .push_channel import PushChannel, push_channel
from .record_store import SqlRecordStore
from .storage_service import S3ObjectStore

__all__ = [
    "ComposerState",
    "RenderedComment",
    "ThreadedCommentView",
    "CommentNode",
    "build_comment_tree",
    "count_nodes",
    "iter_nodes",
    "ChangeEvent",
    "CurrentUser",
    "MediaBlob",
    "OrderBy",
    "AuthRequiredError",
    "ContentValidationError",
    "DecodeError",
    "InsertError",
    "NotFoundError",
    "QueryError",
    "StorageConfigurationError",
    "ThreadfeedError",
    "UploadError",
    "FeedSession",
    "FeedStore",
    "StaticIdentity",
    "TokenIdentity",
    "get_current_user",
    "get_optional_user",
    "prepare_media",
    "target_dimensions",
    "upload_media",
    "create_comment",
    "get_post",
    "list_comment_tree",
    "list_feed",
    "submit_post",
    "PushChannel",
    "push_channel",
    "SqlRecordStore",
    "S3ObjectStore",
]
