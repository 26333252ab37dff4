"""Comment thread state for one post: composer, reply target, collapse and rendering."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..constants import MAX_COMMENT_DEPTH
from .comment_tree import CommentNode, build_comment_tree, count_nodes, iter_nodes
from .contracts import IdentityProvider, RecordStore
from .errors import AuthRequiredError, QueryError
from .post_service import fetch_comment_rows

logger = logging.getLogger(__name__)


class ComposerState(str, Enum):
    IDLE = "idle"
    COMPOSING_ROOT = "composing-root"
    COMPOSING_REPLY = "composing-reply"


@dataclass(frozen=True)
class RenderedComment:
    """One visible row of the thread.

    ``depth`` is the logical depth below the root comment. ``indent`` is the
    visual depth, which stops growing once replies are flattened.
    """

    node: CommentNode
    depth: int
    indent: int
    collapsible: bool
    expanded: bool
    reply_count: int
    flattened: bool
    is_reply_target: bool


class ThreadedCommentView:
    def __init__(
        self,
        post_id: str,
        store: RecordStore,
        identity: IdentityProvider,
        *,
        max_depth: int = MAX_COMMENT_DEPTH,
    ) -> None:
        self.post_id = post_id
        self.max_depth = max_depth
        self._store = store
        self._identity = identity

        self.roots: list[CommentNode] = []
        self.error: Exception | None = None
        self.loading = False
        self.submitting = False

        self._state = ComposerState.IDLE
        self._reply_target: str | None = None
        self._draft = ""
        self._collapsed: set[str] = set()
        self._nodes: dict[str, CommentNode] = {}

    # -- composer -----------------------------------------------------------------

    @property
    def state(self) -> ComposerState:
        return self._state

    @property
    def reply_target(self) -> str | None:
        return self._reply_target

    @property
    def draft(self) -> str:
        return self._draft

    @property
    def can_submit(self) -> bool:
        return bool(self._draft.strip()) and not self.submitting

    def set_draft(self, text: str) -> None:
        self._draft = text or ""
        if self._state is ComposerState.IDLE and self._draft.strip():
            self._state = ComposerState.COMPOSING_ROOT
        elif self._state is ComposerState.COMPOSING_ROOT and not self._draft.strip():
            self._state = ComposerState.IDLE

    def select_reply(self, comment: CommentNode | str) -> None:
        self._reply_target = comment.id if isinstance(comment, CommentNode) else str(comment)
        self._state = ComposerState.COMPOSING_REPLY

    def cancel_reply(self) -> None:
        self._reply_target = None
        self._state = ComposerState.IDLE

    async def submit(self) -> dict[str, Any] | None:
        """Insert the draft as a comment on the post or as a reply to the target.

        Returns ``None`` without touching the store when the draft is blank. On
        failure the draft and reply target are left as they were.
        """

        if not self.can_submit:
            return None

        user = self._identity.current_user()
        if user is None:
            raise AuthRequiredError("You must be logged in to comment")

        record = {
            "content": self._draft.strip(),
            "post_id": self.post_id,
            "author_id": user.id,
            "parent_id": self._reply_target,
        }
        self.submitting = True
        try:
            created = await self._store.insert("comments", record)
        finally:
            self.submitting = False

        self._draft = ""
        self.cancel_reply()
        await self.refresh()
        return created

    # -- tree ---------------------------------------------------------------------

    @property
    def total(self) -> int:
        return count_nodes(self.roots)

    async def refresh(self) -> list[CommentNode]:
        """Fetch comments and author profiles, then rebuild the tree from scratch."""

        self.loading = True
        try:
            comments, names = await fetch_comment_rows(self._store, self.post_id)
        except QueryError as exc:
            logger.warning("Comments for post %s could not be loaded: %s", self.post_id, exc)
            self.roots = []
            self._nodes = {}
            self.error = exc
            raise
        finally:
            self.loading = False

        self.roots = build_comment_tree(comments, names)
        self._nodes = {node.id: node for node in iter_nodes(self.roots)}
        self.error = None
        return self.roots

    def node(self, comment_id: str) -> CommentNode | None:
        return self._nodes.get(comment_id)

    def is_expanded(self, comment_id: str) -> bool:
        return comment_id not in self._collapsed

    def toggle(self, comment_id: str) -> bool:
        """Flip the reply list of a node between shown and hidden; return the new state."""

        node = self._nodes.get(comment_id)
        if node is None or not node.replies:
            return True
        if comment_id in self._collapsed:
            self._collapsed.discard(comment_id)
        else:
            self._collapsed.add(comment_id)
        return self.is_expanded(comment_id)

    def render(self) -> list[RenderedComment]:
        """Flatten the visible tree into rows, in display order."""

        rows: list[RenderedComment] = []
        stack: list[tuple[CommentNode, int]] = [(root, 0) for root in reversed(self.roots)]
        while stack:
            node, depth = stack.pop()
            flattened = depth > self.max_depth
            collapsible = bool(node.replies) and not flattened
            expanded = not collapsible or self.is_expanded(node.id)
            rows.append(
                RenderedComment(
                    node=node,
                    depth=depth,
                    indent=min(depth, self.max_depth + 1),
                    collapsible=collapsible,
                    expanded=expanded,
                    reply_count=len(node.replies),
                    flattened=flattened,
                    is_reply_target=node.id == self._reply_target,
                )
            )
            if node.replies and expanded:
                stack.extend((child, depth + 1) for child in reversed(node.replies))
        return rows


__all__ = ["ComposerState", "RenderedComment", "ThreadedCommentView"]
