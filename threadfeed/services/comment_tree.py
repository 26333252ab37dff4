"""Rebuild reply trees from the flat comment rows of a post."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Iterator, Mapping

from ..constants import ANONYMOUS_AUTHOR


@dataclass
class CommentNode:
    id: str
    post_id: str
    author_id: str
    content: str
    created_at: datetime
    author_name: str
    parent_id: str | None = None
    replies: list["CommentNode"] = field(default_factory=list)


def _field(comment: Any, name: str) -> Any:
    if isinstance(comment, Mapping):
        return comment.get(name)
    return getattr(comment, name, None)


def resolve_author_name(comment: Any, author_names: Mapping[str, str]) -> str:
    """Prefer the name cached on the comment, then the profile name, then Anonymous."""

    explicit = _field(comment, "author_name")
    if explicit:
        return str(explicit)
    looked_up = author_names.get(_field(comment, "author_id"))
    return looked_up or ANONYMOUS_AUTHOR


def build_comment_tree(
    comments: Iterable[Any],
    author_names: Mapping[str, str] | None = None,
) -> list[CommentNode]:
    """Turn comments ordered by ``created_at`` ascending into a reply forest.

    A reply whose parent is not among ``comments`` becomes a root. Roots and
    every reply list keep the input order.
    """

    names = author_names or {}
    rows = list(comments)

    nodes: dict[str, CommentNode] = {}
    for comment in rows:
        comment_id = str(_field(comment, "id"))
        parent_id = _field(comment, "parent_id")
        nodes[comment_id] = CommentNode(
            id=comment_id,
            post_id=str(_field(comment, "post_id")),
            author_id=str(_field(comment, "author_id")),
            content=_field(comment, "content") or "",
            created_at=_field(comment, "created_at"),
            author_name=resolve_author_name(comment, names),
            parent_id=str(parent_id) if parent_id else None,
        )

    roots: list[CommentNode] = []
    for comment in rows:
        node = nodes[str(_field(comment, "id"))]
        parent = nodes.get(node.parent_id) if node.parent_id else None
        if parent is not None and parent is not node:
            parent.replies.append(node)
        else:
            roots.append(node)

    # Parent chains that loop back on themselves are unreachable from any root.
    reached = {node.id for node in iter_nodes(roots)}
    if len(reached) < len(nodes):
        position = {comment_id: index for index, comment_id in enumerate(nodes)}
        for comment_id, node in nodes.items():
            if comment_id in reached:
                continue
            cut = min(_cycle_members(node, nodes), key=lambda member: position[member.id])
            nodes[cut.parent_id].replies.remove(cut)
            roots.append(cut)
            reached.update(child.id for child in iter_nodes([cut]))
        roots.sort(key=lambda root: position[root.id])
    return roots


def _cycle_members(start: CommentNode, nodes: Mapping[str, CommentNode]) -> list[CommentNode]:
    """Follow parent links from an unreachable node until the loop closes."""

    chain: list[CommentNode] = []
    index: dict[str, int] = {}
    node = start
    while node.id not in index:
        index[node.id] = len(chain)
        chain.append(node)
        node = nodes[node.parent_id]
    return chain[index[node.id]:]


def iter_nodes(roots: Iterable[CommentNode]) -> Iterator[CommentNode]:
    """Yield every node in pre-order without recursion."""

    stack = list(reversed(list(roots)))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.replies))


def count_nodes(roots: Iterable[CommentNode]) -> int:
    return sum(1 for _ in iter_nodes(roots))


__all__ = [
    "CommentNode",
    "build_comment_tree",
    "count_nodes",
    "iter_nodes",
    "resolve_author_name",
]
