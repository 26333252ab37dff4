"""Tests for rebuilding reply trees from flat comment rows."""
from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

import pytest

from threadfeed.schemas import CommentRecord
from threadfeed.services.comment_tree import build_comment_tree, count_nodes, iter_nodes

T0 = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _comment(comment_id, parent_id=None, t=0, author_id="u1", **extra):
    row = {
        "id": str(comment_id),
        "post_id": "p1",
        "author_id": author_id,
        "content": f"comment {comment_id}",
        "parent_id": str(parent_id) if parent_id is not None else None,
        "created_at": T0 + timedelta(seconds=t),
    }
    row.update(extra)
    return row


def _shape(nodes):
    return [(node.id, _shape(node.replies)) for node in nodes]


def test_orphaned_reply_becomes_root():
    comments = [_comment(1, None, 1), _comment(2, 1, 2), _comment(3, 9, 3)]

    roots = build_comment_tree(comments)

    assert [root.id for root in roots] == ["1", "3"]
    assert [reply.id for reply in roots[0].replies] == ["2"]
    assert roots[1].replies == []
    assert roots[1].parent_id == "9"


def test_roots_and_replies_keep_chronological_order():
    comments = [
        _comment("a", None, 1),
        _comment("b", None, 2),
        _comment("a1", "a", 3),
        _comment("b1", "b", 4),
        _comment("a2", "a", 5),
        _comment("a1x", "a1", 6),
        _comment("c", None, 7),
    ]

    roots = build_comment_tree(comments)

    assert _shape(roots) == [
        ("a", [("a1", [("a1x", [])]), ("a2", [])]),
        ("b", [("b1", [])]),
        ("c", []),
    ]


def test_reply_listed_before_its_parent_still_attaches():
    comments = [_comment("child", "parent", 1), _comment("parent", None, 2)]

    roots = build_comment_tree(comments)

    assert _shape(roots) == [("parent", [("child", [])])]
    assert count_nodes(roots) == 2


def test_self_referencing_comment_is_a_root():
    roots = build_comment_tree([_comment("x", "x", 1)])

    assert _shape(roots) == [("x", [])]


def test_parent_cycle_keeps_every_comment():
    comments = [_comment("a", "b", 1), _comment("b", "a", 2), _comment("c", None, 3)]

    roots = build_comment_tree(comments)

    assert count_nodes(roots) == 3
    assert [root.id for root in roots] == ["a", "c"]
    assert [reply.id for reply in roots[0].replies] == ["b"]


def test_reply_hanging_off_a_cycle_keeps_its_parent():
    comments = [_comment("c", "b", 1), _comment("a", "b", 2), _comment("b", "a", 3)]

    roots = build_comment_tree(comments)

    assert _shape(roots) == [("a", [("b", [("c", [])])])]


def test_each_cycle_is_cut_once_at_its_earliest_member():
    comments = [
        _comment("x", "z", 1),
        _comment("y", "x", 2),
        _comment("z", "y", 3),
        _comment("tail", "y", 4),
        _comment("p", "q", 5),
        _comment("q", "p", 6),
    ]

    roots = build_comment_tree(comments)

    assert _shape(roots) == [
        ("x", [("y", [("z", []), ("tail", [])])]),
        ("p", [("q", [])]),
    ]


@pytest.mark.parametrize("seed", range(8))
def test_node_count_matches_input_for_random_forests(seed):
    rng = random.Random(seed)
    size = rng.randint(1, 60)
    ids = [f"c{index}" for index in range(size)]
    comments = []
    for index, comment_id in enumerate(ids):
        choice = rng.random()
        if choice < 0.3:
            parent = None
        elif choice < 0.4:
            parent = "missing-" + comment_id
        else:
            parent = rng.choice(ids)
        comments.append(_comment(comment_id, parent, index))
    rng.shuffle(comments)

    roots = build_comment_tree(comments)

    assert count_nodes(roots) == len(comments)
    assert sorted(node.id for node in iter_nodes(roots)) == sorted(ids)


def test_author_name_prefers_cached_name_then_profile_then_anonymous():
    comments = [
        _comment(1, None, 1, author_id="u1", author_name="Cached"),
        _comment(2, None, 2, author_id="u2"),
        _comment(3, None, 3, author_id="u3"),
    ]

    roots = build_comment_tree(comments, {"u1": "profile-one", "u2": "profile-two"})

    assert [root.author_name for root in roots] == ["Cached", "profile-two", "Anonymous"]


def test_accepts_attribute_records_and_is_deterministic():
    records = [
        CommentRecord.model_validate(_comment(1, None, 1)),
        CommentRecord.model_validate(_comment(2, 1, 2)),
    ]

    first = build_comment_tree(records)
    second = build_comment_tree(records)

    assert _shape(first) == _shape(second) == [("1", [("2", [])])]
    assert first[0].content == "comment 1"
    assert first[0].replies[0].created_at == T0 + timedelta(seconds=2)


def test_empty_input_gives_empty_forest():
    assert build_comment_tree([]) == []
