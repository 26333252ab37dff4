"""Relational store backed by SQLAlchemy sessions.

Implements the ``query``/``insert`` contract used by the feed and comment core
over the ``posts``, ``comments`` and ``profiles`` tables. Each successful insert
is announced on the push channel as an ``INSERT`` event carrying the stored row.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import create_session
from ..models import Comment, Post, Profile
from .contracts import OrderBy
from .errors import InsertError, QueryError
from .push_channel import PushChannel

logger = logging.getLogger(__name__)

TABLES: dict[str, type] = {
    "posts": Post,
    "comments": Comment,
    "profiles": Profile,
}

# Columns the store assigns itself; values supplied by callers are ignored.
GENERATED_COLUMNS: dict[str, frozenset[str]] = {
    "posts": frozenset({"id", "created_at", "comment_count"}),
    "comments": frozenset({"id", "created_at"}),
    "profiles": frozenset({"created_at"}),
}


def _serialize(row: Any) -> dict[str, Any]:
    record = {column.name: getattr(row, column.name) for column in row.__table__.columns}
    if isinstance(row, Post):
        record["tags"] = list(record.get("tags") or [])
        record["comment_count"] = 0
    return record


class SqlRecordStore:
    """``RecordStore`` implementation opening one session per call."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = create_session,
        *,
        channel: PushChannel | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._channel = channel

    @staticmethod
    def _model(table: str, error_cls: type[Exception]) -> type:
        model = TABLES.get(table)
        if model is None:
            raise error_cls(f"Unknown table {table!r}")
        return model

    @staticmethod
    def _column(model: type, name: str, error_cls: type[Exception]):
        column = model.__table__.columns.get(name)
        if column is None:
            raise error_cls(f"Unknown column {name!r} on {model.__tablename__}")
        return getattr(model, name)

    async def query(
        self,
        table: str,
        filter: Mapping[str, Any] | None = None,
        order: OrderBy | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        model = self._model(table, QueryError)
        statement = select(model)
        for name, value in (filter or {}).items():
            column = self._column(model, name, QueryError)
            if isinstance(value, (list, tuple, set, frozenset)):
                statement = statement.where(column.in_(list(value)))
            elif value is None:
                statement = statement.where(column.is_(None))
            else:
                statement = statement.where(column == value)
        if order is not None:
            column = self._column(model, order.column, QueryError)
            statement = statement.order_by(column.asc() if order.ascending else column.desc())
        if limit is not None:
            statement = statement.limit(max(0, limit))

        try:
            with self._session_factory() as session:
                records = [_serialize(row) for row in session.scalars(statement)]
                if model is Post and records:
                    self._attach_comment_counts(session, records)
        except SQLAlchemyError as exc:
            logger.exception("Query on %s failed", table)
            raise QueryError(f"Failed to load {table}") from exc
        return records

    @staticmethod
    def _attach_comment_counts(session: Session, records: list[dict[str, Any]]) -> None:
        post_ids = [record["id"] for record in records]
        statement = (
            select(Comment.post_id, func.count(Comment.id))
            .where(Comment.post_id.in_(post_ids))
            .group_by(Comment.post_id)
        )
        counts = {post_id: int(count or 0) for post_id, count in session.execute(statement).all()}
        for record in records:
            record["comment_count"] = counts.get(record["id"], 0)

    async def insert(self, table: str, record: Mapping[str, Any]) -> dict[str, Any]:
        model = self._model(table, InsertError)
        generated = GENERATED_COLUMNS.get(table, frozenset())
        values: dict[str, Any] = {}
        for name, value in record.items():
            if name in generated:
                continue
            self._column(model, name, InsertError)
            values[name] = value

        with self._session_factory() as session:
            row = model(**values)
            session.add(row)
            try:
                session.flush()
                session.refresh(row)
                stored = _serialize(row)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                logger.exception("Insert into %s failed", table)
                raise InsertError(f"Failed to insert into {table}") from exc

        if self._channel is not None:
            self._channel.publish(table, stored)
        return stored


__all__ = ["GENERATED_COLUMNS", "SqlRecordStore", "TABLES"]
