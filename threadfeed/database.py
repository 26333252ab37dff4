"""SQLAlchemy engine, session factory and declarative base for the record store."""
from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import get_settings

settings = get_settings()


def _engine_options(url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"pool_pre_ping": True, "future": True}
    if url.startswith("sqlite"):
        # Sessions are opened from the event loop thread and from worker threads.
        options["connect_args"] = {"check_same_thread": False}
    return options


engine: Engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

# Rows are serialized after commit, so attributes must stay loaded.
SessionLocal = sessionmaker(bind=engine, autoflush=False, future=True, expire_on_commit=False)

Base = declarative_base()


def create_session() -> Session:
    """Return a new session; the record store opens one per call."""
    return SessionLocal()


def init_db() -> None:
    """Create the posts, comments and profiles tables when missing."""
    from . import models  # noqa: F401  registers the mapped classes on Base.metadata

    Base.metadata.create_all(bind=engine)


__all__ = ["Base", "SessionLocal", "create_session", "engine", "init_db"]
