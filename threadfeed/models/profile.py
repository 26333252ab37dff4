"""SQLAlchemy ORM model for public author profiles."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from threadfeed.database import Base


class Profile(Base):
    """Display data for an identity provider user, keyed by the provider's user id."""

    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)
    username = Column(String(120), nullable=False, unique=True, index=True)
    avatar_url = Column(String(1024), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)


__all__ = ["Profile"]
