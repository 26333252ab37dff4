"""Shared pytest configuration; runtime settings must exist before the package is imported."""
from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_threadfeed.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
