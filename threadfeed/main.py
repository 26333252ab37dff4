"""Application entry point for the FastAPI backend."""
from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .database import init_db
from .routers import posts_router, realtime_router
from .services.push_channel import ChannelSubscription, push_channel
from .services.realtime import feed_updates_manager, forward_inserts

logger = logging.getLogger(__name__)

settings = get_settings()
APP_NAME = settings.app_name
API_VERSION = settings.api_version

app = FastAPI(title=APP_NAME, version=API_VERSION)


def _allowed_origins(raw: str | None) -> list[str]:
    origins = [origin.strip() for origin in (raw or "").split(",") if origin.strip()]
    return origins or ["*"]


app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(posts_router)
app.include_router(realtime_router)

_relay_subscriptions: list[ChannelSubscription] = []


@app.on_event("startup")
async def _startup() -> None:
    """Ensure the schema exists and relay inserts to feed sockets."""

    try:
        init_db()
    except Exception:  # pragma: no cover - best effort logging
        logger.exception("Database initialisation failed")
        raise

    if not _relay_subscriptions:
        _relay_subscriptions.extend(forward_inserts(push_channel, feed_updates_manager))
    logger.info("%s %s ready", APP_NAME, API_VERSION)


@app.on_event("shutdown")
async def _shutdown() -> None:
    """Stop relaying push events once the server goes away."""

    for subscription in _relay_subscriptions:
        subscription.unsubscribe()
    _relay_subscriptions.clear()


@app.get("/api", tags=["system"])
def api_info() -> dict[str, str]:
    return {"service": APP_NAME, "version": API_VERSION}


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, object]:
    return {"status": "ok", "feed_sockets": feed_updates_manager.connection_count}
