"""Identity lookups against bearer tokens issued by the external provider."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from ..config import get_settings
from .contracts import CurrentUser
from .errors import AuthRequiredError

logger = logging.getLogger(__name__)

_security = HTTPBearer(auto_error=False)


def _jwt_secret() -> str:
    secret = (get_settings().jwt_secret_key or "").strip()
    if not secret:
        raise RuntimeError("Environment variable JWT_SECRET_KEY is required to verify bearer tokens")
    return secret


def create_access_token(subject: str, *, expires_minutes: int = 60) -> str:
    """Sign a token for ``subject``; used by local tooling and tests."""

    now = datetime.now(timezone.utc)
    payload = {"sub": str(subject), "iat": now, "exp": now + timedelta(minutes=expires_minutes)}
    return jwt.encode(payload, _jwt_secret(), algorithm=get_settings().jwt_algorithm)


def decode_access_token(token: str) -> CurrentUser:
    """Decode and validate a JWT, returning the embedded subject."""

    try:
        payload = jwt.decode(token, _jwt_secret(), algorithms=[get_settings().jwt_algorithm])
    except JWTError as exc:
        raise AuthRequiredError("Invalid token") from exc

    subject = payload.get("sub")
    if not subject:
        raise AuthRequiredError("Invalid token payload")
    return CurrentUser(id=str(subject))


class StaticIdentity:
    """Identity provider for a client session that already knows its user."""

    def __init__(self, user_id: str | None = None) -> None:
        self._user = CurrentUser(id=user_id) if user_id else None

    def sign_in(self, user_id: str) -> None:
        self._user = CurrentUser(id=user_id)

    def sign_out(self) -> None:
        self._user = None

    def current_user(self) -> CurrentUser | None:
        return self._user


class TokenIdentity:
    """Identity provider resolving the user from a bearer token."""

    def __init__(self, token: str | None) -> None:
        self._token = token

    def current_user(self) -> CurrentUser | None:
        if not self._token:
            return None
        try:
            return decode_access_token(self._token)
        except AuthRequiredError:
            logger.info("Rejected bearer token")
            return None


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_security),
) -> CurrentUser | None:
    """Return the authenticated user when a valid bearer token is provided."""

    if not credentials or credentials.scheme.lower() != "bearer":
        return None
    return TokenIdentity(credentials.credentials).current_user()


async def get_current_user(user: CurrentUser | None = Depends(get_optional_user)) -> CurrentUser:
    """Resolve the authenticated user or reject the request with 401."""

    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user


__all__ = [
    "StaticIdentity",
    "TokenIdentity",
    "create_access_token",
    "decode_access_token",
    "get_current_user",
    "get_optional_user",
]
