"""S3-compatible object storage for post media."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from io import BytesIO
from urllib.parse import urlparse

from boto3.session import Session
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from ..config import get_settings
from .contracts import MediaBlob
from .errors import StorageConfigurationError, UploadError

logger = logging.getLogger(__name__)

_PLACEHOLDER_VALUES = {"changeme", "change-me", "placeholder", "example", "your-key-here"}


def _is_placeholder(value: str | None) -> bool:
    if not value:
        return True
    normalized = value.strip().lower()
    return not normalized or normalized in _PLACEHOLDER_VALUES


@dataclass(frozen=True)
class StorageConfig:
    """Runtime configuration extracted from settings."""

    key: str
    secret: str
    region: str
    bucket: str
    api_endpoint: str
    public_endpoint: str


def _normalize_endpoint(raw: str, setting: str) -> str:
    endpoint = raw.strip().rstrip("/")
    parsed = urlparse(endpoint)
    if not parsed.scheme:
        endpoint = f"https://{endpoint.lstrip(':/')}"
        parsed = urlparse(endpoint)
    if not (parsed.netloc or parsed.path):
        raise StorageConfigurationError(f"{setting} must include a hostname.")
    return parsed.geturl().rstrip("/")


@lru_cache(maxsize=1)
def load_storage_config() -> StorageConfig:
    """Read and validate object storage configuration from settings."""

    settings = get_settings()
    required: dict[str, str | None] = {
        "STORAGE_KEY": settings.storage_key,
        "STORAGE_SECRET": settings.storage_secret,
        "STORAGE_REGION": settings.storage_region,
        "STORAGE_BUCKET": settings.storage_bucket,
        "STORAGE_ENDPOINT": settings.storage_endpoint,
    }
    missing = [name for name, value in required.items() if _is_placeholder(value)]
    if missing:
        raise StorageConfigurationError(
            "Missing required object storage configuration: " + ", ".join(sorted(missing))
        )

    api_endpoint = _normalize_endpoint(settings.storage_endpoint or "", "STORAGE_ENDPOINT")
    bucket = (settings.storage_bucket or "").strip()
    if settings.storage_public_endpoint and not _is_placeholder(settings.storage_public_endpoint):
        public_endpoint = _normalize_endpoint(settings.storage_public_endpoint, "STORAGE_PUBLIC_ENDPOINT")
    else:
        public_endpoint = f"{api_endpoint}/{bucket}"

    return StorageConfig(
        key=(settings.storage_key or "").strip(),
        secret=(settings.storage_secret or "").strip(),
        region=(settings.storage_region or "").strip(),
        bucket=bucket,
        api_endpoint=api_endpoint,
        public_endpoint=public_endpoint,
    )


@lru_cache(maxsize=1)
def get_storage_client() -> BaseClient:
    """Create a singleton boto3 client for storage interactions."""

    config = load_storage_config()
    session = Session()
    return session.client(
        "s3",
        region_name=config.region,
        endpoint_url=config.api_endpoint,
        aws_access_key_id=config.key,
        aws_secret_access_key=config.secret,
    )


class S3ObjectStore:
    """``ObjectStore`` writing public-read objects to an S3-compatible bucket."""

    def __init__(self, config: StorageConfig | None = None, client: BaseClient | None = None) -> None:
        self._config = config or load_storage_config()
        self._client = client or get_storage_client()

    def public_url(self, key: str) -> str:
        normalized_key = key.lstrip("/")
        endpoint = self._config.public_endpoint.rstrip("/")
        return f"{endpoint}/{normalized_key}" if normalized_key else endpoint

    async def upload(self, key: str, blob: MediaBlob) -> str:
        normalized_key = key.strip().lstrip("/")
        if not normalized_key:
            raise UploadError("Invalid object key generated for upload")
        content_type = (blob.content_type or "application/octet-stream").strip() or "application/octet-stream"

        def _upload() -> None:
            try:
                self._client.upload_fileobj(
                    BytesIO(blob.data),
                    self._config.bucket,
                    normalized_key,
                    ExtraArgs={"ACL": "public-read", "ContentType": content_type},
                )
            except (ClientError, BotoCoreError) as exc:  # pragma: no cover - network errors hard to reproduce
                logger.exception("Upload of %s failed: %s", normalized_key, exc)
                raise UploadError("Upload to object storage failed") from exc

        await run_in_threadpool(_upload)
        logger.info("Uploaded %s (%d bytes, %s)", normalized_key, len(blob.data), content_type)
        return self.public_url(normalized_key)


__all__ = [
    "StorageConfig",
    "S3ObjectStore",
    "load_storage_config",
    "get_storage_client",
]
