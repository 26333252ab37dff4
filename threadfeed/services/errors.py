"""Error taxonomy shared by the feed and comment services."""
from __future__ import annotations


class ThreadfeedError(RuntimeError):
    """Base class for failures surfaced by the service layer."""


class DecodeError(ThreadfeedError):
    """Raised when media cannot be interpreted as its declared type."""


class UploadError(ThreadfeedError):
    """Raised when writing an object to storage fails."""


class StorageConfigurationError(ThreadfeedError):
    """Raised when required object storage settings are missing or invalid."""


class QueryError(ThreadfeedError):
    """Raised when reading from the relational store fails."""


class InsertError(ThreadfeedError):
    """Raised when writing to the relational store fails."""


class AuthRequiredError(ThreadfeedError):
    """Raised when a submission is attempted without an authenticated identity."""


class NotFoundError(ThreadfeedError):
    """Raised when a referenced post does not exist."""


class ContentValidationError(ThreadfeedError):
    """Raised when submitted content is empty or references an invalid parent."""


__all__ = [
    "ThreadfeedError",
    "DecodeError",
    "UploadError",
    "StorageConfigurationError",
    "QueryError",
    "InsertError",
    "AuthRequiredError",
    "NotFoundError",
    "ContentValidationError",
]
