"""Custom exceptions for the overcode indexer.

This module defines a hierarchy of exceptions used throughout the indexer
for consistent error handling and reporting.
"""

from typing import Any


class OvercodeError(Exception):
    """Base exception for all overcode errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for reporting."""
        result: dict[str, Any] = {
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(OvercodeError):
    """Error in indexer configuration."""

    pass


# =============================================================================
# Indexing Errors
# =============================================================================


class IndexingError(OvercodeError):
    """Base class for indexing-related errors."""

    pass


class IndexIOError(IndexingError):
    """A file or directory could not be read or written."""

    def __init__(self, path: str, operation: str, cause: Exception | None = None) -> None:
        reason = f": {cause}" if cause else ""
        super().__init__(
            message=f"Failed to {operation} {path}{reason}",
            details={"path": path, "operation": operation},
            cause=cause,
        )
        self.path = path
        self.operation = operation


# =============================================================================
# Storage Errors
# =============================================================================


class StorageError(OvercodeError):
    """Base class for blob and snapshot storage errors."""

    pass


class SnapshotParseError(StorageError):
    """A snapshot file exists but its contents are not a valid snapshot."""

    def __init__(self, path: str, reason: str, cause: Exception | None = None) -> None:
        super().__init__(
            message=f"Invalid snapshot {path}: {reason}",
            details={"path": path, "reason": reason},
            cause=cause,
        )
        self.path = path


class BlobNotFoundError(StorageError):
    """No blob is stored for the requested content hash."""

    def __init__(self, content_hash: str) -> None:
        super().__init__(
            message=f"Blob not found: {content_hash}",
            details={"content_hash": content_hash},
        )
        self.content_hash = content_hash
