"""
Application exceptions.

Every error the photo lifecycle surfaces to callers derives from GalleryError
and carries the HTTP status it maps to plus a details dict naming the store,
operation and identifiers involved.
"""
from typing import Any, Dict, Optional


class GalleryError(Exception):
    """Base exception for all lifecycle errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class PreconditionFailedError(GalleryError):
    """Missing actor, empty file or a patch touching an immutable field."""

    status_code = 400


class NotFoundError(GalleryError):
    """The referenced photo id has no record."""

    status_code = 404

    def __init__(self, photo_id: Any, message: str = "Photo not found") -> None:
        super().__init__(message, {"photo_id": photo_id})


class StorageKeyConflictError(GalleryError):
    """A freshly generated storage key is already taken."""

    status_code = 409

    def __init__(self, storage_key: str, message: str = "Storage key already exists") -> None:
        super().__init__(message, {"storage_key": storage_key})


class StoreUnavailableError(GalleryError):
    """
    Transient failure of the blob store or the metadata store.

    Nothing was left half-done: the caller may retry.
    """

    status_code = 503

    def __init__(
        self,
        store: str,
        operation: str,
        message: Optional[str] = None,
        **identifiers: Any,
    ) -> None:
        self.store = store
        self.operation = operation
        details = {"store": store, "operation": operation}
        details.update({k: v for k, v in identifiers.items() if v is not None})
        super().__init__(message or f"{store} store unavailable during {operation}", details)


class OrphanedResourceError(GalleryError):
    """
    A compensating cleanup failed and left a blob without a record.

    Signals state that needs out-of-band remediation.
    """

    status_code = 500

    def __init__(
        self,
        storage_key: str,
        cause: Optional[BaseException] = None,
        cleanup_error: Optional[BaseException] = None,
    ) -> None:
        self.storage_key = storage_key
        self.cause = cause
        self.cleanup_error = cleanup_error
        details: Dict[str, Any] = {"storage_key": storage_key}
        if cause is not None:
            details["cause"] = f"{type(cause).__name__}: {cause}"
        if cleanup_error is not None:
            details["cleanup_error"] = f"{type(cleanup_error).__name__}: {cleanup_error}"
        super().__init__(
            f"Blob '{storage_key}' was written but its record could not be saved "
            "and the blob could not be removed; manual cleanup required",
            details,
        )


class ConfigurationError(Exception):
    """Fatal misconfiguration detected at startup."""
