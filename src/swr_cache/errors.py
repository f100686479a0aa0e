"""Error taxonomy for the synchronization layer.

- TransportError: the remote read or write failed (network, non-2xx, bad payload)
- StorageError: the persistent mirror could not be written or read
- ValidationError: a write payload was rejected before reaching the network
"""

from typing import Any


class SyncCacheError(Exception):
    """Base exception for the cache engine."""

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {"code": self.code, "message": self.message, "details": self.details}


class TransportError(SyncCacheError):
    """Network, HTTP or deserialization failure while talking to the remote API."""

    def __init__(
        self,
        message: str = "Remote request failed",
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        details = dict(details or {})
        if status_code is not None:
            details.setdefault("status_code", status_code)
        super().__init__("TRANSPORT_ERROR", message, details)


class StorageError(SyncCacheError):
    """Persistent mirror failure. Always handled inside the mirror."""

    def __init__(self, message: str = "Mirror storage failed", details: dict[str, Any] | None = None) -> None:
        super().__init__("STORAGE_ERROR", message, details)


class ValidationError(SyncCacheError):
    """Write payload failed validation."""

    def __init__(self, message: str = "Validation failed", details: dict[str, Any] | None = None) -> None:
        super().__init__("VALIDATION_ERROR", message, details)
