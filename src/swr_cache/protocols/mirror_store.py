"""Persistent mirror protocol.

Defines the interface for the durable side copy of the last good payload
per resource key. The mirror is a convenience cache, never the source of
truth, so writes are best-effort and must not raise.

All I/O methods are coroutines: the mirror is called from the event loop
that runs every fetch and timer, so a slow backend must not block it.

Implementations can include:
- Redis (default)
- In-process dictionary (tests, single-run tools)
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class MirrorStore(Protocol):
    """Protocol for mirror storage backends."""

    @property
    def namespace(self) -> str:
        """Prefix used to build storage keys ("<namespace>:<resource-key>")."""
        ...

    async def write(self, key: str, data: Any) -> bool:
        """Serialize and store data for key.

        Args:
            key: The resource key
            data: The payload to mirror

        Returns:
            True if written, False if the write was dropped
        """
        ...

    async def read(self, key: str) -> Any | None:
        """Load the mirrored payload for key.

        Returns:
            The decoded JSON value, or None if absent or unreadable
        """
        ...

    async def delete(self, key: str) -> bool:
        """Remove the mirror record for key.

        Returns:
            True if deleted, False otherwise
        """
        ...

    async def health_check(self) -> bool:
        """Check if the storage backend is accessible."""
        ...

    async def close(self) -> None:
        """Release connections held by the backend."""
        ...
