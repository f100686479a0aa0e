"""Fetcher protocol.

Defines the interface for the remote read operation behind a resource key.
A fetcher knows nothing about caching, deduplication or mirroring.

Implementations can include:
- HTTP JSON API over httpx (default)
- Fakes and stubs in tests
"""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Fetcher(Protocol):
    """Protocol for remote collection readers.

    Any type that implements these methods satisfies the protocol,
    no explicit inheritance needed.

    Example:
        ```python
        from swr_cache.protocols import Fetcher

        fetcher: Fetcher = HttpResourceRepository.create()
        orders = await fetcher.fetch("ops", {"status": "pending"})
        ```
    """

    async def fetch(self, key: str, params: Mapping[str, Any] | None = None) -> Any:
        """Read the collection identified by key.

        Args:
            key: The resource key
            params: Optional query parameters

        Returns:
            The decoded payload

        Raises:
            TransportError: On network failure, non-2xx response or a
                payload that cannot be decoded
        """
        ...

    def decode(self, key: str, payload: Any) -> Any:
        """Validate a raw JSON payload for key.

        Args:
            key: The resource key
            payload: Raw JSON-compatible value

        Returns:
            The typed payload

        Raises:
            TransportError: If the payload does not match the key's schema
        """
        ...

    async def close(self) -> None:
        """Release any held connections."""
        ...
