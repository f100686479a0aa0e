"""Repository layer for data access.

This layer abstracts external dependencies (the remote HTTP API, Redis)
behind protocol-based interfaces. This enables:
- Easy swapping of implementations (Redis -> in-memory, HTTP -> fakes)
- Unit testing with fake implementations
- Clear separation of concerns

The repositories are protocol-based (structural typing), not inheritance-based.
Any class implementing the required methods will satisfy the protocol.
"""

from swr_cache.protocols import Fetcher, MirrorStore

from .http_repository import HttpResourceRepository
from .memory_mirror import InMemoryMirrorRepository
from .redis_mirror import RedisMirrorRepository

__all__ = [
    "Fetcher",
    "MirrorStore",
    "HttpResourceRepository",
    "InMemoryMirrorRepository",
    "RedisMirrorRepository",
]
