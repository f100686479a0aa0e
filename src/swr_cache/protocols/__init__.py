"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (HTTP -> gRPC, Redis -> in-memory, etc.)
- Unit testing with fake implementations
- Clear separation of concerns

Usage:
    ```python
    from swr_cache.protocols import Fetcher, MirrorStore

    fetcher: Fetcher = HttpResourceRepository.create()
    mirror: MirrorStore = RedisMirrorRepository.create()
    mirror: MirrorStore = InMemoryMirrorRepository()
    ```
"""

from .fetcher import Fetcher
from .mirror_store import MirrorStore

__all__ = [
    "Fetcher",
    "MirrorStore",
]
