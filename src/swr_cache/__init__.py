"""SWR Cache - stale-while-revalidate client cache for remote collections.

This package provides a layered architecture for keeping remotely-fetched
collections fresh on the client:

Layers:
    - protocols: Interface contracts (Fetcher, MirrorStore)
    - repositories: Data access implementations (HTTP API, Redis, in-memory)
    - services: The cache engine (store, deduplicator, scheduler, mutations)
    - handlers: Remote writes and inspection HTTP handlers
    - dto: Data transfer objects (records, API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from swr_cache.services import SyncService

    async with SyncService.create() as cache:
        sub = cache.subscribe("ops", lambda entry: print(entry.data, entry.error))
        ...
        sub.close()
    ```

For the inspection HTTP API:
    ```python
    from swr_cache.api.app import app
    ```
"""

from swr_cache.config import get_redis_client, settings
from swr_cache.dto import ProductionOrder
from swr_cache.entities import CacheEntry, EntryStatus
from swr_cache.errors import StorageError, SyncCacheError, TransportError, ValidationError
from swr_cache.handlers import CacheHandler, CollectionWriter
from swr_cache.protocols import Fetcher, MirrorStore
from swr_cache.repositories import (
    HttpResourceRepository,
    InMemoryMirrorRepository,
    RedisMirrorRepository,
)
from swr_cache.services import OptimisticMutator, Subscription, SyncService

__all__ = [
    # Configuration
    "settings",
    "get_redis_client",
    # Protocols (interfaces)
    "Fetcher",
    "MirrorStore",
    # Services (cache engine)
    "SyncService",
    "Subscription",
    "OptimisticMutator",
    # Handlers
    "CacheHandler",
    "CollectionWriter",
    # Repositories (data access)
    "HttpResourceRepository",
    "RedisMirrorRepository",
    "InMemoryMirrorRepository",
    # Entities (domain models)
    "CacheEntry",
    "EntryStatus",
    # DTOs
    "ProductionOrder",
    # Errors
    "SyncCacheError",
    "TransportError",
    "StorageError",
    "ValidationError",
]
