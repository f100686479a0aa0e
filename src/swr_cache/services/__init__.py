"""Service layer for the synchronization engine.

This layer contains the cache engine itself. Services depend on protocols
(Fetcher, MirrorStore), not concrete implementations, making them testable
and flexible.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Cache engine) -> (Remote API / Mirror)

Usage:
    ```python
    from swr_cache.services import SyncService

    # Using factory method (recommended)
    cache = SyncService.create()

    # Or manual creation
    cache = SyncService(fetcher=repo, mirror=mirror, interval=60)
    ```
"""

from .cache_store import CacheStore
from .deduplicator import RequestDeduplicator
from .mutations import OptimisticMutator, append_record, remove_record, replace_record
from .scheduler import RevalidationScheduler
from .sync_service import Subscription, SyncService

__all__ = [
    "CacheStore",
    "RequestDeduplicator",
    "RevalidationScheduler",
    "OptimisticMutator",
    "append_record",
    "replace_record",
    "remove_record",
    "Subscription",
    "SyncService",
]
