"""Handler layer.

Handlers sit on top of the sync service: the collection writer performs
remote writes and splices their results into the cache, the cache handler
serves the inspection HTTP endpoints.

Architecture:
    Handler -> Service -> Repository
    (HTTP / writes) -> (Cache engine) -> (Remote API / Mirror)
"""

from .cache_handler import CacheHandler
from .collection_writer import CollectionWriter

__all__ = [
    "CacheHandler",
    "CollectionWriter",
]
