"""In-memory implementation of MirrorStore.

Holds serialized snapshots in a process-local dict. Records do not survive
a restart; use it for tests and single-run tools where Redis is not
available. Serialization matches RedisMirrorRepository, so a payload that
cannot be mirrored to Redis cannot be mirrored here either.
"""

import logging
from typing import Any

from swr_cache.config import settings
from swr_cache.errors import StorageError

from .serialization import dump_payload, load_payload

logger = logging.getLogger(__name__)


class InMemoryMirrorRepository:
    """Dictionary-backed mirror satisfying the MirrorStore protocol."""

    def __init__(self, namespace: str | None = None) -> None:
        self._namespace = namespace or settings.mirror_namespace
        self._records: dict[str, bytes] = {}
        self._failures = 0

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def failures(self) -> int:
        return self._failures

    @property
    def records(self) -> dict[str, bytes]:
        """Raw stored records keyed by storage key (for testing)."""
        return self._records

    def storage_key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def write(self, key: str, data: Any) -> bool:
        try:
            self._records[self.storage_key(key)] = dump_payload(data)
        except StorageError as e:
            self._failures += 1
            logger.warning("Mirror write dropped for %s: %s", key, e.message)
            return False
        return True

    async def read(self, key: str) -> Any | None:
        raw = self._records.get(self.storage_key(key))
        if raw is None:
            return None
        try:
            return load_payload(raw)
        except StorageError as e:
            logger.warning("Mirror read failed for %s: %s", key, e.message)
            return None

    async def delete(self, key: str) -> bool:
        return self._records.pop(self.storage_key(key), None) is not None

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        """Nothing to release; records stay readable."""
