"""Redis implementation of MirrorStore.

Each resource key is stored as a plain string value at
"<namespace>:<resource-key>" holding the JSON snapshot of the last
successful fetch. Writes are best-effort: any Redis or serialization
failure is logged and dropped.

Uses the redis.asyncio client so a slow or unreachable server only delays
the fetch that is writing, never the event loop.
"""

import logging
from typing import Any

import redis.asyncio as redis

from swr_cache.config import get_redis_client, settings
from swr_cache.errors import StorageError

from .serialization import dump_payload, load_payload

logger = logging.getLogger(__name__)


class RedisMirrorRepository:
    """Redis-backed mirror.

    This class satisfies the MirrorStore protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        namespace: str | None = None,
        ttl: int | None = None,
    ) -> None:
        """Initialize the Redis mirror.

        Args:
            redis_client: Async Redis client instance. If None, creates default.
            namespace: Storage key prefix. Defaults to settings.
            ttl: Expiry for mirror records in seconds. 0 or None keeps them forever.
        """
        self._client = redis_client or get_redis_client()
        self._namespace = namespace or settings.mirror_namespace
        self._ttl = ttl if ttl is not None else settings.mirror_ttl
        self._failures = 0

    @classmethod
    def create(
        cls,
        namespace: str | None = None,
        ttl: int | None = None,
    ) -> "RedisMirrorRepository":
        """Factory method to create RedisMirrorRepository with defaults.

        Args:
            namespace: Storage key prefix. If None, uses settings.
            ttl: Record TTL in seconds. If None, uses settings.

        Returns:
            Configured RedisMirrorRepository
        """
        return cls(namespace=namespace, ttl=ttl)

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def failures(self) -> int:
        """Number of dropped writes since creation."""
        return self._failures

    def storage_key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def write(self, key: str, data: Any) -> bool:
        """Store the JSON snapshot of data for key.

        Args:
            key: The resource key
            data: Payload to mirror

        Returns:
            True if written, False if the write was dropped
        """
        try:
            await self._store(key, dump_payload(data))
        except StorageError as e:
            self._failures += 1
            logger.warning("Mirror write dropped for %s: %s", key, e.message)
            return False
        return True

    async def _store(self, key: str, payload: bytes) -> None:
        try:
            await self._client.set(self.storage_key(key), payload, ex=self._ttl or None)
        except redis.RedisError as e:
            raise StorageError(f"Redis write failed: {e}", {"key": key}) from e

    async def read(self, key: str) -> Any | None:
        """Load the mirrored payload for key.

        Returns:
            Decoded JSON value, or None if absent or unreadable
        """
        try:
            raw = await self._client.get(self.storage_key(key))
            if raw is None:
                return None
            return load_payload(raw)
        except (redis.RedisError, StorageError) as e:
            logger.warning("Mirror read failed for %s: %s", key, e)
            return None

    async def delete(self, key: str) -> bool:
        """Delete the mirror record for key.

        Returns:
            True if deleted, False otherwise
        """
        try:
            result: int = await self._client.delete(self.storage_key(key))
        except redis.RedisError as e:
            logger.warning("Mirror delete failed for %s: %s", key, e)
            return False
        return result > 0

    async def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(await self._client.ping())
        except redis.RedisError:
            return False

    async def close(self) -> None:
        """Close the Redis connection pool.

        Should be called when shutting down the application.
        """
        await self._client.aclose()
        logger.debug("Redis mirror connection closed")

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client
