"""HTTP handlers for the inspection API.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes and error responses.
"""

from typing import Any

from fastapi import HTTPException, status
from pydantic_core import to_jsonable_python

from swr_cache.dto import (
    CacheEntryResponse,
    CacheKeysResponse,
    CacheStatsResponse,
    HealthCheckResponse,
    MutateCacheRequest,
    RevalidateRequest,
)
from swr_cache.entities import CacheEntry
from swr_cache.errors import SyncCacheError
from swr_cache.services import SyncService


class CacheHandler:
    """HTTP handlers for inspecting and driving the cache.

    This handler delegates to SyncService and handles HTTP-specific
    concerns like converting entries to DTOs and mapping unknown keys to 404.

    Example:
        ```python
        handler = CacheHandler(cache_service=SyncService.create())

        @app.get("/cache/{key}", response_model=CacheEntryResponse)
        async def get_entry(key: str):
            return await handler.get_entry(key)
        ```
    """

    def __init__(self, cache_service: SyncService) -> None:
        """Initialize the cache handler.

        Args:
            cache_service: The sync service (required).
        """
        self._cache = cache_service

    async def list_keys(self) -> CacheKeysResponse:
        """Handle GET /cache requests."""
        return CacheKeysResponse(keys=self._cache.keys())

    async def get_entry(self, key: str) -> CacheEntryResponse:
        """Handle GET /cache/{key} requests.

        Raises:
            HTTPException: 404 if the key has no entry
        """
        if key not in self._cache.keys():
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No cache entry for {key}",
            )
        return self._to_response(self._cache.get(key))

    async def revalidate(self, key: str, request: RevalidateRequest | None = None) -> CacheEntryResponse:
        """Handle POST /cache/{key}/revalidate requests.

        Fetch failures are reported in the entry's error field, not as an HTTP error.
        """
        params = request.params if request is not None else None
        entry = await self._cache.revalidate(key, params=params)
        return self._to_response(entry)

    async def mutate(self, key: str, request: MutateCacheRequest) -> CacheEntryResponse:
        """Handle POST /cache/{key}/mutate requests."""
        self._cache.mutate(key, request.data, revalidate=request.revalidate)
        return self._to_response(self._cache.get(key))

    async def get_stats(self) -> CacheStatsResponse:
        """Handle GET /stats requests.

        Raises:
            HTTPException: If an error occurs while collecting stats
        """
        try:
            stats = self._cache.stats()
            return CacheStatsResponse(**stats)
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to get stats: {e}",
            ) from e

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests."""
        is_healthy = await self._cache.is_healthy()
        return HealthCheckResponse(
            status="healthy" if is_healthy else "degraded",
            mirror_healthy=is_healthy,
        )

    def _to_response(self, entry: CacheEntry[Any]) -> CacheEntryResponse:
        return CacheEntryResponse(
            key=entry.key,
            status=entry.status.value,
            data=to_jsonable_python(entry.data, fallback=str),
            error=_error_to_dict(entry.error),
            last_updated=entry.last_updated,
            in_flight=entry.in_flight,
            subscribers=self._cache.subscriber_count(entry.key),
            armed=self._cache.is_armed(entry.key),
        )


def _error_to_dict(error: Exception | None) -> dict[str, Any] | None:
    if error is None:
        return None
    if isinstance(error, SyncCacheError):
        return to_jsonable_python(error.to_dict(), fallback=str)
    return {"code": type(error).__name__, "message": str(error), "details": {}}
