"""Inspection API for a running cache.

Exposes cache entries, statistics and manual revalidation/mutation over
HTTP. Run with:

    python -m swr_cache.api.app
"""

from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from swr_cache.config import settings
from swr_cache.dto import (
    CacheEntryResponse,
    CacheKeysResponse,
    CacheStatsResponse,
    HealthCheckResponse,
    MutateCacheRequest,
    RevalidateRequest,
)
from swr_cache.services import SyncService
from swr_cache.utils import setup_logging

from .dependencies import HandlerDep, build_lifespan


def create_app(
    cache_service: SyncService | None = None,
    watch_keys: list[str] | None = None,
) -> FastAPI:
    """Create the inspection app.

    Args:
        cache_service: Pre-built service. If None, one is created at startup.
        watch_keys: Keys to keep subscribed. Defaults to settings.

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="SWR Cache Inspector",
        description="Inspect and drive a stale-while-revalidate collection cache",
        version="0.1.0",
        lifespan=build_lifespan(cache_service, watch_keys),
    )

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": "SWR Cache Inspector",
            "version": "0.1.0",
            "endpoints": {
                "cache": "/cache",
                "stats": "/stats",
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health", response_model=HealthCheckResponse)
    async def health(handler: HandlerDep) -> HealthCheckResponse:
        """Health check endpoint."""
        return await handler.health_check()

    @app.get("/stats", response_model=CacheStatsResponse)
    async def stats(handler: HandlerDep) -> CacheStatsResponse:
        """Get cache statistics."""
        return await handler.get_stats()

    @app.get("/cache", response_model=CacheKeysResponse)
    async def list_keys(handler: HandlerDep) -> CacheKeysResponse:
        """List keys with a cache entry."""
        return await handler.list_keys()

    @app.get("/cache/{key}", response_model=CacheEntryResponse)
    async def get_entry(key: str, handler: HandlerDep) -> CacheEntryResponse:
        """Get the cache entry for a key."""
        return await handler.get_entry(key)

    @app.post("/cache/{key}/revalidate", response_model=CacheEntryResponse)
    async def revalidate(
        key: str,
        handler: HandlerDep,
        request: RevalidateRequest | None = None,
    ) -> CacheEntryResponse:
        """Fetch a key now (joins any fetch in flight)."""
        return await handler.revalidate(key, request)

    @app.post("/cache/{key}/mutate", response_model=CacheEntryResponse)
    async def mutate(key: str, request: MutateCacheRequest, handler: HandlerDep) -> CacheEntryResponse:
        """Optimistically replace the cached data for a key."""
        return await handler.mutate(key, request)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    setup_logging()
    uvicorn.run(
        "swr_cache.api.app:app",
        host=settings.inspect_host,
        port=settings.inspect_port,
    )
