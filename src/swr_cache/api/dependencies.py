"""Dependency injection configuration for the inspection app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from swr_cache.config import settings
from swr_cache.entities import CacheEntry
from swr_cache.handlers import CacheHandler
from swr_cache.services import SyncService

logger = logging.getLogger(__name__)


def get_handler(request: Request) -> CacheHandler:
    """Dependency injection for CacheHandler from app.state.

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "cache_handler", None)
    if handler is None:
        raise RuntimeError("CacheHandler not initialized. Check lifespan setup.")
    return handler


def _log_change(entry: CacheEntry) -> None:
    if entry.error is not None:
        logger.warning("%s: revalidation failed, serving stale data (%s)", entry.key, entry.error)
    else:
        logger.info("%s: %s", entry.key, entry.status.value)


def build_lifespan(
    cache_service: SyncService | None = None,
    watch_keys: list[str] | None = None,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Build the lifespan context manager for the app.

    Args:
        cache_service: Pre-built service (tests). If None, SyncService.create() is used.
        watch_keys: Keys kept subscribed while the app runs. Defaults to settings.

    Returns:
        Lifespan function for FastAPI
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Initialize the cache, subscribe the watched keys, tear down on exit.

        Cleanup:
            Releases subscriptions, closes the service (cancelling every timer)
            and removes all services from app.state on shutdown
        """
        service = cache_service or SyncService.create()
        keys = settings.watch_key_list if watch_keys is None else watch_keys

        app.state.cache_service = service
        app.state.cache_handler = CacheHandler(cache_service=service)

        subscriptions = [service.subscribe(key, _log_change) for key in keys]
        logger.info("Cache service initialized, watching %s", ", ".join(keys) or "nothing")
        try:
            yield
        finally:
            for subscription in subscriptions:
                subscription.close()
            await service.close()
            del app.state.cache_handler
            del app.state.cache_service
            logger.info("Cache service shut down")

    return lifespan


# Type alias for cleaner dependency injection
HandlerDep = Annotated[CacheHandler, Depends(get_handler)]
