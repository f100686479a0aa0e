"""Sync service: the cache handle shared by every consumer.

This service wires the store, deduplicator, scheduler, mirror and fetcher
together and implements stale-while-revalidate:

1. subscribe() returns whatever is cached right now (possibly nothing)
2. a deduplicated fetch starts unless one is already in flight
3. on success the mirror is written, then the entry is replaced and
   subscribers are notified
4. on failure the error is recorded next to the last good data
5. while the key has subscribers, a timer repeats the fetch at a fixed interval
"""

import asyncio
import logging
import time
from collections.abc import Mapping
from types import TracebackType
from typing import Any

from swr_cache.config import settings
from swr_cache.entities import CacheEntry, EntryStatus
from swr_cache.errors import TransportError
from swr_cache.models import SyncMetrics
from swr_cache.protocols import Fetcher, MirrorStore
from swr_cache.repositories import (
    HttpResourceRepository,
    InMemoryMirrorRepository,
    RedisMirrorRepository,
)

from .cache_store import CacheStore, Subscriber
from .deduplicator import RequestDeduplicator
from .mutations import OptimisticMutator
from .scheduler import RevalidationScheduler

logger = logging.getLogger(__name__)


class Subscription:
    """Scoped handle for one subscriber.

    Release it with close(), or use it as a context manager so release runs
    on every exit path:

        ```python
        async with cache.subscribe("ops", on_change) as sub:
            print(sub.entry.data)
        ```
    """

    def __init__(self, service: "SyncService", key: str, token: int, entry: CacheEntry[Any]) -> None:
        self._service = service
        self._key = key
        self._token = token
        self._closed = False
        self.entry = entry

    @property
    def key(self) -> str:
        return self._key

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def current(self) -> CacheEntry[Any]:
        """The entry as it is now, not as it was at subscription time."""
        return self._service.get(self._key)

    def close(self) -> None:
        """Stop notifications. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._service._release(self._key, self._token)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class SyncService:
    """Stale-while-revalidate cache for remote collections.

    Create one instance at startup, pass it to whatever needs it, and close
    it at shutdown so no timers are left running.

    Example:
        ```python
        async with SyncService.create() as cache:
            sub = cache.subscribe("ops", lambda entry: render(entry.data, entry.error))
            ...
            created = await api.create("ops", payload)
            cache.mutate("ops", [*cache.get("ops").data, created])
            sub.close()
        ```
    """

    def __init__(
        self,
        fetcher: Fetcher,
        mirror: MirrorStore,
        interval: float | None = None,
        max_entries: int | None = None,
        restore: bool | None = None,
    ) -> None:
        """Initialize the sync service.

        Args:
            fetcher: Remote reader (required).
            mirror: Durable side copy of the last good payload (required).
            interval: Revalidation interval in seconds. Defaults to settings.
            max_entries: Entry retention bound, 0 for unbounded. Defaults to settings.
            restore: Seed new entries from the mirror. Defaults to settings.
        """
        self._fetcher = fetcher
        self._mirror = mirror
        self._restore = settings.mirror_restore if restore is None else restore
        self._metrics = SyncMetrics()
        self._store = CacheStore(max_entries=max_entries, metrics=self._metrics)
        self._dedup = RequestDeduplicator(metrics=self._metrics)
        self._scheduler = RevalidationScheduler(self.revalidate, interval=interval)
        self._mutator = OptimisticMutator(self._store, self.trigger, metrics=self._metrics)
        self._params: dict[str, dict[str, Any]] = {}
        self._background: set[asyncio.Task[Any]] = set()
        self._unrestored: set[str] = set()
        self._closed = False

    @classmethod
    def create(
        cls,
        fetcher: Fetcher | None = None,
        mirror: MirrorStore | None = None,
        interval: float | None = None,
        max_entries: int | None = None,
        restore: bool | None = None,
    ) -> "SyncService":
        """Factory method to create SyncService with sensible defaults.

        Args:
            fetcher: Remote reader. If None, uses HttpResourceRepository.
            mirror: Mirror backend. If None, picks Redis or in-memory from settings.
            interval: Revalidation interval in seconds. If None, uses settings.
            max_entries: Retention bound. If None, uses settings.
            restore: Mirror restore on first subscription. If None, uses settings.

        Returns:
            Configured SyncService instance
        """
        if fetcher is None:
            fetcher = HttpResourceRepository.create()
        if mirror is None:
            mirror = RedisMirrorRepository.create() if settings.uses_redis_mirror else InMemoryMirrorRepository()
        return cls(
            fetcher=fetcher,
            mirror=mirror,
            interval=interval,
            max_entries=max_entries,
            restore=restore,
        )

    # -- reading ---------------------------------------------------------

    def get(self, key: str) -> CacheEntry[Any]:
        """Return the current entry for key (empty if unknown)."""
        return self._store.get(key)

    def keys(self) -> list[str]:
        return self._store.keys()

    def subscribe(
        self,
        key: str,
        callback: Subscriber,
        params: Mapping[str, Any] | None = None,
        interval: float | None = None,
    ) -> Subscription:
        """Register callback for key and start keeping it fresh.

        Must be called from a running event loop.

        Args:
            key: The resource key
            callback: Called with the new CacheEntry on every change
            params: Query parameters for the remote read; remembered for
                later revalidations of this key
            interval: Polling interval for this key in seconds

        Returns:
            Subscription whose entry attribute holds the value cached at
            subscription time

        Raises:
            RuntimeError: If the service is closed
            ValueError: If interval is not positive
        """
        self._ensure_open()
        # Armed first so an invalid interval raises before anything is registered.
        self._scheduler.arm(key, interval)
        if params is not None:
            self._params[key] = dict(params)
        if key not in self._store:
            self._store.ensure(key)
            if self._restore:
                self._unrestored.add(key)

        token = self._store.subscribe(key, callback)
        subscription = Subscription(self, key, token, self._store.get(key))

        if not self._dedup.is_pending(key):
            self.trigger(key)
        return subscription

    # -- revalidation ----------------------------------------------------

    async def revalidate(self, key: str, params: Mapping[str, Any] | None = None) -> CacheEntry[Any]:
        """Fetch key now, joining any fetch already in flight.

        Transport failures are recorded on the entry, never raised.

        Returns:
            The entry after the fetch settled

        Raises:
            RuntimeError: If the service is closed
        """
        self._ensure_open()
        if params is not None:
            self._params[key] = dict(params)
        return await self._settle(key, self._start_fetch(key))

    def trigger(self, key: str) -> "asyncio.Task[CacheEntry[Any]]":
        """Start a deduplicated revalidation in the background.

        Returns:
            Task resolving to the entry once the fetch settled
        """
        self._ensure_open()
        task = asyncio.get_running_loop().create_task(self._settle(key, self._start_fetch(key)))
        self._background.add(task)
        task.add_done_callback(self._background_done)
        return task

    def _start_fetch(self, key: str) -> "asyncio.Task[Any]":
        if not self._dedup.is_pending(key):
            self._store.set(key, in_flight=True, status=EntryStatus.FETCHING, should_notify=False)
        return self._dedup.start(key, lambda: self._load(key))

    async def _settle(self, key: str, shared: "asyncio.Task[Any]") -> CacheEntry[Any]:
        try:
            await asyncio.shield(shared)
        except TransportError:
            pass
        return self._store.get(key)

    async def _load(self, key: str) -> Any:
        params = self._params.get(key)
        started = time.perf_counter()
        try:
            if key in self._unrestored:
                await self._restore_from_mirror(key)
                started = time.perf_counter()
            data = await self._fetcher.fetch(key, params)
        except asyncio.CancelledError:
            self._store.set(key, in_flight=False, should_notify=False)
            raise
        except Exception as e:
            self._metrics.record_fetch((time.perf_counter() - started) * 1000, failed=True)
            if isinstance(e, TransportError):
                logger.warning("Revalidation of %s failed: %s", key, e.message)
            else:
                logger.exception("Fetcher raised an unexpected error for %s", key)
            self._store.set(key, error=e, status=EntryStatus.ERRORED, in_flight=False)
            raise

        self._metrics.record_fetch((time.perf_counter() - started) * 1000)
        # Durability before visibility.
        self._metrics.record_mirror_write(await self._mirror.write(key, data))
        self._store.set(key, data=data, error=None, status=EntryStatus.READY, in_flight=False)
        return data

    def _background_done(self, task: "asyncio.Task[Any]") -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            # Logged by _load when it happened.
            logger.debug("Background revalidation ended with %r", task.exception())

    # -- mutation --------------------------------------------------------

    def mutate(self, key: str, data: Any, revalidate: bool = False) -> "asyncio.Task[Any] | None":
        """Optimistically replace the cached data for key.

        See OptimisticMutator.apply.

        Raises:
            RuntimeError: If revalidate is requested on a closed service
        """
        if revalidate:
            self._ensure_open()
        return self._mutator.apply(key, data, revalidate=revalidate)

    @property
    def mutator(self) -> OptimisticMutator:
        return self._mutator

    # -- lifecycle -------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("SyncService is closed")

    async def _restore_from_mirror(self, key: str) -> None:
        self._unrestored.discard(key)
        raw = await self._mirror.read(key)
        if raw is None:
            return
        try:
            data = self._fetcher.decode(key, raw)
        except TransportError as e:
            logger.warning("Ignoring mirror record for %s: %s", key, e.message)
            return
        if self._store.get(key).has_data:
            # A mutation landed while the mirror was being read.
            return
        self._store.set(key, data=data, last_updated=None)
        logger.info("Restored %s from mirror", key)

    def _release(self, key: str, token: int) -> None:
        remaining = self._store.unsubscribe(key, token)
        if remaining == 0:
            self._scheduler.disarm(key)

    async def close(self) -> None:
        """Stop all timers, cancel pending work, close the fetcher and the mirror."""
        if self._closed:
            return
        self._closed = True
        await self._scheduler.close()
        await self._dedup.cancel_all()
        # A fetch cancelled before it started never cleared its marker.
        for key in self._store.keys():
            if self._store.get(key).in_flight:
                self._store.set(key, in_flight=False, should_notify=False)
        background = list(self._background)
        for task in background:
            task.cancel()
        await asyncio.gather(*background, return_exceptions=True)
        await self._fetcher.close()
        await self._mirror.close()
        logger.info("Sync service closed")

    async def __aenter__(self) -> "SyncService":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    # -- introspection ---------------------------------------------------

    def subscriber_count(self, key: str) -> int:
        return self._store.subscriber_count(key)

    def is_armed(self, key: str) -> bool:
        return self._scheduler.is_armed(key)

    def is_fetching(self, key: str) -> bool:
        return self._dedup.is_pending(key)

    async def is_healthy(self) -> bool:
        return await self._mirror.health_check()

    def stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        keys = self._store.keys()
        return {
            "entries": len(keys),
            "subscribed_keys": sum(1 for key in keys if self._store.subscriber_count(key)),
            "armed_timers": len(self._scheduler.armed_keys()),
            "in_flight": len(self._dedup.pending_keys()),
            "revalidate_interval": self._scheduler.interval,
            "metrics": self._metrics.to_dict(),
        }

    @property
    def metrics(self) -> SyncMetrics:
        return self._metrics

    @property
    def store(self) -> CacheStore:
        """Get the underlying store (for testing)."""
        return self._store

    @property
    def fetcher(self) -> Fetcher:
        return self._fetcher

    @property
    def mirror(self) -> MirrorStore:
        return self._mirror

    @property
    def closed(self) -> bool:
        return self._closed
