"""Keyed table of cache entries and their subscribers.

The store is the single source of truth read by consumers. It performs no
I/O: fetching, mirroring and scheduling live in the sync service. All
methods are synchronous and run between suspension points of the event
loop, so no locking is needed.
"""

import itertools
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

from swr_cache.config import settings
from swr_cache.entities import CacheEntry, EntryStatus
from swr_cache.models import SyncMetrics

logger = logging.getLogger(__name__)

Subscriber = Callable[[CacheEntry[Any]], None]


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


class CacheStore:
    """In-memory cache entries plus the ordered subscriber set per key.

    Example:
        ```python
        store = CacheStore()
        token = store.subscribe("ops", lambda entry: print(entry.data))
        store.set("ops", data=[{"id": 1, "status": "pending"}])
        store.unsubscribe("ops", token)
        ```
    """

    def __init__(self, max_entries: int | None = None, metrics: SyncMetrics | None = None) -> None:
        """Initialize the store.

        Args:
            max_entries: Upper bound on retained entries. 0 disables eviction.
                Defaults to settings.cache_max_entries.
            metrics: Shared metrics collector.
        """
        self._entries: OrderedDict[str, CacheEntry[Any]] = OrderedDict()
        self._subscribers: dict[str, dict[int, Subscriber]] = {}
        self._tokens = itertools.count(1)
        self._max_entries = settings.cache_max_entries if max_entries is None else max_entries
        self._metrics = metrics or SyncMetrics()

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        return list(self._entries)

    def get(self, key: str) -> CacheEntry[Any]:
        """Return the entry for key, or an empty entry if the key is unknown.

        Never raises and never creates an entry.
        """
        entry = self._entries.get(key)
        if entry is None:
            return CacheEntry.empty(key)
        self._entries.move_to_end(key)
        return entry

    def ensure(self, key: str, data: Any = None) -> CacheEntry[Any]:
        """Create the entry for key if it does not exist yet.

        Args:
            key: The resource key
            data: Initial data for a newly created entry (e.g. restored from the mirror)

        Returns:
            The existing or newly created entry
        """
        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key=key, data=data)
            self._entries[key] = entry
            self._evict(protect=key)
        return entry

    def subscribe(self, key: str, callback: Subscriber) -> int:
        """Register callback for changes to key.

        Returns:
            Token to pass to unsubscribe
        """
        self.ensure(key)
        token = next(self._tokens)
        self._subscribers.setdefault(key, {})[token] = callback
        return token

    def unsubscribe(self, key: str, token: int) -> int:
        """Remove a subscriber. Unknown tokens are ignored.

        Returns:
            Number of subscribers left for key
        """
        callbacks = self._subscribers.get(key)
        if not callbacks:
            return 0
        callbacks.pop(token, None)
        if not callbacks:
            del self._subscribers[key]
            return 0
        return len(callbacks)

    def subscriber_count(self, key: str) -> int:
        return len(self._subscribers.get(key, ()))

    def set(
        self,
        key: str,
        data: Any = UNSET,
        error: Any = UNSET,
        *,
        status: EntryStatus | None = None,
        in_flight: bool | None = None,
        last_updated: Any = UNSET,
        should_notify: bool = True,
    ) -> CacheEntry[Any]:
        """Replace the entry for key.

        Only the supplied fields change; the entry object itself is always
        replaced. Supplying data also stamps last_updated with the current
        time unless last_updated is given explicitly (None for restored
        data). Subscribers are called synchronously in registration order
        when should_notify is true.

        Returns:
            The new entry
        """
        current = self._entries.get(key) or CacheEntry.empty(key)
        changes: dict[str, Any] = {}
        if data is not UNSET:
            changes["data"] = data
            changes["last_updated"] = time.time() if last_updated is UNSET else last_updated
        if error is not UNSET:
            changes["error"] = error
        if status is not None:
            changes["status"] = status
        if in_flight is not None:
            changes["in_flight"] = in_flight

        entry = current.evolve(**changes)
        self._entries[key] = entry
        self._entries.move_to_end(key)

        if should_notify:
            self._notify(key, entry)
        self._evict(protect=key)
        return entry

    def clear(self) -> None:
        """Drop every entry and subscriber."""
        self._entries.clear()
        self._subscribers.clear()

    def _notify(self, key: str, entry: CacheEntry[Any]) -> None:
        # Copy: a callback may unsubscribe itself.
        for callback in list(self._subscribers.get(key, {}).values()):
            self._metrics.notifications += 1
            try:
                callback(entry)
            except Exception:
                logger.exception("Subscriber for %s raised", key)

    def _evict(self, protect: str | None = None) -> None:
        if self._max_entries <= 0:
            return
        while len(self._entries) > self._max_entries:
            victim = next(
                (
                    key
                    for key, entry in self._entries.items()
                    if key != protect and key not in self._subscribers and not entry.in_flight
                ),
                None,
            )
            if victim is None:
                return
            del self._entries[victim]
            self._metrics.evictions += 1
            logger.debug("Evicted cache entry %s", victim)

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def statuses(self) -> dict[str, EntryStatus]:
        """Current status of every entry."""
        return {key: entry.status for key, entry in self._entries.items()}
