"""Optimistic mutations.

A caller that has just completed a remote write already knows the new state
of the collection. apply() puts that state in the cache immediately so
subscribers see it without waiting for the next scheduled revalidation.

The helpers at the bottom build the new collection for the three write
operations (create, update, delete). They never modify the input list.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from pydantic import BaseModel

from swr_cache.entities import EntryStatus
from swr_cache.models import SyncMetrics

from .cache_store import CacheStore

logger = logging.getLogger(__name__)

Trigger = Callable[[str], "asyncio.Task[Any]"]


class OptimisticMutator:
    """Overwrite cached collections directly, bypassing the fetcher.

    No validation and no rollback: callers must only apply data produced by
    a remote write that already succeeded. A fetch that settles afterwards
    overwrites the applied value (last settled wins).
    """

    def __init__(self, store: CacheStore, trigger: Trigger, metrics: SyncMetrics | None = None) -> None:
        """Initialize the mutator.

        Args:
            store: The cache store to write into.
            trigger: Starts a deduplicated background revalidation for a key.
            metrics: Shared metrics collector.
        """
        self._store = store
        self._trigger = trigger
        self._metrics = metrics or SyncMetrics()

    def apply(self, key: str, new_data: Any, revalidate: bool = False) -> "asyncio.Task[Any] | None":
        """Set the cached data for key and notify subscribers.

        Args:
            key: The resource key
            new_data: The full new collection
            revalidate: Also start an immediate out-of-schedule fetch

        Returns:
            The background revalidation task when revalidate is true, else None
        """
        self._store.set(key, data=new_data, error=None, status=EntryStatus.READY)
        self._metrics.mutations += 1
        logger.debug("Applied optimistic mutation to %s (revalidate=%s)", key, revalidate)
        if revalidate:
            return self._trigger(key)
        return None


def record_id(record: Any) -> Any:
    """Return the id of a record (mapping or model)."""
    if isinstance(record, Mapping):
        return record.get("id")
    return getattr(record, "id", None)


def matches_id(record: Any, target_id: Any) -> bool:
    """Whether record has target_id as its id.

    Ids are compared as strings: ids taken from a URL path are strings while
    plain JSON records may carry integer ids.
    """
    value = record_id(record)
    return value is not None and str(value) == str(target_id)


def append_record(collection: Iterable[Any] | None, record: Any) -> list[Any]:
    """Collection with record added at the end."""
    return [*(collection or ()), record]


def replace_record(
    collection: Iterable[Any] | None,
    target_id: Any,
    changes: Mapping[str, Any] | None = None,
    record: Any = None,
) -> list[Any]:
    """Collection with the record matching target_id replaced.

    Uses record as the replacement when given, otherwise the existing
    record with changes merged in.
    """
    result = []
    for item in collection or ():
        if matches_id(item, target_id):
            item = record if record is not None else _merge(item, changes or {})
        result.append(item)
    return result


def remove_record(collection: Iterable[Any] | None, target_id: Any) -> list[Any]:
    """Collection without the record matching target_id."""
    return [item for item in collection or () if not matches_id(item, target_id)]


def _merge(item: Any, changes: Mapping[str, Any]) -> Any:
    if isinstance(item, BaseModel):
        return item.model_copy(update=dict(changes))
    if isinstance(item, Mapping):
        return {**item, **changes}
    raise TypeError(f"Cannot merge changes into {type(item).__name__}")
