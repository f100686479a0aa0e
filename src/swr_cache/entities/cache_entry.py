"""Cache entry domain entity."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class EntryStatus(str, Enum):
    """Lifecycle of a resource key.

    UNINITIALIZED -> FETCHING -> READY | ERRORED, with READY <-> FETCHING on
    every revalidation and ERRORED -> FETCHING on every retry. An optimistic
    mutation moves any state straight to READY.
    """

    UNINITIALIZED = "uninitialized"
    FETCHING = "fetching"
    READY = "ready"
    ERRORED = "errored"


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Snapshot of one cached collection.

    Entries are immutable; every change produces a new entry that replaces
    the previous one wholesale.

    Attributes:
        key: The resource key (e.g. "ops")
        data: Last good payload, or None if nothing has been loaded yet
        error: Error from the most recent failed fetch, kept alongside stale data
        last_updated: Unix timestamp of the last data write, None if never written
        in_flight: Whether a fetch for this key is currently pending
        status: Position in the entry lifecycle
    """

    key: str
    data: T | None = None
    error: Exception | None = None
    last_updated: float | None = None
    in_flight: bool = False
    status: EntryStatus = EntryStatus.UNINITIALIZED

    @classmethod
    def empty(cls, key: str) -> "CacheEntry[Any]":
        """Entry returned for a key that has never been loaded."""
        return cls(key=key)

    @property
    def has_data(self) -> bool:
        return self.data is not None

    def evolve(self, **changes: Any) -> "CacheEntry[T]":
        """Return a copy of this entry with the given fields replaced."""
        return replace(self, **changes)
