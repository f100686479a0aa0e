"""Domain entities for internal representation.

These are pure dataclasses (frozen) shared by services and repositories.
They are NOT used for API contracts - use DTOs from the dto package for that.
"""

from .cache_entry import CacheEntry, EntryStatus

__all__ = ["CacheEntry", "EntryStatus"]
