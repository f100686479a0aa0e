"""Single-flight request deduplication.

At most one fetch per key runs at any instant. Callers arriving while a
fetch is pending attach to it and receive the same result or the same
exception. The shared fetch runs in its own task and callers await it
through asyncio.shield, so a cancelled caller never cancels the fetch.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any

from swr_cache.models import SyncMetrics

logger = logging.getLogger(__name__)


class RequestDeduplicator:
    """Coalesce concurrent calls per key into one underlying call."""

    def __init__(self, metrics: SyncMetrics | None = None) -> None:
        self._pending: dict[str, asyncio.Task[Any]] = {}
        self._metrics = metrics or SyncMetrics()
        self.started = 0
        self.joined = 0

    def start(self, key: str, fn: Callable[[], Awaitable[Any]]) -> asyncio.Task[Any]:
        """Return the pending task for key, creating it from fn if none exists.

        Must be called from a running event loop. fn is only invoked when
        no call is pending.
        """
        task = self._pending.get(key)
        if task is not None:
            self.joined += 1
            self._metrics.deduplicated += 1
            return task

        task = asyncio.get_running_loop().create_task(fn(), name=f"fetch:{key}")
        self._pending[key] = task
        self.started += 1
        # Registered before any joiner, so the marker is gone before they resume.
        task.add_done_callback(partial(self._settled, key))
        return task

    async def run(self, key: str, fn: Callable[[], Awaitable[Any]]) -> Any:
        """Run fn for key, or attach to the call already pending for key.

        Returns:
            The shared result

        Raises:
            Whatever the shared call raised
        """
        return await asyncio.shield(self.start(key, fn))

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    def pending_keys(self) -> list[str]:
        return list(self._pending)

    async def cancel_all(self) -> None:
        """Cancel every pending call and wait for them to finish."""
        tasks = list(self._pending.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _settled(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
        if not task.cancelled() and task.exception() is not None:
            # Callers may all have gone away; the error is already recorded on the entry.
            logger.debug("Shared call for %s failed: %r", key, task.exception())
