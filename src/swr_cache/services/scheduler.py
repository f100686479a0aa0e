"""Fixed-interval background revalidation.

One timer task per armed key. Each timer sleeps for its interval, runs the
revalidation callback, and loops, whatever the outcome of the callback.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from swr_cache.config import settings

logger = logging.getLogger(__name__)

RevalidateCallback = Callable[[str], Awaitable[Any]]


class RevalidationScheduler:
    """Arm, disarm and tear down polling timers per resource key."""

    def __init__(self, callback: RevalidateCallback, interval: float | None = None) -> None:
        """Initialize the scheduler.

        Args:
            callback: Coroutine function called with the key on every tick.
            interval: Default seconds between ticks. Defaults to settings.revalidate_interval.
        """
        self._callback = callback
        self._interval = settings.revalidate_interval if interval is None else interval
        if self._interval <= 0:
            raise ValueError("Revalidation interval must be positive")
        self._timers: dict[str, asyncio.Task[None]] = {}
        self.ticks = 0

    @property
    def interval(self) -> float:
        return self._interval

    def arm(self, key: str, interval: float | None = None) -> bool:
        """Schedule the timer for key.

        Returns:
            True if a timer was started, False if one was already armed

        Raises:
            ValueError: If the interval is not positive
        """
        interval = self._interval if interval is None else interval
        if interval <= 0:
            raise ValueError("Revalidation interval must be positive")
        if self.is_armed(key):
            return False
        self._timers[key] = asyncio.get_running_loop().create_task(
            self._run(key, interval), name=f"revalidate:{key}"
        )
        logger.debug("Armed revalidation timer for %s every %.1fs", key, interval)
        return True

    def disarm(self, key: str) -> bool:
        """Cancel the timer for key.

        Returns:
            True if a timer was cancelled, False if none was armed
        """
        task = self._timers.pop(key, None)
        if task is None:
            return False
        task.cancel()
        logger.debug("Disarmed revalidation timer for %s", key)
        return True

    def is_armed(self, key: str) -> bool:
        task = self._timers.get(key)
        return task is not None and not task.done()

    def armed_keys(self) -> list[str]:
        return [key for key in self._timers if self.is_armed(key)]

    async def close(self) -> None:
        """Cancel every timer and wait for them to stop."""
        tasks = list(self._timers.values())
        self._timers.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(self, key: str, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.ticks += 1
            try:
                await self._callback(key)
            except Exception:
                logger.exception("Scheduled revalidation of %s failed", key)
