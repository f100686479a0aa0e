"""Shared fixtures: a scriptable fetcher, an in-memory mirror and the service."""

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import pytest
import pytest_asyncio

from swr_cache.repositories import InMemoryMirrorRepository
from swr_cache.services import SyncService

OPS = [{"id": 1, "status": "pending"}]


class FakeFetcher:
    """Fetcher returning scripted results in order.

    Each scripted result is either a payload or an exception to raise.
    When the script runs out, `default` is used. Setting `gate` to an
    asyncio.Event holds every fetch until the event is set.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, Mapping[str, Any] | None]] = []
        self.results: list[Any] = []
        self.default: Any = OPS
        self.gate: asyncio.Event | None = None
        self.closed = False

    async def fetch(self, key: str, params: Mapping[str, Any] | None = None) -> Any:
        self.calls.append((key, params))
        if self.gate is not None:
            await self.gate.wait()
        result = self.results.pop(0) if self.results else self.default
        if isinstance(result, Exception):
            raise result
        return result

    def decode(self, key: str, payload: Any) -> Any:
        return payload

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def mirror() -> InMemoryMirrorRepository:
    return InMemoryMirrorRepository(namespace="@Test")


@pytest_asyncio.fixture
async def service(fetcher, mirror):
    """Service with a long interval so timers never fire on their own."""
    cache = SyncService(fetcher=fetcher, mirror=mirror, interval=60, max_entries=0, restore=False)
    yield cache
    await cache.close()


@pytest.fixture
def wait_for() -> Callable[[Callable[[], bool], float], Awaitable[None]]:
    """Poll a condition on the event loop until it holds."""

    async def _wait_for(condition: Callable[[], bool], timeout: float = 1.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not condition():
            if loop.time() > deadline:
                raise AssertionError("condition not met in time")
            await asyncio.sleep(0.005)

    return _wait_for
