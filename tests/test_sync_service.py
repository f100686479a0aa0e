"""
Tests for the sync service: stale-while-revalidate, deduplication,
mirroring, polling and subscription lifecycle.
"""

import asyncio
import json

import pytest

from swr_cache.entities import EntryStatus
from swr_cache.errors import TransportError
from swr_cache.repositories import InMemoryMirrorRepository
from swr_cache.services import SyncService

OPS = [{"id": 1, "status": "pending"}]


def mirrored(mirror, key):
    """Mirror record for key as stored right now, read without awaiting."""
    raw = mirror.records.get(mirror.storage_key(key))
    return None if raw is None else json.loads(raw)


@pytest.mark.asyncio
async def test_first_subscription_loads_and_mirrors(service, fetcher, mirror):
    seen = []
    sub = service.subscribe("ops", seen.append)

    assert sub.entry.data is None
    entry = await service.revalidate("ops")

    assert entry.status is EntryStatus.READY
    assert entry.data == OPS
    assert entry.error is None
    assert entry.last_updated is not None
    assert await mirror.read("ops") == OPS
    assert len(fetcher.calls) == 1
    assert seen[-1].data == OPS


@pytest.mark.asyncio
async def test_concurrent_subscriptions_fetch_once(service, fetcher):
    fetcher.gate = asyncio.Event()
    subs = [service.subscribe("ops", lambda entry: None) for _ in range(10)]
    await asyncio.sleep(0)

    assert service.is_fetching("ops")
    assert service.get("ops").status is EntryStatus.FETCHING

    fetcher.gate.set()
    await service.revalidate("ops")

    assert len(fetcher.calls) == 1
    assert service.metrics.deduplicated >= 1
    for sub in subs:
        sub.close()


@pytest.mark.asyncio
async def test_mirror_written_before_subscribers_notified(service, mirror):
    mirrored_at_notify = []
    service.subscribe("ops", lambda entry: mirrored_at_notify.append(mirrored(mirror, "ops") == entry.data))

    await service.revalidate("ops")

    assert mirrored_at_notify == [True]


@pytest.mark.asyncio
async def test_failed_revalidation_keeps_stale_data(service, fetcher):
    service.subscribe("ops", lambda entry: None)
    await service.revalidate("ops")

    fetcher.results = [TransportError("Service unavailable", status_code=503)]
    entry = await service.revalidate("ops")

    assert entry.status is EntryStatus.ERRORED
    assert entry.data == OPS
    assert isinstance(entry.error, TransportError)
    assert entry.error.status_code == 503
    assert service.is_armed("ops")


@pytest.mark.asyncio
async def test_success_after_failure_clears_error(service, fetcher):
    fetcher.results = [TransportError("down"), [{"id": 2, "status": "done"}]]

    errored = await service.revalidate("ops")
    recovered = await service.revalidate("ops")

    assert errored.status is EntryStatus.ERRORED
    assert errored.data is None
    assert recovered.status is EntryStatus.READY
    assert recovered.error is None
    assert recovered.data == [{"id": 2, "status": "done"}]


@pytest.mark.asyncio
async def test_timer_rearms_after_failure(fetcher, mirror, wait_for):
    fetcher.results = [OPS]
    fetcher.default = TransportError("down", status_code=500)
    service = SyncService(fetcher=fetcher, mirror=mirror, interval=0.01, max_entries=0, restore=False)

    service.subscribe("ops", lambda entry: None)
    await wait_for(lambda: len(fetcher.calls) >= 4)

    entry = service.get("ops")
    assert entry.data == OPS
    assert isinstance(entry.error, TransportError)
    assert service.is_armed("ops")
    await service.close()


@pytest.mark.asyncio
async def test_timer_tick_joins_pending_fetch(fetcher, mirror):
    fetcher.gate = asyncio.Event()
    service = SyncService(fetcher=fetcher, mirror=mirror, interval=0.01, max_entries=0, restore=False)

    service.subscribe("ops", lambda entry: None)
    await asyncio.sleep(0.05)

    assert len(fetcher.calls) == 1
    fetcher.gate.set()
    await service.close()


@pytest.mark.asyncio
async def test_unsubscribing_last_subscriber_disarms_timer(service):
    first = service.subscribe("ops", lambda entry: None)
    second = service.subscribe("ops", lambda entry: None)
    await service.revalidate("ops")

    first.close()
    assert service.is_armed("ops")
    second.close()
    assert not service.is_armed("ops")
    assert service.subscriber_count("ops") == 0


@pytest.mark.asyncio
async def test_resubscription_serves_cached_data_and_rearms(service, fetcher):
    with service.subscribe("ops", lambda entry: None):
        await service.revalidate("ops")
    assert not service.is_armed("ops")

    fetcher.gate = asyncio.Event()
    sub = service.subscribe("ops", lambda entry: None)

    assert sub.entry.data == OPS
    assert service.is_armed("ops")
    assert service.is_fetching("ops")
    fetcher.gate.set()
    sub.close()


@pytest.mark.asyncio
async def test_unsubscribe_does_not_cancel_in_flight_fetch(service, fetcher, wait_for):
    fetcher.gate = asyncio.Event()
    async with service.subscribe("ops", lambda entry: None):
        await asyncio.sleep(0)

    assert service.is_fetching("ops")
    fetcher.gate.set()
    await wait_for(lambda: service.get("ops").status is EntryStatus.READY)

    assert service.get("ops").data == OPS
    assert len(fetcher.calls) == 1


@pytest.mark.asyncio
async def test_subscription_close_is_idempotent(service):
    sub = service.subscribe("ops", lambda entry: None)
    sub.close()
    sub.close()
    assert sub.closed
    assert service.subscriber_count("ops") == 0


@pytest.mark.asyncio
async def test_params_are_remembered_for_revalidation(service, fetcher):
    service.subscribe("ops", lambda entry: None, params={"status": "pending"})
    await service.revalidate("ops")
    await service.revalidate("ops")

    assert fetcher.calls == [("ops", {"status": "pending"})] * 2


@pytest.mark.asyncio
async def test_unexpected_fetcher_error_is_recorded_and_raised(service, fetcher):
    fetcher.results = [RuntimeError("bug in fetcher")]

    with pytest.raises(RuntimeError):
        await service.revalidate("ops")

    entry = service.get("ops")
    assert entry.status is EntryStatus.ERRORED
    assert not entry.in_flight


@pytest.mark.asyncio
async def test_unserializable_data_still_reaches_cache(service, fetcher, mirror):
    payload = [object()]
    fetcher.results = [payload]

    entry = await service.revalidate("ops")

    assert entry.data is payload
    assert entry.status is EntryStatus.READY
    assert await mirror.read("ops") is None
    assert service.metrics.mirror_failures == 1


@pytest.mark.asyncio
async def test_restore_seeds_entry_from_mirror(fetcher, mirror):
    await mirror.write("ops", OPS)
    fetcher.gate = asyncio.Event()
    service = SyncService(fetcher=fetcher, mirror=mirror, interval=60, max_entries=0, restore=True)
    seen = []

    sub = service.subscribe("ops", seen.append)
    await asyncio.sleep(0.01)

    assert sub.entry.data is None
    assert seen[0].data == OPS
    assert seen[0].last_updated is None
    assert service.get("ops").data == OPS
    assert service.is_fetching("ops")
    assert len(fetcher.calls) == 1
    fetcher.gate.set()
    await service.close()


@pytest.mark.asyncio
async def test_restore_does_not_overwrite_mutation(fetcher, mirror):
    await mirror.write("ops", OPS)
    fetcher.gate = asyncio.Event()
    service = SyncService(fetcher=fetcher, mirror=mirror, interval=60, max_entries=0, restore=True)

    service.subscribe("ops", lambda entry: None)
    service.mutate("ops", [{"id": 5}])
    await asyncio.sleep(0.01)

    assert service.get("ops").data == [{"id": 5}]
    fetcher.gate.set()
    await service.close()


@pytest.mark.asyncio
async def test_restore_disabled_ignores_mirror(service, fetcher, mirror):
    await mirror.write("ops", OPS)
    fetcher.gate = asyncio.Event()

    sub = service.subscribe("ops", lambda entry: None)

    assert sub.entry.data is None
    await asyncio.sleep(0.01)
    assert service.get("ops").data is None
    fetcher.gate.set()


@pytest.mark.asyncio
async def test_close_tears_everything_down(fetcher, mirror):
    fetcher.gate = asyncio.Event()
    service = SyncService(fetcher=fetcher, mirror=mirror, interval=60, max_entries=0, restore=False)
    service.subscribe("ops", lambda entry: None)
    service.subscribe("users", lambda entry: None)

    await service.close()

    assert not service.is_armed("ops")
    assert not service.is_armed("users")
    assert not service.is_fetching("ops")
    assert not service.get("ops").in_flight
    assert fetcher.closed
    with pytest.raises(RuntimeError):
        service.subscribe("ops", lambda entry: None)


@pytest.mark.asyncio
async def test_stats_report_counts(service):
    service.subscribe("ops", lambda entry: None)
    await service.revalidate("ops")

    stats = service.stats()

    assert stats["entries"] == 1
    assert stats["subscribed_keys"] == 1
    assert stats["armed_timers"] == 1
    assert stats["in_flight"] == 0
    assert stats["revalidate_interval"] == 60
    assert stats["metrics"]["fetches"] == 1
    assert stats["metrics"]["mirror_writes"] == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("interval", [0, -1])
async def test_invalid_interval_leaves_no_subscriber_behind(service, fetcher, interval):
    seen = []

    with pytest.raises(ValueError):
        service.subscribe("ops", seen.append, interval=interval)
    await service.revalidate("ops")

    assert service.subscriber_count("ops") == 0
    assert not service.is_armed("ops")
    assert seen == []
    assert len(fetcher.calls) == 1


@pytest.mark.asyncio
async def test_closed_service_starts_no_fetch(fetcher, mirror):
    service = SyncService(fetcher=fetcher, mirror=mirror, interval=60, max_entries=0, restore=False)
    await service.close()

    with pytest.raises(RuntimeError):
        await service.revalidate("ops")
    with pytest.raises(RuntimeError):
        service.trigger("ops")
    with pytest.raises(RuntimeError):
        service.mutate("ops", [{"id": 2}], revalidate=True)

    assert fetcher.calls == []
    assert service.get("ops").data is None
    assert not service.is_fetching("ops")


class HeldMirror(InMemoryMirrorRepository):
    """Mirror whose writes wait until release is set."""

    def __init__(self) -> None:
        super().__init__(namespace="@Test")
        self.release = asyncio.Event()

    async def write(self, key, data):
        await self.release.wait()
        return await super().write(key, data)


@pytest.mark.asyncio
async def test_slow_mirror_write_does_not_block_the_loop(fetcher):
    mirror = HeldMirror()
    service = SyncService(fetcher=fetcher, mirror=mirror, interval=60, max_entries=0, restore=False)
    ticks = 0

    async def ticker():
        nonlocal ticks
        while True:
            ticks += 1
            await asyncio.sleep(0.001)

    ticking = asyncio.ensure_future(ticker())
    pending = asyncio.ensure_future(service.revalidate("ops"))
    await asyncio.sleep(0.02)

    assert ticks > 1
    assert not pending.done()
    assert service.get("ops").data is None
    assert service.get("ops").in_flight

    mirror.release.set()
    entry = await pending
    ticking.cancel()

    assert entry.data == OPS
    assert mirrored(mirror, "ops") == OPS
    await service.close()
