"""
Tests for the revalidation scheduler.
"""

import asyncio

import pytest

from swr_cache.services import RevalidationScheduler


@pytest.mark.asyncio
async def test_timer_fires_repeatedly(wait_for):
    fired = []

    async def callback(key):
        fired.append(key)

    scheduler = RevalidationScheduler(callback, interval=0.01)
    assert scheduler.arm("ops") is True
    await wait_for(lambda: len(fired) >= 3)
    await scheduler.close()

    assert set(fired) == {"ops"}


@pytest.mark.asyncio
async def test_only_one_timer_per_key():
    async def callback(key):
        return None

    scheduler = RevalidationScheduler(callback, interval=60)
    assert scheduler.arm("ops") is True
    assert scheduler.arm("ops") is False
    assert scheduler.armed_keys() == ["ops"]
    await scheduler.close()


@pytest.mark.asyncio
async def test_failing_callback_keeps_rearming(wait_for):
    attempts = 0

    async def callback(key):
        nonlocal attempts
        attempts += 1
        raise RuntimeError("remote down")

    scheduler = RevalidationScheduler(callback, interval=0.01)
    scheduler.arm("ops")
    await wait_for(lambda: attempts >= 3)

    assert scheduler.is_armed("ops")
    await scheduler.close()


@pytest.mark.asyncio
async def test_disarm_stops_the_timer():
    fired = []

    async def callback(key):
        fired.append(key)

    scheduler = RevalidationScheduler(callback, interval=0.01)
    scheduler.arm("ops")
    assert scheduler.disarm("ops") is True
    assert scheduler.disarm("ops") is False
    await asyncio.sleep(0.05)

    assert fired == []
    assert not scheduler.is_armed("ops")


@pytest.mark.asyncio
async def test_close_cancels_every_timer():
    async def callback(key):
        return None

    scheduler = RevalidationScheduler(callback, interval=60)
    scheduler.arm("ops")
    scheduler.arm("users", interval=30)
    await scheduler.close()

    assert scheduler.armed_keys() == []


@pytest.mark.asyncio
async def test_rejects_non_positive_interval():
    async def callback(key):
        return None

    scheduler = RevalidationScheduler(callback, interval=60)
    for interval in (0, -1):
        with pytest.raises(ValueError):
            scheduler.arm("ops", interval=interval)
    assert not scheduler.is_armed("ops")

    scheduler.arm("ops")
    with pytest.raises(ValueError):
        scheduler.arm("ops", interval=0)
    await scheduler.close()


def test_rejects_non_positive_default_interval():
    async def callback(key):
        return None

    with pytest.raises(ValueError):
        RevalidationScheduler(callback, interval=0)
