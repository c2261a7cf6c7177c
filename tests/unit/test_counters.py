"""Tests for atomic expiring counters."""

import asyncio
from pathlib import Path

import pytest

from content_engine.storage.counters import InMemoryCounterStore, SQLiteCounterStore


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(params=["memory", "sqlite"])
async def store(request, clock, tmp_dir):
    if request.param == "memory":
        return InMemoryCounterStore(clock=clock)
    sqlite_store = SQLiteCounterStore(str(Path(tmp_dir) / "counters.db"), clock=clock)
    await sqlite_store.initialize()
    return sqlite_store


async def test_increment_counts_up(store):
    assert await store.increment("k", 60) == 1
    assert await store.increment("k", 60) == 2
    assert await store.get("k") == 2
    assert await store.get("other") == 0


async def test_expiry_restarts_count(store, clock):
    await store.increment("k", 60)
    await store.increment("k", 60)
    clock.now += 61
    assert await store.get("k") == 0
    assert await store.increment("k", 60) == 1


async def test_expiry_is_not_extended_by_increments(store, clock):
    await store.increment("k", 60)
    clock.now += 50
    await store.increment("k", 60)
    clock.now += 11
    assert await store.increment("k", 60) == 1


async def test_reset(store):
    await store.increment("k", 60)
    await store.reset("k")
    assert await store.get("k") == 0


async def test_concurrent_increments_are_atomic(store):
    results = await asyncio.gather(*(store.increment("k", 60) for _ in range(20)))
    assert sorted(results) == list(range(1, 21))


async def test_purge_expired_removes_only_expired_keys(store, clock):
    await store.increment("short", 10)
    await store.increment("long", 600)
    clock.now += 11
    assert await store.purge_expired() == 1
    assert await store.get("long") == 1
    assert await store.purge_expired() == 0


@pytest.mark.parametrize("backend", ["memory", "sqlite"])
async def test_expired_keys_are_swept_on_increment_cadence(backend, clock, tmp_dir):
    if backend == "memory":
        store = InMemoryCounterStore(clock=clock, purge_every=3)
    else:
        store = SQLiteCounterStore(str(Path(tmp_dir) / "sweep.db"), clock=clock, purge_every=3)
        await store.initialize()

    await store.increment("user:1", 10)
    await store.increment("user:2", 10)
    clock.now += 11
    # Third increment triggers the sweep of both expired keys.
    await store.increment("user:3", 10)
    assert await store.purge_expired() == 0
    assert await store.get("user:3") == 1
