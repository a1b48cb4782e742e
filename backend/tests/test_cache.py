from datetime import datetime, timezone

import pytest

from app.config import CommandCenterConfig
from app.engines import CommandCenterAggregator, SnapshotCache
from app.engines.filters import SnapshotFilters


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
async def snapshot(source):
    aggregator = CommandCenterAggregator(
        source, CommandCenterConfig(), clock=lambda: datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc),
    )
    return await aggregator.build_snapshot(SnapshotFilters())


async def test_memory_cache_round_trip(snapshot):
    cache = SnapshotCache(redis_url=None, ttl_seconds=30)

    assert cache.backend == "memory"
    await cache.set(SnapshotFilters(), snapshot)

    cached = await cache.get(SnapshotFilters())
    assert cached.model_dump(mode="json") == snapshot.model_dump(mode="json")
    assert await cache.get(SnapshotFilters(series=("B",))) is None


async def test_disabled_cache_stores_nothing(snapshot):
    cache = SnapshotCache(redis_url=None, ttl_seconds=0)

    await cache.set(SnapshotFilters(), snapshot)

    assert cache.backend == "disabled"
    assert cache.memory_entries == 0
    assert await cache.get(SnapshotFilters()) is None


async def test_entry_expires_after_ttl(snapshot):
    clock = FakeClock()
    cache = SnapshotCache(redis_url=None, ttl_seconds=15, clock=clock)
    await cache.set(SnapshotFilters(), snapshot)

    clock.now += 14.9
    assert await cache.get(SnapshotFilters()) is not None

    clock.now += 0.2
    assert await cache.get(SnapshotFilters()) is None
    assert cache.memory_entries == 0


async def test_expired_entries_are_swept_on_set(snapshot):
    clock = FakeClock()
    cache = SnapshotCache(redis_url=None, ttl_seconds=1, max_entries=1000, clock=clock)
    for i in range(500):
        await cache.set(SnapshotFilters(series=(f"S{i}",)), snapshot)
    assert cache.memory_entries == 500

    clock.now += 1.1
    await cache.set(SnapshotFilters(series=("NEW",)), snapshot)

    assert cache.memory_entries == 1
    assert await cache.get(SnapshotFilters(series=("NEW",))) is not None


async def test_memory_entries_are_bounded(snapshot):
    cache = SnapshotCache(redis_url=None, ttl_seconds=60, max_entries=3, clock=FakeClock())
    for series in ("A", "B", "C", "D"):
        await cache.set(SnapshotFilters(series=(series,)), snapshot)

    assert cache.memory_entries == 3
    # 가장 먼저 들어간 항목이 제거됨
    assert await cache.get(SnapshotFilters(series=("A",))) is None
    assert await cache.get(SnapshotFilters(series=("D",))) is not None
