import asyncio
from datetime import datetime, timedelta, timezone

from mealplan.services.cache import (
    CacheBackend,
    CacheStore,
    MemoryCacheBackend,
    canonical_params,
    compute_cache_key,
)


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


class BrokenBackend(CacheBackend):
    async def read(self, key):
        raise ConnectionError("mongo down")

    async def write(self, key, value, timestamp):
        raise ConnectionError("mongo down")


def test_cache_key_ignores_key_order_case_and_none():
    a = {"diet": ["Vegan", "gluten free"], "cuisine": " Italian ", "maxReadyTime": None, "number": 60}
    b = {"number": 60, "cuisine": "italian", "diet": ["gluten free", "vegan"]}
    assert canonical_params(a) == canonical_params(b)
    assert compute_cache_key(a) == compute_cache_key(b)
    assert compute_cache_key(a) != compute_cache_key({**b, "cuisine": "thai"})


def test_get_within_ttl_then_stale_is_miss():
    clock = FakeClock()
    store = CacheStore(MemoryCacheBackend(), ttl=timedelta(hours=48), clock=clock)

    async def run():
        await store.set("k", [{"id": "spn-1"}])
        clock.now += timedelta(hours=47)
        fresh = await store.get("k")
        clock.now += timedelta(hours=2)
        stale = await store.get("k")
        return fresh, stale

    fresh, stale = asyncio.run(run())
    assert fresh == [{"id": "spn-1"}]
    assert stale is None


def test_set_replaces_whole_entry_and_refreshes_timestamp():
    clock = FakeClock()
    store = CacheStore(MemoryCacheBackend(), ttl=timedelta(hours=1), clock=clock)

    async def run():
        await store.set("k", {"a": 1})
        clock.now += timedelta(minutes=50)
        await store.set("k", {"b": 2})
        clock.now += timedelta(minutes=50)
        return await store.get("k")

    assert asyncio.run(run()) == {"b": 2}


def test_naive_timestamps_are_treated_as_utc():
    clock = FakeClock()
    backend = MemoryCacheBackend()
    store = CacheStore(backend, ttl=timedelta(hours=1), clock=clock)

    async def run():
        await backend.write("k", "v", clock.now.replace(tzinfo=None))
        return await store.get("k")

    assert asyncio.run(run()) == "v"


def test_storage_errors_degrade_to_miss():
    store = CacheStore(BrokenBackend())

    async def run():
        await store.set("k", "v")  # 예외 없이 넘어가야 함
        return await store.get("k")

    assert asyncio.run(run()) is None


def test_missing_key_is_miss():
    store = CacheStore(MemoryCacheBackend())
    assert asyncio.run(store.get("nope")) is None
