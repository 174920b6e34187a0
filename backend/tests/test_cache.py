import json

from conftest import FakeClock

from neowatch.services.cache import CacheEntry, ResultCache, details_key, feed_key
from neowatch.services.store import MemoryStore


class FailingStore(MemoryStore):
    async def read(self, key):
        raise ConnectionError("redis down")

    async def write(self, key, data, ttl_ms=None):
        raise ConnectionError("redis down")


def test_keys():
    assert feed_key("2026-01-15", "2026-01-16") == "feed:2026-01-15:2026-01-16"
    assert details_key("3542519") == "neo:3542519"


def test_is_fresh_boundary():
    clock = FakeClock(10_000)
    cache = ResultCache(MemoryStore(), clock=clock)
    entry = CacheEntry(created_at=9_000, ttl=1_000, value=1)
    assert not cache.is_fresh(entry)
    clock.now = 9_999
    assert cache.is_fresh(entry)
    assert not cache.is_fresh(None)


async def test_put_then_get_until_ttl():
    clock = FakeClock(0)
    cache = ResultCache(MemoryStore(), clock=clock)
    await cache.put("k", {"a": 1}, ttl=600)

    clock.advance(599)
    assert await cache.get("k") == {"a": 1}

    clock.advance(1)
    assert await cache.get("k") is None


async def test_durable_entry_survives_new_process_and_is_promoted():
    clock = FakeClock(0)
    store = MemoryStore()
    await ResultCache(store, clock=clock).put("neo:1", [1, 2, 3], ttl=1000)

    fresh_process = ResultCache(store, clock=clock)
    clock.advance(500)
    assert await fresh_process.get("neo:1") == [1, 2, 3]

    # promoted copy keeps serving even if the durable layer disappears
    store.data.clear()
    assert await fresh_process.get("neo:1") == [1, 2, 3]


async def test_stale_durable_entry_is_absent():
    clock = FakeClock(0)
    store = MemoryStore()
    await ResultCache(store, clock=clock).put("feed:x", "v", ttl=100)
    clock.advance(100)
    assert await ResultCache(store, clock=clock).get("feed:x") is None


async def test_durable_write_failure_keeps_in_process_copy(caplog):
    cache = ResultCache(FailingStore(), clock=FakeClock(0))
    entry = await cache.put("k", "v", ttl=100)
    assert entry.value == "v"
    assert await cache.get("k") == "v"
    assert "Durable cache write failed" in caplog.text


async def test_durable_read_failure_reports_absent():
    cache = ResultCache(FailingStore(), clock=FakeClock(0))
    assert await cache.get("missing") is None


async def test_corrupt_envelope_is_ignored():
    store = MemoryStore()
    store.data["k"] = b"{not json"
    store.data["k2"] = json.dumps({"value": 1}).encode()
    cache = ResultCache(store, clock=FakeClock(0))
    assert await cache.get("k") is None
    assert await cache.get("k2") is None
