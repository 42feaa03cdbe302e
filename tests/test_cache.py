import asyncio
import logging

import pytest

from prefixfs.cache import Cache


class Fetcher:
    """Counts calls and returns value-1, value-2, ..."""

    def __init__(self, fail=False):
        self.calls = 0
        self.fail = fail

    async def __call__(self):
        self.calls += 1
        n = self.calls
        await asyncio.sleep(0)
        if self.fail:
            raise RuntimeError("store is down")
        return f"value-{n}"


def test_get_set_expiry(cache, clock):
    assert cache.get("docs:a/") is None
    assert cache.get("docs:a/", "missing") == "missing"
    cache.set("docs:a/", [1, 2], ttl=10)
    assert cache.get("docs:a/") == [1, 2]
    assert "docs:a/" in cache
    clock.advance(9)
    assert cache.get("docs:a/") == [1, 2]
    clock.advance(1)
    # expired exactly at the ttl
    assert len(cache) == 0
    assert cache.keys() == []
    assert cache.get("docs:a/") is None
    assert "docs:a/" not in cache


def test_set_overwrites(cache, clock):
    cache.set("k", 1, ttl=10)
    clock.advance(8)
    cache.set("k", 2, ttl=10)
    clock.advance(8)
    assert cache.get("k") == 2


def test_falsy_values_are_hits(cache):
    cache.set("empty", [], ttl=10)
    cache.set("zero", 0, ttl=10)
    assert cache.get("empty", "miss") == []
    assert cache.get("zero", "miss") == 0


def test_invalidate_by_prefix(cache):
    for key in ["folders:", "folders:a/", "docs:", "docs:a/", "docs:a/b/", "other"]:
        cache.set(key, key, ttl=10)
    cache.invalidate("other")
    cache.invalidate("not-there")
    assert cache.invalidate_by_prefix("docs:") == 3
    assert sorted(cache.keys()) == ["folders:", "folders:a/"]
    assert cache.invalidate_by_prefix("docs:") == 0
    cache.clear()
    assert len(cache) == 0


@pytest.mark.anyio
async def test_swr_miss_and_fresh_hit(cache, clock):
    fetch = Fetcher()
    assert await cache.swr("k", 10, fetch) == "value-1"
    clock.advance(4)
    assert await cache.swr("k", 10, fetch) == "value-1"
    assert cache.pending_refreshes() == 0
    assert fetch.calls == 1


@pytest.mark.anyio
async def test_swr_stale_hit_refreshes_in_background(cache, clock):
    fetch = Fetcher()
    updates = []
    await cache.swr("k", 10, fetch)
    clock.advance(6)
    # the stale value is returned right away, the refresh has not run yet
    assert await cache.swr("k", 10, fetch, on_background_update=updates.append) == "value-1"
    assert fetch.calls == 1
    assert cache.pending_refreshes() == 1
    await cache.wait_for_refreshes()
    assert fetch.calls == 2
    assert updates == ["value-2"]
    assert cache.get("k") == "value-2"
    # the refresh resets the ttl
    clock.advance(9)
    assert cache.get("k") == "value-2"


@pytest.mark.anyio
async def test_swr_background_failure_keeps_stale_value(cache, clock, caplog):
    await cache.swr("k", 10, Fetcher())
    clock.advance(6)
    failing = Fetcher(fail=True)
    with caplog.at_level(logging.WARNING, logger="prefixfs.cache"):
        assert await cache.swr("k", 10, failing) == "value-1"
        await cache.wait_for_refreshes()
    assert failing.calls == 1
    assert cache.get("k") == "value-1"
    assert "Background refresh of 'k' failed" in caplog.text


@pytest.mark.anyio
async def test_swr_miss_failure_propagates(cache):
    with pytest.raises(RuntimeError):
        await cache.swr("k", 10, Fetcher(fail=True))
    assert "k" not in cache


@pytest.mark.anyio
async def test_swr_expired_entry_is_refetched(cache, clock):
    fetch = Fetcher()
    await cache.swr("k", 10, fetch)
    clock.advance(10)
    assert await cache.swr("k", 10, fetch) == "value-2"
    assert cache.pending_refreshes() == 0


@pytest.mark.anyio
async def test_swr_does_not_deduplicate_misses(cache):
    fetch = Fetcher()
    results = await asyncio.gather(cache.swr("k", 10, fetch), cache.swr("k", 10, fetch))
    assert results == ["value-1", "value-2"]
    assert fetch.calls == 2
    assert cache.get("k") in results


def test_default_clock():
    cache = Cache()
    cache.set("k", "v", ttl=60)
    assert cache.get("k") == "v"


class BlockedFetcher:
    """Returns value once released, to hold a fetch in flight"""

    def __init__(self, value):
        self.value = value
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def __call__(self):
        self.started.set()
        await self.release.wait()
        return self.value


@pytest.mark.anyio
async def test_refresh_overtaken_by_invalidation_is_dropped(cache, clock):
    cache.set("docs:a/", "before rename", ttl=60)
    clock.advance(40)
    fetch = BlockedFetcher("fetched before rename")
    updates = []
    assert await cache.swr("docs:a/", 60, fetch, on_background_update=updates.append) == "before rename"
    await fetch.started.wait()
    cache.invalidate_by_prefix("docs:")
    fetch.release.set()
    await cache.wait_for_refreshes()
    assert cache.get("docs:a/") is None
    assert updates == []
    # the next read fetches again
    assert await cache.swr("docs:a/", 60, Fetcher()) == "value-1"


@pytest.mark.anyio
async def test_refresh_overtaken_by_set_is_dropped(cache, clock):
    cache.set("k", "old", ttl=60)
    clock.advance(40)
    fetch = BlockedFetcher("stale")
    await cache.swr("k", 60, fetch)
    await fetch.started.wait()
    cache.set("k", "new", ttl=60)
    fetch.release.set()
    await cache.wait_for_refreshes()
    assert cache.get("k") == "new"


@pytest.mark.anyio
async def test_miss_overtaken_by_invalidation_is_not_cached(cache):
    fetch = BlockedFetcher("fetched before delete")
    read = asyncio.create_task(cache.swr("docs:a/", 60, fetch))
    await fetch.started.wait()
    cache.clear()
    fetch.release.set()
    # the caller still gets its answer, but it is not kept
    assert await read == "fetched before delete"
    assert "docs:a/" not in cache
