"""
In-memory read cache with TTL, prefix invalidation and stale-while-revalidate.

A Cache lives for one application session (see prefixfs.connections) and is never persisted:
the object store is authoritative. All access happens on a single asyncio event loop, so no two
cache mutations can interleave. swr() does not de-duplicate concurrent misses for the same key;
every write is an idempotent overwrite, so duplicate fetches only cost a request.
A fetch that was overtaken by a write or an invalidation of its key is not cached, so a listing
fetched before a mutation never outlives the invalidation that followed it.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger("prefixfs.cache")

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    value: T
    expires_at: float


class Cache:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: dict[str, CacheEntry] = {}
        self._refreshes: set[asyncio.Task] = set()
        # bumped on every write or invalidation of a key, so a refresh can tell it was overtaken
        self._generations: dict[str, int] = {}
        self.clock = clock

    def __contains__(self, key: str) -> bool:
        return self._live_entry(key) is not None

    def __len__(self) -> int:
        return len(self.keys())

    def keys(self) -> list[str]:
        """Keys of the live entries. Expired entries are left in place until they are read."""
        now = self.clock()
        return [key for key, entry in self._entries.items() if now < entry.expires_at]

    def _bump(self, key: str) -> None:
        self._generations[key] = self._generations.get(key, 0) + 1

    def _live_entry(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self.clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value, or default if absent. Expired entries are dropped here."""
        entry = self._live_entry(key)
        return default if entry is None else entry.value

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store value for ttl seconds, overwriting any existing entry"""
        self._entries[key] = CacheEntry(value=value, expires_at=self.clock() + ttl)
        self._bump(key)

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)
        self._bump(key)

    def invalidate_by_prefix(self, key_prefix: str) -> int:
        """Drop every entry whose key starts with key_prefix, returning the number of dropped entries"""
        keys = [k for k in self._entries if k.startswith(key_prefix)]
        for key in keys:
            del self._entries[key]
        for key in self._generations:
            if key.startswith(key_prefix):
                self._bump(key)
        if keys:
            logger.debug(f"Invalidated {len(keys)} cache entries starting with {key_prefix!r}")
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()
        for key in self._generations:
            self._bump(key)

    async def swr(
        self,
        key: str,
        ttl: float,
        fetcher: Callable[[], Awaitable[T]],
        on_background_update: Callable[[T], Any] | None = None,
    ) -> T:
        """
        Stale-while-revalidate read.

        If a live entry exists it is returned immediately. When more than half of its TTL has passed,
        fetcher() is additionally scheduled in the background and overwrites the entry on success.
        The caller never waits for that refresh, and a failing refresh is logged and ignored since
        the stale value already answered the call.

        Without a live entry, fetcher() is awaited, cached and returned. Its errors propagate.
        Results of fetches that were overtaken by set() or an invalidation of the key are not cached.
        """
        entry = self._live_entry(key)
        if entry is not None:
            if self.clock() > entry.expires_at - ttl / 2:
                self._schedule_refresh(key, ttl, fetcher, on_background_update)
            return entry.value
        generation = self._generations.setdefault(key, 0)
        value = await fetcher()
        if self._generations.get(key, 0) == generation:
            self.set(key, value, ttl)
        return value

    def _schedule_refresh(self, key, ttl, fetcher, on_background_update) -> None:
        generation = self._generations.get(key, 0)
        task = asyncio.create_task(self._refresh(key, ttl, fetcher, on_background_update, generation))
        # the event loop only keeps weak references to tasks
        self._refreshes.add(task)
        task.add_done_callback(self._refreshes.discard)

    async def _refresh(self, key, ttl, fetcher, on_background_update, generation: int) -> None:
        try:
            value = await fetcher()
        except Exception:
            logger.warning(f"Background refresh of {key!r} failed, keeping stale value", exc_info=True)
            return
        if self._generations.get(key, 0) != generation:
            # invalidated or rewritten while fetching, the result may predate that change
            logger.debug(f"Dropping background refresh of {key!r}, the entry changed in the meantime")
            return
        self.set(key, value, ttl)
        if on_background_update is not None:
            on_background_update(value)

    def pending_refreshes(self) -> int:
        return len(self._refreshes)

    async def wait_for_refreshes(self) -> None:
        """Wait until all scheduled background refreshes have finished"""
        while self._refreshes:
            await asyncio.gather(*self._refreshes, return_exceptions=True)
