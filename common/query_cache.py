"""Process-local query cache for read-heavy fetches.

Keys are tuples such as ``("calcom", "upcoming", "2026-03-01", None)``.
Concurrent callers asking for the same key share a single in-flight fetch;
mutations invalidate every key that starts with a given prefix.
"""
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Key = tuple


class QueryCache:
    """TTL cache with in-flight deduplication per key."""

    def __init__(self, ttl_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Key, tuple[float, Any]] = {}
        self._inflight: dict[Key, asyncio.Future] = {}

    def peek(self, key: Key) -> Optional[Any]:
        """Cached value if present and fresh, else None."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at > self.ttl_seconds:
            del self._entries[key]
            return None
        return value

    async def get(self, key: Key, fetcher: Callable[[], Awaitable[Any]]) -> Any:
        """Return the cached value for key, fetching it at most once concurrently."""
        value = self.peek(key)
        if value is not None:
            return value

        pending = self._inflight.get(key)
        if pending is not None:
            try:
                return await asyncio.shield(pending)
            except asyncio.CancelledError:
                # The owning fetch was cancelled, not this caller: fetch again.
                if not pending.cancelled():
                    raise
                return await self.get(key, fetcher)

        future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            value = await fetcher()
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved so an unawaited failure does not warn.
            future.exception()
            raise
        else:
            self._entries[key] = (self._clock(), value)
            future.set_result(value)
            return value
        finally:
            self._inflight.pop(key, None)
            if not future.done():
                future.cancel()

    def invalidate(self, prefix: Key = ()) -> int:
        """Drop every entry whose key starts with prefix. Returns count dropped."""
        n = len(prefix)
        stale = [k for k in self._entries if k[:n] == prefix]
        for k in stale:
            del self._entries[k]
        if stale:
            logger.debug(f"Invalidated {len(stale)} cache entries for {prefix}")
        return len(stale)

    def __len__(self) -> int:
        return len(self._entries)
