"""In-process TTL cache with single-flight computation."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from .base import Cache

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CacheEntry:
    """A cached value and its absolute expiry (monotonic seconds)."""

    value: Any
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        """Check whether the entry has passed its expiry."""
        return self.expires_at is not None and now >= self.expires_at


class InMemoryCache(Cache):
    """Dictionary-backed cache.

    Entries expire lazily on read. ``get_or_set`` keeps a registry of in-flight
    computations keyed by cache key, so a burst of requests for the same cold
    key triggers a single upstream computation.
    """

    def __init__(self, default_ttl: float | None = None, clock: Callable[[], float] | None = None):
        """Initialize the cache.

        Args:
            default_ttl: TTL applied when ``set`` is called without one
            clock: Monotonic time source (injectable for tests)
        """
        self.default_ttl = default_ttl
        self._clock = clock or time.monotonic
        self._entries: dict[str, CacheEntry] = {}
        self._in_flight: dict[str, asyncio.Future] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        if entry.is_expired(self._clock()):
            del self._entries[key]
            self.misses += 1
            return None

        self.hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl
        expires_at = self._clock() + ttl if ttl is not None else None
        self._entries[key] = CacheEntry(value=value, expires_at=expires_at)

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def invalidate(self, key_or_prefix: str) -> int:
        if key_or_prefix.endswith("*") or key_or_prefix.endswith(":"):
            prefix = key_or_prefix.rstrip("*")
            keys = [k for k in self._entries if k.startswith(prefix)]
            for k in keys:
                del self._entries[k]
            logger.debug(f"Invalidated {len(keys)} cache entries with prefix '{prefix}'")
            return len(keys)

        return 1 if self.delete(key_or_prefix) else 0

    def flush(self) -> None:
        count = len(self._entries)
        self._entries.clear()
        logger.info(f"Flushed {count} cache entries")

    async def get_or_set(
        self,
        key: str,
        ttl_seconds: float | None,
        compute: Callable[[], Awaitable[T]],
    ) -> T:
        cached = self.get(key)
        if cached is not None:
            return cached

        pending = self._in_flight.get(key)
        if pending is not None:
            logger.debug(f"Joining in-flight computation for '{key}'")
            return await asyncio.shield(pending)

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            value = await compute()
        except BaseException as e:
            if not future.done():
                future.set_exception(e)
                # Retrieve so an unawaited future does not warn
                future.exception()
            raise
        else:
            self.set(key, value, ttl_seconds)
            future.set_result(value)
            return value
        finally:
            self._in_flight.pop(key, None)

    def stats(self) -> dict[str, int]:
        """Get hit/miss counters and current size."""
        return {"hits": self.hits, "misses": self.misses, "size": len(self._entries)}
