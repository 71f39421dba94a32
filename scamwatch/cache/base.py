"""Cache interface shared by the detection components."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar("T")


class Cache(ABC):
    """Abstract key/value cache with per-entry expiry."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if missing or expired."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """Store a value. A ttl of None means the entry never expires."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove one entry. Returns True if it existed."""
        pass

    @abstractmethod
    def invalidate(self, key_or_prefix: str) -> int:
        """Remove the exact key, or every key starting with a prefix ending in ':' or '*'.

        Returns:
            Number of entries removed
        """
        pass

    @abstractmethod
    def flush(self) -> None:
        """Remove every entry."""
        pass

    @abstractmethod
    async def get_or_set(
        self,
        key: str,
        ttl_seconds: float | None,
        compute: Callable[[], Awaitable[T]],
    ) -> T:
        """Return the cached value or compute, cache and return it.

        Concurrent callers for the same missing key share one computation.
        """
        pass
