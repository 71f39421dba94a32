"""Caching module."""

from .base import Cache
from .memory import InMemoryCache

__all__ = ["Cache", "InMemoryCache"]
