"""
Short-lived response cache.

Freshness is computed from an injectable clock so expiry can be tested
without sleeping.
"""

import time
from collections.abc import Callable
from typing import Any


class ResponseCache:
    """Key/value cache whose entries go stale after a fixed TTL."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}  # key -> (value, stored_at)

    def get(self, key: str) -> tuple[Any | None, bool]:
        """
        Look up a cached value.

        Returns:
            (value, is_fresh); value is None when nothing is cached
        """
        if key not in self._entries:
            return None, False
        value, stored_at = self._entries[key]
        return value, self._clock() - stored_at < self.ttl_seconds

    def put(self, key: str, value: Any) -> None:
        self._entries[key] = (value, self._clock())

    def invalidate(self, key: str | None = None) -> None:
        """Drop one key, or everything when key is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)
