"""
In-process key/value cache with per-entry expiry.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

CACHE_PREFIX = "sdauto-cache-"


class TTLCache:
    """Stores values for a limited time, evicting them lazily on read"""

    def __init__(self, prefix: str = CACHE_PREFIX, clock: Callable[[], float] = time.time):
        self.prefix = prefix
        self._clock = clock
        self._items: Dict[str, Tuple[Any, float]] = {}

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def set(self, key: str, value: Any, ttl: float) -> None:
        """
        Store a value

        Args:
            key: Cache key
            value: Value to store
            ttl: Time to live in seconds; zero or less removes the entry
        """
        if ttl <= 0:
            self.invalidate(key)
            return
        self._items[self._key(key)] = (value, self._clock() + ttl)

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if missing or expired"""
        item = self._items.get(self._key(key))
        if item is None:
            return None

        value, expiry = item
        if self._clock() > expiry:
            logger.debug(f"Cache entry '{key}' expired")
            self._items.pop(self._key(key), None)
            return None
        return value

    def invalidate(self, key: str) -> None:
        self._items.pop(self._key(key), None)

    def clear(self) -> None:
        self._items.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._items)
