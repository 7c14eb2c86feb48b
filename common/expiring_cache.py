"""
Bounded in-memory TTL cache for read endpoints.

Entries expire lazily: a stale entry is reported as absent by ``get`` but stays
in the map, so callers can still fall back to last-known-good data when the
backing store fails. Capacity is enforced on insert by evicting the oldest
inserted entry; reads do not change eviction order.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from common.constants import DEFAULT_CACHE_MAX_ENTRIES
from common.types import CacheEntry

logger = logging.getLogger(__name__)

V = TypeVar("V")


class ExpiringCache(Generic[V]):
    """
    Thread-safe TTL cache with insertion-order eviction.

    The TTL is fixed per instance; ``set`` accepts a per-entry override which
    the read path uses to keep fallback data only briefly.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
        name: str = "cache",
    ):
        """
        Initialize cache.

        Args:
            ttl_seconds: Lifetime of an entry in seconds
            max_entries: Maximum number of entries held at once
            clock: Monotonic time source (seconds)
            name: Label used in log messages
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.name = name
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[V]:
        """
        Return the cached value if it is still within its TTL.

        Args:
            key: Cache key

        Returns:
            Stored value, or None when missing or expired
        """
        entry = self.get_entry(key)
        return entry.value if entry is not None else None

    def get_entry(self, key: str, allow_stale: bool = False) -> Optional[CacheEntry]:
        """
        Return the raw entry for a key.

        Args:
            key: Cache key
            allow_stale: Also return entries whose TTL has elapsed

        Returns:
            CacheEntry or None
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if allow_stale or entry.is_fresh(self._clock()):
                return entry

        logger.debug(f"Cache '{self.name}' entry expired [key={key}]")
        return None

    def set(self, key: str, value: V, ttl_seconds: Optional[float] = None) -> None:
        """
        Store a value.

        Overwriting an existing key keeps its eviction position. Inserting a
        new key at capacity evicts exactly one entry, the oldest inserted.

        Args:
            key: Cache key
            value: Value to store
            ttl_seconds: Optional lifetime override for this entry
        """
        entry = CacheEntry(
            key=key,
            value=value,
            stored_at=self._clock(),
            ttl_seconds=self.ttl_seconds if ttl_seconds is None else ttl_seconds,
        )

        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                oldest_key = next(iter(self._entries))
                del self._entries[oldest_key]
                logger.debug(f"Cache '{self.name}' at capacity, evicted [key={oldest_key}]")

            self._entries[key] = entry

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def invalidate(self, pattern: str) -> int:
        """
        Remove every entry whose key contains ``pattern``.

        Returns:
            Number of entries removed
        """
        with self._lock:
            doomed = [key for key in self._entries if pattern in key]
            for key in doomed:
                del self._entries[key]

        if doomed:
            logger.info(f"Cache '{self.name}' invalidated {len(doomed)} entr(ies) matching '{pattern}'")
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Any) -> bool:
        return self.get_entry(key) is not None
