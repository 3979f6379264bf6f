"""In-memory memoization for analytics results.

Entries carry a TTL and an approximate size.  Expiry is lazy (checked on
``get``), eviction is oldest-first whenever an insert would break the entry
count or memory ceiling, and every value is deep-copied on the way in and
on the way out so callers never share state with the cache.

All methods are synchronous, so on a single asyncio event loop each call
is atomic with respect to other coroutines.
"""

from __future__ import annotations

import copy
import logging
import sys
import time
from typing import Any, Callable

logger = logging.getLogger(__name__)


class _Miss:
    """Sentinel returned by ``AnalyticsCache.get`` on a miss."""

    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS = _Miss()


def approx_size(value: Any, _seen: set[int] | None = None) -> int:
    """Rough recursive memory footprint of *value* in bytes.

    Walks dicts, lists, tuples and sets; every other object counts as its
    own ``sys.getsizeof``.  Objects reachable twice are counted once.
    """
    seen = set() if _seen is None else _seen
    if id(value) in seen:
        return 0
    seen.add(id(value))

    size = sys.getsizeof(value)
    if isinstance(value, dict):
        size += sum(approx_size(k, seen) + approx_size(v, seen) for k, v in value.items())
    elif isinstance(value, (list, tuple, set, frozenset)):
        size += sum(approx_size(v, seen) for v in value)
    return size


class AnalyticsCache:
    """TTL- and size-bounded cache keyed by fingerprint strings.

    Args:
        max_entries: Maximum number of live entries.
        max_memory_bytes: Ceiling on the summed approximate entry sizes.
        clock: Monotonic time source in seconds (injectable for tests).
    """

    def __init__(
        self,
        max_entries: int = 50,
        max_memory_bytes: int = 10 * 1024 * 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_entries = max_entries
        self.max_memory_bytes = max_memory_bytes
        self._clock = clock
        # Insertion order doubles as ascending created_at order.
        self._entries: dict[str, dict[str, Any]] = {}
        self._memory = 0
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def _remove(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is not None:
            self._memory -= entry["approx_size_bytes"]

    def _evict_for(self, incoming_size: int) -> None:
        """Drop oldest entries until one more of *incoming_size* fits."""
        while self._entries and (
            len(self._entries) + 1 > self.max_entries
            or self._memory + incoming_size > self.max_memory_bytes
        ):
            oldest = next(iter(self._entries))
            logger.debug("Evicting cache entry %s", oldest)
            self._remove(oldest)

    def get(self, key: str) -> Any:
        """Return a copy of the live value for *key*, or ``MISS``.

        An expired entry is removed and reported as a miss.  A value that
        cannot be copied is dropped and reported as a miss.
        """
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return MISS

        if self._clock() - entry["created_at"] >= entry["ttl_seconds"]:
            logger.debug("Cache entry %s expired", key)
            self._remove(key)
            self._misses += 1
            return MISS

        try:
            value = copy.deepcopy(entry["payload"])
        except Exception as exc:
            logger.warning("Dropping cache entry %s: copy failed (%s)", key, exc)
            self._remove(key)
            self._misses += 1
            return MISS

        self._hits += 1
        return value

    def set(self, key: str, value: Any, ttl_seconds: float) -> bool:
        """Store a copy of *value* under *key* for *ttl_seconds*.

        Any previous entry for *key* is replaced.  Oldest entries are
        evicted first so that, after the insert, both the entry count and
        the approximate memory stay within their ceilings.

        Returns:
            True if stored.  False when *value* cannot be copied or is on
            its own larger than the memory ceiling.
        """
        try:
            payload = copy.deepcopy(value)
        except Exception as exc:
            logger.warning("Not caching %s: copy failed (%s)", key, exc)
            self._remove(key)
            return False

        size = approx_size(payload)
        self._remove(key)
        if size > self.max_memory_bytes:
            logger.warning(
                "Not caching %s: %d bytes exceeds the %d byte ceiling",
                key, size, self.max_memory_bytes,
            )
            return False

        self._evict_for(size)
        self._entries[key] = {
            "key": key,
            "payload": payload,
            "created_at": self._clock(),
            "ttl_seconds": ttl_seconds,
            "approx_size_bytes": size,
        }
        self._memory += size
        return True

    def invalidate(self, pattern: str) -> int:
        """Remove every entry whose key contains *pattern*.

        Returns:
            Number of entries removed.
        """
        doomed = [k for k in self._entries if pattern in k]
        for key in doomed:
            self._remove(key)
        if doomed:
            logger.debug("Invalidated %d cache entries matching %r", len(doomed), pattern)
        return len(doomed)

    def clear(self) -> None:
        """Remove every entry.  Hit and miss counters are kept."""
        self._entries.clear()
        self._memory = 0

    def stats(self) -> dict[str, Any]:
        """Return hit_rate (0-1), entry_count, hit_count, miss_count, approx_memory_bytes."""
        lookups = self._hits + self._misses
        return {
            "hit_rate": round(self._hits / lookups, 4) if lookups else 0.0,
            "entry_count": len(self._entries),
            "hit_count": self._hits,
            "miss_count": self._misses,
            "approx_memory_bytes": self._memory,
        }
