"""In-memory TTL cache for the ministry reports tools.

Reference lists (regions, universities, small groups, alumni groups) change
rarely but are requested on every cascade step, so MinistryClient keeps them
here for a few minutes.
"""

import time
import threading
from typing import Any, Callable


class TTLCache:
    """Thread-safe in-memory cache whose entries expire after ``ttl_seconds``.

    At most ``maxsize`` entries are kept; inserting into a full cache evicts
    the entry closest to expiry.

    Usage::

        cache = TTLCache(maxsize=64, ttl_seconds=300)
        regions = cache.get_or_load(("/api/regions", ()), fetch_regions)
    """

    def __init__(self, maxsize: int = 128, ttl_seconds: float = 300.0) -> None:
        """Initialise the cache.

        Args:
            maxsize: Maximum number of entries to store (default 128).
            ttl_seconds: Seconds before a cached entry expires (default 300).
        """
        self._maxsize = maxsize
        self._ttl = ttl_seconds
        # key -> (value, expires_at)
        self._store: dict[Any, tuple[Any, float]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: Any) -> Any | None:
        """Return the cached value for *key*, or ``None`` if absent or expired."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return None
            value, expires_at = entry
            if time.monotonic() > expires_at:
                del self._store[key]
                self._misses += 1
                return None
            self._hits += 1
            return value

    def set(self, key: Any, value: Any) -> None:
        """Store *value* under *key* with the configured TTL."""
        expires_at = time.monotonic() + self._ttl
        with self._lock:
            if key not in self._store and len(self._store) >= self._maxsize:
                soonest = min(self._store, key=lambda k: self._store[k][1])
                del self._store[soonest]
            self._store[key] = (value, expires_at)

    def get_or_load(self, key: Any, loader: Callable[[], Any]) -> Any:
        """Return the cached value for *key*, calling *loader* on a miss.

        The loader runs outside the lock; exceptions it raises propagate and
        nothing is cached for that key.

        Args:
            key: Cache key (must be hashable).
            loader: Zero-argument callable producing the value.

        Returns:
            The cached or freshly loaded value.
        """
        value = self.get(key)
        if value is not None:
            return value
        value = loader()
        self.set(key, value)
        return value

    def delete(self, key: Any) -> None:
        """Remove a single entry (no-op if not present)."""
        with self._lock:
            self._store.pop(key, None)

    def invalidate(self, predicate: Callable[[Any], bool]) -> int:
        """Remove every entry whose key satisfies *predicate*.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            doomed = [k for k in self._store if predicate(k)]
            for k in doomed:
                del self._store[k]
            return len(doomed)

    def clear(self) -> None:
        """Remove all entries and reset the hit/miss counters."""
        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> dict[str, int]:
        """Return ``hits``, ``misses`` and live ``size`` (expired entries purged)."""
        with self._lock:
            now = time.monotonic()
            expired = [k for k, (_, exp) in self._store.items() if now > exp]
            for k in expired:
                del self._store[k]
            return {
                "hits": self._hits,
                "misses": self._misses,
                "size": len(self._store),
            }
