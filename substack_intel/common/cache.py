"""
Extraction response cache backends.

The extractor talks to any object with async ``get`` / ``set`` / ``keys``.
Two implementations ship here:

- InMemoryResponseCache: process-local TTL store (default)
- NullResponseCache: no-op, swapped in when caching is off or has failed
"""

import asyncio
import fnmatch
import logging
from time import time
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class ResponseCache(Protocol):
    """Key/value store with per-entry TTL."""

    async def get(self, key: str) -> Optional[Any]:
        ...

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        ...

    async def keys(self, pattern: str) -> List[str]:
        ...


class InMemoryResponseCache:
    """TTL cache for extraction results with automatic cleanup.

    Entries are (expires_at, value) tuples. Access is serialized with an
    asyncio.Lock so concurrent extractions never see a half-written entry.
    """

    # Cleanup every N set operations to prevent unbounded growth
    CLEANUP_INTERVAL = 100

    def __init__(self, clock=time):
        self._cache: Dict[str, Tuple[float, Any]] = {}
        self._clock = clock
        self._operations_since_cleanup = 0
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[Any]:
        """Get cached value if not expired."""
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() < expires_at:
                return value
            del self._cache[key]
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store value under key (single-key upsert)."""
        async with self._lock:
            self._cache[key] = (self._clock() + ttl_seconds, value)

            self._operations_since_cleanup += 1
            if self._operations_since_cleanup >= self.CLEANUP_INTERVAL:
                self._cleanup_locked()
                self._operations_since_cleanup = 0

    async def keys(self, pattern: str = "*") -> List[str]:
        """Return live keys matching a glob pattern (e.g. 'extraction:*')."""
        async with self._lock:
            self._cleanup_locked()
            return [k for k in self._cache if fnmatch.fnmatchcase(k, pattern)]

    def _cleanup_locked(self) -> int:
        """Remove expired entries (called while lock is held)."""
        now = self._clock()
        expired_keys = [k for k, (expires_at, _) in self._cache.items() if now >= expires_at]
        for k in expired_keys:
            del self._cache[k]
        if expired_keys:
            logger.debug(f"Cache cleanup: removed {len(expired_keys)} expired entries, size={len(self._cache)}")
        return len(expired_keys)

    def clear(self) -> None:
        """Clear all cached entries."""
        self._cache.clear()

    def size(self) -> int:
        """Return number of cached entries (including not-yet-cleaned expired ones)."""
        return len(self._cache)


class NullResponseCache:
    """Cache that never stores anything."""

    async def get(self, key: str) -> Optional[Any]:
        return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        return None

    async def keys(self, pattern: str = "*") -> List[str]:
        return []
