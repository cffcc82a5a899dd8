"""
Cache backends: key/value stores with per-entry TTL and tags.

CacheManager talks to a CacheBackend. Any store that can attach tags to
entries and drop every entry carrying a tag can back the response
cache (Redis sets, a database table, ...). InMemoryCacheBackend is the
default: a process-local LRU with TTL expiration and a tag index.

Usage:
    backend = InMemoryCacheBackend(max_entries=500)
    backend.set("k", {"content": "hi"}, tags=["llm"], lifetime=3600)
    backend.flush_by_tag("llm")
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Backend Contract
# ---------------------------------------------------------------------------

class CacheBackend(ABC):
    """Tagged key/value store used by CacheManager."""

    @abstractmethod
    def has(self, key: str) -> bool:
        ...

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Stored value, or None when missing or expired."""

    @abstractmethod
    def set(
        self,
        key: str,
        value: Any,
        tags: Iterable[str] = (),
        lifetime: int = 0,
    ) -> None:
        """Store a value. lifetime is in seconds; 0 means no expiry."""

    @abstractmethod
    def remove(self, key: str) -> bool:
        ...

    @abstractmethod
    def flush(self) -> None:
        ...

    @abstractmethod
    def flush_by_tag(self, tag: str) -> int:
        """Remove every entry carrying the tag. Returns entries removed."""


# ---------------------------------------------------------------------------
# Cache Entry
# ---------------------------------------------------------------------------

@dataclass
class CacheEntry:
    """A cached value with expiration metadata."""

    key: str
    value: Any
    created_at: float                     # time.monotonic()
    expires_at: Optional[float] = None    # None = never
    tags: frozenset[str] = field(default_factory=frozenset)
    hit_count: int = 0

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and time.monotonic() > self.expires_at

    @property
    def age_seconds(self) -> float:
        return time.monotonic() - self.created_at


# ---------------------------------------------------------------------------
# In-Memory Backend
# ---------------------------------------------------------------------------

class InMemoryCacheBackend(CacheBackend):
    """
    In-memory LRU store with TTL expiration and a tag index.

    Not thread-safe. Wrap access with a lock when sharing one instance
    across threads.

    Features:
    - TTL expiration per entry (0 = no expiry)
    - LRU eviction (least recently used removed when max_entries reached)
    - Tag index for flush_by_tag
    - Stats tracking (hits, misses, evictions, stores)
    """

    def __init__(self, max_entries: int = 1000):
        self._max_entries = max_entries

        # LRU ordered dict: newest at end
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._tag_index: dict[str, set[str]] = {}

        # Stats
        self._hits: int = 0
        self._misses: int = 0
        self._evictions: int = 0
        self._stores: int = 0

    @property
    def size(self) -> int:
        """Current number of cached entries."""
        return len(self._entries)

    @property
    def hit_rate(self) -> float:
        """Cache hit rate (0.0 to 1.0)."""
        total = self._hits + self._misses
        return self._hits / total if total > 0 else 0.0

    # --- Core Operations ---

    def has(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        if entry.is_expired:
            self._drop(key)
            self._evictions += 1
            return False
        return True

    def get(self, key: str) -> Optional[Any]:
        """
        Look up a cached value.

        Returns the value if found and not expired, otherwise None.
        Expired entries are evicted on access.
        """
        entry = self._entries.get(key)

        if entry is None:
            self._misses += 1
            return None

        if entry.is_expired:
            self._drop(key)
            self._misses += 1
            self._evictions += 1
            return None

        # Cache hit, move to end (most recently used)
        self._entries.move_to_end(key)
        entry.hit_count += 1
        self._hits += 1

        logger.debug(
            "cache_hit",
            extra={
                "key": key[:32],
                "hit_count": entry.hit_count,
                "age_seconds": round(entry.age_seconds, 1),
            },
        )
        return entry.value

    def set(
        self,
        key: str,
        value: Any,
        tags: Iterable[str] = (),
        lifetime: int = 0,
    ) -> None:
        """Store a value, evicting the least recently used entry when full."""
        now = time.monotonic()

        # Replace any existing entry (refreshes TTL and tags)
        if key in self._entries:
            self._drop(key)

        while len(self._entries) >= self._max_entries:
            evicted_key = next(iter(self._entries))
            self._drop(evicted_key)
            self._evictions += 1
            logger.debug("cache_eviction", extra={"key": evicted_key[:32]})

        entry = CacheEntry(
            key=key,
            value=value,
            created_at=now,
            expires_at=now + lifetime if lifetime > 0 else None,
            tags=frozenset(tags),
        )
        self._entries[key] = entry
        for tag in entry.tags:
            self._tag_index.setdefault(tag, set()).add(key)
        self._stores += 1

    def remove(self, key: str) -> bool:
        """Remove a specific entry. Returns True if found."""
        if key in self._entries:
            self._drop(key)
            return True
        return False

    def flush(self) -> None:
        self._entries.clear()
        self._tag_index.clear()

    def flush_by_tag(self, tag: str) -> int:
        keys = self._tag_index.pop(tag, set())
        removed = 0
        for key in keys:
            if key in self._entries:
                self._drop(key)
                removed += 1
        logger.debug("cache_flush_by_tag", extra={"tag": tag, "removed": removed})
        return removed

    def cleanup_expired(self) -> int:
        """Remove all expired entries. Returns number removed."""
        expired_keys = [k for k, v in self._entries.items() if v.is_expired]
        for key in expired_keys:
            self._drop(key)
            self._evictions += 1
        return len(expired_keys)

    def _drop(self, key: str) -> None:
        entry = self._entries.pop(key)
        for tag in entry.tags:
            keys = self._tag_index.get(tag)
            if keys is not None:
                keys.discard(key)
                if not keys:
                    del self._tag_index[tag]

    # --- Stats ---

    def get_stats(self) -> dict[str, Any]:
        """Return cache performance statistics."""
        return {
            "size": self.size,
            "max_entries": self._max_entries,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self.hit_rate, 3),
            "evictions": self._evictions,
            "stores": self._stores,
            "tags": len(self._tag_index),
        }

    def reset_stats(self) -> None:
        """Reset performance counters without clearing cached data."""
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._stores = 0

    def tags_for(self, key: str) -> frozenset[str]:
        """Tags attached to a live entry (empty when missing)."""
        entry = self._entries.get(key)
        return entry.tags if entry is not None else frozenset()
