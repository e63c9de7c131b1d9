"""Cache backends for relationship query results.

Keys follow ``account:{id}:{shape}`` so a glob can drop one account's
entries (``account:{id}:*``) or one query shape across all accounts
(``account:*:relationships*``).

Entries are stored as JSON text and decoded on every hit, so callers
never share a mutable payload with the cache or with each other.
"""

from __future__ import annotations

import abc
import fnmatch
import json
import logging
import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from acctgraph.config.models import CacheConfig

logger = logging.getLogger(__name__)


def relationships_key(account_id: str) -> str:
    return f"account:{account_id}:relationships"


def parents_key(account_id: str, page: int, page_size: int) -> str:
    return f"account:{account_id}:parents:{page}:{page_size}"


def children_key(account_id: str, page: int, page_size: int) -> str:
    return f"account:{account_id}:children:{page}:{page_size}"


def account_pattern(account_id: str) -> str:
    """Glob matching every cached entry for one account."""
    return f"account:{account_id}:*"


# Every relationship-derived entry, for the invalidate-all fallback.
ALL_RELATIONSHIP_PATTERNS = (
    "account:*:relationships*",
    "account:*:parents*",
    "account:*:children*",
)


class RelationshipCache(abc.ABC):
    """Abstract base class for relationship result caching."""

    @abc.abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the cached value, or None on miss or expiry."""

    @abc.abstractmethod
    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store a JSON-serializable value for *ttl* seconds."""

    @abc.abstractmethod
    def invalidate(self, key: str) -> None:
        """Drop a single key (missing keys are ignored)."""

    @abc.abstractmethod
    def invalidate_pattern(self, pattern: str) -> int:
        """Drop every key matching a glob pattern. Returns the count dropped."""

    @abc.abstractmethod
    def clear(self) -> None:
        """Drop everything."""


class MemoryCache(RelationshipCache):
    """Thread-safe in-process cache with per-entry TTL."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            raw, expiry = entry
            if self._clock() >= expiry:
                del self._entries[key]
                return None
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: float) -> None:
        if ttl <= 0:
            return
        raw = json.dumps(value)
        with self._lock:
            now = self._clock()
            self._sweep(now)
            self._entries[key] = (raw, now + ttl)

    def _sweep(self, now: float) -> None:
        # Caller holds the lock.
        expired = [k for k, (_, expiry) in self._entries.items() if now >= expiry]
        for key in expired:
            del self._entries[key]

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)
        logger.debug("Cache invalidate %s", key)

    def invalidate_pattern(self, pattern: str) -> int:
        with self._lock:
            doomed = [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]
            for key in doomed:
                del self._entries[key]
        logger.debug("Cache invalidate pattern %s (%d entries)", pattern, len(doomed))
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class NullCache(RelationshipCache):
    """Caching disabled: every lookup misses."""

    def get(self, key: str) -> Any | None:
        return None

    def set(self, key: str, value: Any, ttl: float) -> None:
        pass

    def invalidate(self, key: str) -> None:
        pass

    def invalidate_pattern(self, pattern: str) -> int:
        return 0

    def clear(self) -> None:
        pass


def build_cache(config: CacheConfig) -> RelationshipCache:
    """Pick the backend for the ``[cache]`` settings section."""
    if not config.enabled:
        return NullCache()
    return MemoryCache()
