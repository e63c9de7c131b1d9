"""Tests for the relationship cache backends."""

from __future__ import annotations

import pytest

from acctgraph.config.models import CacheConfig
from acctgraph.infrastructure.cache import (
    ALL_RELATIONSHIP_PATTERNS,
    MemoryCache,
    NullCache,
    account_pattern,
    build_cache,
    children_key,
    parents_key,
    relationships_key,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> MemoryCache:
    return MemoryCache(clock=clock)


class TestKeys:
    def test_shapes(self) -> None:
        assert relationships_key("a") == "account:a:relationships"
        assert parents_key("a", 2, 10) == "account:a:parents:2:10"
        assert children_key("a", 1, 5) == "account:a:children:1:5"
        assert account_pattern("a") == "account:a:*"


class TestMemoryCache:
    def test_miss(self, cache: MemoryCache) -> None:
        assert cache.get("nope") is None

    def test_hit_returns_copy(self, cache: MemoryCache) -> None:
        cache.set("k", {"items": [1, 2]}, ttl=10)
        first = cache.get("k")
        first["items"].append(3)
        assert cache.get("k") == {"items": [1, 2]}

    def test_expiry(self, cache: MemoryCache, clock: FakeClock) -> None:
        cache.set("k", "v", ttl=10)
        clock.now = 9.9
        assert cache.get("k") == "v"
        clock.now = 10.0
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_set_sweeps_expired_entries(self, cache: MemoryCache, clock: FakeClock) -> None:
        cache.set(parents_key("a", 1, 10), 1, ttl=5)
        cache.set(parents_key("a", 2, 10), 2, ttl=5)
        cache.set(relationships_key("b"), 3, ttl=60)
        clock.now = 5.0
        cache.set(children_key("c", 1, 10), 4, ttl=5)
        assert len(cache) == 2
        assert cache.get(relationships_key("b")) == 3

    def test_zero_ttl_not_stored(self, cache: MemoryCache) -> None:
        cache.set("k", "v", ttl=0)
        assert cache.get("k") is None

    def test_invalidate(self, cache: MemoryCache) -> None:
        cache.set("k", "v", ttl=10)
        cache.invalidate("k")
        cache.invalidate("missing")
        assert cache.get("k") is None

    def test_invalidate_account_pattern(self, cache: MemoryCache) -> None:
        cache.set(relationships_key("a"), 1, ttl=10)
        cache.set(parents_key("a", 1, 10), 2, ttl=10)
        cache.set(relationships_key("ab"), 3, ttl=10)
        assert cache.invalidate_pattern(account_pattern("a")) == 2
        assert cache.get(relationships_key("ab")) == 3

    def test_all_patterns_cover_every_shape(self, cache: MemoryCache) -> None:
        cache.set(relationships_key("a"), 1, ttl=10)
        cache.set(parents_key("b", 1, 10), 2, ttl=10)
        cache.set(children_key("c", 3, 5), 3, ttl=10)
        cache.set("unrelated", 4, ttl=10)
        dropped = sum(cache.invalidate_pattern(p) for p in ALL_RELATIONSHIP_PATTERNS)
        assert dropped == 3
        assert cache.get("unrelated") == 4

    def test_clear(self, cache: MemoryCache) -> None:
        cache.set("k", "v", ttl=10)
        cache.clear()
        assert len(cache) == 0


class TestNullCache:
    def test_always_misses(self) -> None:
        cache = NullCache()
        cache.set("k", "v", ttl=10)
        assert cache.get("k") is None
        assert cache.invalidate_pattern("*") == 0


class TestBuildCache:
    def test_enabled(self) -> None:
        assert isinstance(build_cache(CacheConfig()), MemoryCache)

    def test_disabled(self) -> None:
        assert isinstance(build_cache(CacheConfig(enabled=False)), NullCache)
