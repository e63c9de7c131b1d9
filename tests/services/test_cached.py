"""Tests for CachedRelationshipService: read-through and write-invalidate."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from tests.conftest import chain, create_account
from acctgraph.config.settings import AcgSettings
from acctgraph.domain.models import RelationshipChange
from acctgraph.infrastructure.cache import MemoryCache, NullCache, relationships_key
from acctgraph.infrastructure.registry import Registry
from acctgraph.services.cached import CachedRelationshipService
from acctgraph.services.relationships import RelationshipService
from acctgraph.services.result import ServiceResult


@pytest.fixture
def cached(registry: Registry) -> CachedRelationshipService:
    return CachedRelationshipService(registry)


class TestReadThrough:
    def test_miss_then_hit(self, cached: CachedRelationshipService, registry: Registry) -> None:
        a, _ = chain(registry, "A", "B")
        first = cached.get_relationships(a)
        assert first.meta["cache"] == "miss"
        second = cached.get_relationships(a)
        assert second.meta == {"cache": "hit"}
        assert second.data == first.data

    def test_failures_not_cached(self, cached: CachedRelationshipService) -> None:
        assert cached.get_relationships("ghost").error.code == "NOT_FOUND"
        assert cached._cache.get(relationships_key("ghost")) is None

    def test_pages_cached_separately(
        self, cached: CachedRelationshipService, registry: Registry
    ) -> None:
        root = create_account(registry, "Root")["id"]
        for i in range(3):
            cached.add_relationship(root, create_account(registry, f"C{i}")["id"])
        p1 = cached.get_descendants(root, page=1, page_size=2)
        p2 = cached.get_descendants(root, page=2, page_size=2)
        assert p1.meta["cache"] == "miss"
        assert p2.meta["cache"] == "miss"
        assert len(p2.data["items"]) == 1
        assert cached.get_descendants(root, page=1, page_size=2).meta["cache"] == "hit"

    def test_default_page_size_shares_key(
        self, cached: CachedRelationshipService, registry: Registry
    ) -> None:
        a, _ = chain(registry, "A", "B")
        cached.get_descendants(a)
        size = registry.settings.pagination.default_page_size
        assert cached.get_descendants(a, page=1, page_size=size).meta["cache"] == "hit"

    def test_stale_entry_served_until_invalidated(
        self, cached: CachedRelationshipService, registry: Registry
    ) -> None:
        """Writes that bypass the cached service are invisible until invalidation."""
        a, _ = chain(registry, "A", "B")
        cached.get_relationships(a)
        edge_id = registry.relationships.edges_where_parent(a)[0].id
        assert RelationshipService(registry).remove_relationship(a, edge_id).ok

        assert cached.get_relationships(a).data["count"] == 1
        cached.invalidate_account(a)
        assert cached.get_relationships(a).data["count"] == 0

    def test_hierarchy_and_probe_pass_through(
        self, cached: CachedRelationshipService, registry: Registry
    ) -> None:
        a, b = chain(registry, "A", "B")
        hierarchy = cached.get_hierarchy(a)
        assert hierarchy.ok
        assert "cache" not in (hierarchy.meta or {})
        assert cached.check_circular(b, a).data["would_create_circular"] is True

    def test_commit_during_load_is_not_cached(self, registry: Registry) -> None:
        a = create_account(registry, "A")["id"]
        b = create_account(registry, "B")["id"]

        class AddsWhileReading(RelationshipService):
            def get_relationships(self, account_id: str) -> ServiceResult:
                result = super().get_relationships(account_id)
                assert CachedRelationshipService(registry).add_relationship(a, b).ok
                return result

        racing = CachedRelationshipService(registry, inner=AddsWhileReading(registry))
        assert racing.get_relationships(a).data["count"] == 0

        after = CachedRelationshipService(registry).get_relationships(a)
        assert after.meta["cache"] == "miss"
        assert [e["child_id"] for e in after.data["child_relationships"]] == [b]

    def test_commit_during_fill_drops_entry(self, tmp_path: Path) -> None:
        class CommitsOnSet(MemoryCache):
            def __init__(self) -> None:
                super().__init__()
                self.hook: Callable[[], None] | None = None

            def set(self, key: str, value: Any, ttl: float) -> None:
                hook, self.hook = self.hook, None
                super().set(key, value, ttl)
                if hook is not None:
                    hook()

        cache = CommitsOnSet()
        reg = Registry(AcgSettings(workspace_root=tmp_path), cache=cache)
        try:
            a = create_account(reg, "A")["id"]
            b = create_account(reg, "B")["id"]
            # Bypasses the cached service, so nothing else invalidates.
            cache.hook = lambda: RelationshipService(reg).add_relationship(a, b)
            svc = CachedRelationshipService(reg)
            svc.get_relationships(a)
            assert cache.get(relationships_key(a)) is None
            assert svc.get_relationships(a).data["count"] == 1
        finally:
            reg.close()


class TestWriteInvalidate:
    def test_add_invalidates_both_endpoints(
        self, cached: CachedRelationshipService, registry: Registry
    ) -> None:
        a = create_account(registry, "A")["id"]
        b = create_account(registry, "B")["id"]
        cached.get_relationships(a)
        cached.get_relationships(b)
        cached.get_ancestors(b)

        assert cached.add_relationship(a, b).ok

        assert cached.get_relationships(a).data["count"] == 1
        assert cached.get_relationships(b).data["count"] == 1
        assert [i["id"] for i in cached.get_ancestors(b).data["items"]] == [a]

    def test_remove_invalidates_other_endpoint(
        self, cached: CachedRelationshipService, registry: Registry
    ) -> None:
        a, b = chain(registry, "A", "B")
        cached.get_relationships(b)
        cached.get_descendants(a)
        edge_id = registry.relationships.edges_where_parent(a)[0].id

        assert cached.remove_relationship(b, edge_id).ok

        assert cached.get_relationships(b).data["count"] == 0
        assert cached.get_descendants(a).data["items"] == []

    def test_batch_with_removals_invalidates_everything(
        self, cached: CachedRelationshipService, registry: Registry
    ) -> None:
        a, b = chain(registry, "A", "B")
        c = create_account(registry, "C")["id"]
        cached.get_relationships(b)
        cached.get_relationships(c)
        edge_id = registry.relationships.edges_where_parent(a)[0].id

        result = cached.update_relationships(
            a, add=[RelationshipChange(target_id=c)], remove=[edge_id]
        )
        assert result.ok

        assert cached.get_relationships(b).meta["cache"] == "miss"
        assert cached.get_relationships(b).data["count"] == 0
        assert cached.get_relationships(c).data["count"] == 1

    def test_failed_mutation_keeps_cache(
        self, cached: CachedRelationshipService, registry: Registry
    ) -> None:
        a, b = chain(registry, "A", "B")
        cached.get_relationships(a)
        assert not cached.add_relationship(b, a).ok
        assert cached.get_relationships(a).meta["cache"] == "hit"

    def test_account_delete_invalidates(self, registry: Registry) -> None:
        from acctgraph.services.accounts import AccountService

        cached = CachedRelationshipService(registry)
        a, b = chain(registry, "A", "B")
        cached.get_relationships(a)
        assert AccountService(registry).delete_account(b, cascade=True).ok
        assert cached.get_relationships(a).data["child_relationships"] == []


class TestBackends:
    def test_registry_uses_memory_cache(self, registry: Registry) -> None:
        assert isinstance(registry.cache, MemoryCache)

    def test_disabled_cache_always_misses(self, tmp_path: Path) -> None:
        settings = AcgSettings(workspace_root=tmp_path, cache={"enabled": False})
        reg = Registry(settings)
        try:
            assert isinstance(reg.cache, NullCache)
            a = create_account(reg, "A")["id"]
            svc = CachedRelationshipService(reg)
            svc.get_relationships(a)
            assert svc.get_relationships(a).meta["cache"] == "miss"
        finally:
            reg.close()
