"""CachedRelationshipService: read-through cache over RelationshipService.

Reads check the cache first and populate it on a miss. Every successful
mutation invalidates before returning, so the mutated account's next read
(cached or not) reflects the change:

- add: both endpoints.
- single remove: the owner and the removed edge's other endpoint.
- batch update with removals, account deletion: every relationship entry.

Hierarchy and the circular probe always go to the service. Entries from
*other* writers may still be served until their TTL lapses; callers that
need strict reads use :class:`RelationshipService` directly.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from acctgraph.domain.models import Relationship, RelationshipChange
from acctgraph.domain.types import RelationshipType
from acctgraph.infrastructure.cache import (
    ALL_RELATIONSHIP_PATTERNS,
    account_pattern,
    children_key,
    parents_key,
    relationships_key,
)
from acctgraph.services.base import BaseService
from acctgraph.services.relationships import RelationshipService
from acctgraph.services.result import ServiceResult

if TYPE_CHECKING:
    from acctgraph.infrastructure.cache import RelationshipCache
    from acctgraph.infrastructure.registry import Registry

logger = logging.getLogger(__name__)


class CachedRelationshipService(BaseService):
    """Same surface as :class:`RelationshipService`, fronted by the registry cache."""

    def __init__(self, registry: Registry, inner: RelationshipService | None = None) -> None:
        super().__init__(registry)
        self._inner = inner or RelationshipService(registry)

    @property
    def _cache(self) -> RelationshipCache:
        return self._registry.cache

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def invalidate_account(self, *account_ids: str) -> None:
        for account_id in account_ids:
            self._cache.invalidate_pattern(account_pattern(account_id))

    def invalidate_all(self) -> None:
        dropped = sum(self._cache.invalidate_pattern(p) for p in ALL_RELATIONSHIP_PATTERNS)
        logger.debug("Invalidated all relationship cache entries (%d)", dropped)

    # ------------------------------------------------------------------
    # Read-through
    # ------------------------------------------------------------------

    def _page_size(self, page_size: int | None) -> int:
        if page_size is None:
            return self._registry.settings.pagination.default_page_size
        return page_size

    def _read_through(
        self,
        op: str,
        key: str,
        ttl: int,
        load: Callable[[], ServiceResult],
    ) -> ServiceResult:
        cached = self._cache.get(key)
        if cached is not None:
            return ServiceResult(ok=True, op=op, data=cached, meta={"cache": "hit"})

        version = self._registry.relationships.snapshot().version
        result = load()
        if result.ok:
            self._store(key, result.data, ttl, version)
            return result.model_copy(update={"meta": {**(result.meta or {}), "cache": "miss"}})
        return result

    def _store(self, key: str, data: dict, ttl: int, version: int) -> None:
        """Cache *data* loaded at index *version* unless a commit has since landed.

        A writer invalidates only after publishing, so re-checking after the
        set catches a commit that raced it.
        """
        if self._registry.relationships.snapshot().version != version:
            logger.debug("Skipping cache fill for %s: index moved past v%d", key, version)
            return
        self._cache.set(key, data, ttl)
        if self._registry.relationships.snapshot().version != version:
            self._cache.invalidate(key)

    def get_relationships(self, account_id: str) -> ServiceResult:
        return self._read_through(
            "get_relationships",
            relationships_key(account_id),
            self._registry.settings.cache.relationship_ttl,
            lambda: self._inner.get_relationships(account_id),
        )

    def get_ancestors(
        self, account_id: str, *, page: int = 1, page_size: int | None = None
    ) -> ServiceResult:
        size = self._page_size(page_size)
        return self._read_through(
            "get_ancestors",
            parents_key(account_id, page, size),
            self._registry.settings.cache.list_ttl,
            lambda: self._inner.get_ancestors(account_id, page=page, page_size=size),
        )

    def get_descendants(
        self, account_id: str, *, page: int = 1, page_size: int | None = None
    ) -> ServiceResult:
        size = self._page_size(page_size)
        return self._read_through(
            "get_descendants",
            children_key(account_id, page, size),
            self._registry.settings.cache.list_ttl,
            lambda: self._inner.get_descendants(account_id, page=page, page_size=size),
        )

    def get_hierarchy(self, account_id: str, depth: int | None = None) -> ServiceResult:
        return self._inner.get_hierarchy(account_id, depth)

    def check_circular(self, parent_id: str, child_id: str) -> ServiceResult:
        return self._inner.check_circular(parent_id, child_id)

    # ------------------------------------------------------------------
    # Write-invalidate
    # ------------------------------------------------------------------

    def add_relationship(
        self,
        owner_id: str,
        target_id: str,
        relationship_type: RelationshipType | str = RelationshipType.PARENT_CHILD,
        *,
        target_is_parent: bool = False,
        actor_id: str | None = None,
    ) -> ServiceResult:
        result = self._inner.add_relationship(
            owner_id,
            target_id,
            relationship_type,
            target_is_parent=target_is_parent,
            actor_id=actor_id,
        )
        if result.ok:
            self.invalidate_account(owner_id, target_id)
        return result

    def remove_relationship(
        self,
        owner_id: str,
        edge_id: str,
        *,
        actor_id: str | None = None,
    ) -> ServiceResult:
        result = self._inner.remove_relationship(owner_id, edge_id, actor_id=actor_id)
        if result.ok:
            removed = Relationship.model_validate(result.data["removed"])
            self.invalidate_account(owner_id, removed.other_endpoint(owner_id))
        return result

    def update_relationships(
        self,
        owner_id: str,
        *,
        add: Sequence[RelationshipChange] = (),
        remove: Sequence[str] = (),
        actor_id: str | None = None,
    ) -> ServiceResult:
        result = self._inner.update_relationships(
            owner_id, add=add, remove=remove, actor_id=actor_id
        )
        if not result.ok:
            return result
        if remove:
            # Removal ids do not name their endpoints up front.
            self.invalidate_all()
        else:
            self.invalidate_account(owner_id, *(change.target_id for change in add))
        return result
