"""RelationshipService: the only entry point for mutating or querying edges.

Every mutation runs its cycle check and its commit inside one
``RelationshipStore.transaction()``, so the check sees exactly the edge
set the commit applies to. Reads take one point-in-time snapshot and
traverse it; they never hold the mutation lock.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from acctgraph.domain.cycles import find_cycle_path
from acctgraph.domain.errors import (
    CircularReferenceError,
    GraphError,
    InvalidOperationError,
    NotFoundError,
)
from acctgraph.domain.hierarchy import HierarchyBuilder, validate_depth
from acctgraph.domain.models import (
    AccountPage,
    Relationship,
    RelationshipChange,
    RelationshipSnapshot,
)
from acctgraph.domain.types import RelationshipType
from acctgraph.services.base import BaseService
from acctgraph.services.contracts import (
    AccountPageData,
    CircularCheckData,
    HierarchyData,
    SnapshotData,
    dump_validated,
)
from acctgraph.services.result import ServiceResult
from acctgraph.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from sqlalchemy import Connection

    from acctgraph.infrastructure.relationships import EdgeIndex

logger = logging.getLogger(__name__)


def parse_relationship_type(value: RelationshipType | str) -> RelationshipType:
    """Coerce a wire string to :class:`RelationshipType` (case-insensitive)."""
    if isinstance(value, RelationshipType):
        return value
    try:
        return RelationshipType(value.upper())
    except ValueError:
        allowed = ", ".join(t.value for t in RelationshipType)
        raise InvalidOperationError(
            f"Unknown relationship type '{value}' (expected one of: {allowed})",
            relationship_type=value,
        ) from None


def snapshot_payload(snapshot: RelationshipSnapshot, **extra: Any) -> dict[str, Any]:
    parents = [e.model_dump(mode="json") for e in snapshot.parent_relationships]
    children = [e.model_dump(mode="json") for e in snapshot.child_relationships]
    return dump_validated(
        SnapshotData,
        {
            "account_id": snapshot.account_id,
            "parent_relationships": parents,
            "child_relationships": children,
            "count": snapshot.edge_count,
            **extra,
        },
    )


class RelationshipService(BaseService):
    """Add, remove and query account relationship edges."""

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _require_account(self, account_id: str, *, conn: Connection | None = None) -> None:
        if not self._registry.accounts.exists(account_id, conn=conn):
            raise NotFoundError(f"Account with ID {account_id} not found", account_id=account_id)

    @staticmethod
    def _guard(index: EdgeIndex, parent_id: str, child_id: str) -> None:
        """Raise if the edge would relate an account to itself or close a loop."""
        if parent_id == child_id:
            raise InvalidOperationError(
                "An account cannot be related to itself", account_id=parent_id
            )
        check = find_cycle_path(parent_id, child_id, index.parents_of)
        if check.would_create_cycle:
            logger.info("Rejected circular relationship %s -> %s", parent_id, child_id)
            raise CircularReferenceError(parent_id, child_id, list(check.path))

    def _page_bounds(self, page: int, page_size: int | None) -> tuple[int, int]:
        cfg = self._registry.settings.pagination
        size = page_size if page_size is not None else cfg.default_page_size
        if page < 1:
            raise InvalidOperationError("Page must be at least 1", page=page)
        if not 1 <= size <= cfg.max_page_size:
            raise InvalidOperationError(
                f"Page size must be between 1 and {cfg.max_page_size}",
                page_size=size,
            )
        return page, size

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @traced
    def add_relationship(
        self,
        owner_id: str,
        target_id: str,
        relationship_type: RelationshipType | str = RelationshipType.PARENT_CHILD,
        *,
        target_is_parent: bool = False,
        actor_id: str | None = None,
    ) -> ServiceResult:
        """Link *owner_id* and *target_id*.

        With ``target_is_parent`` the target becomes the owner's parent;
        otherwise the owner becomes the target's parent. Returns the
        owner's refreshed snapshot plus the new ``relationship``.
        """
        op = "add_relationship"
        try:
            change = RelationshipChange(
                target_id=target_id,
                relationship_type=parse_relationship_type(relationship_type),
                target_is_parent=target_is_parent,
            )
            parent_id, child_id = change.endpoints(owner_id)
            with self._registry.relationships.transaction() as txn:
                self._require_account(owner_id, conn=txn.conn)
                self._require_account(target_id, conn=txn.conn)
                with trace_span("cycle_check"):
                    self._guard(txn.index, parent_id, child_id)
                edge = txn.add_edge(
                    parent_id, child_id, change.relationship_type, self._actor(actor_id)
                )
            snapshot = txn.index.snapshot_for(owner_id)
        except GraphError as exc:
            return self._failure(op, exc)

        logger.info(
            "Relationship added %s: %s -> %s (%s)",
            edge.id,
            parent_id,
            child_id,
            edge.relationship_type.value,
        )
        return ServiceResult(
            ok=True,
            op=op,
            data=snapshot_payload(snapshot, relationship=edge.model_dump(mode="json")),
        )

    @traced
    def remove_relationship(
        self,
        owner_id: str,
        edge_id: str,
        *,
        actor_id: str | None = None,
    ) -> ServiceResult:
        """Delete one edge that must touch *owner_id*.

        Returns the owner's refreshed snapshot plus the ``removed`` edge,
        whose other endpoint lets callers invalidate precisely.
        """
        op = "remove_relationship"
        try:
            with self._registry.relationships.transaction() as txn:
                self._require_account(owner_id, conn=txn.conn)
                edge = txn.get_edge(edge_id)
                if not edge.involves(owner_id):
                    raise InvalidOperationError(
                        f"Relationship with ID {edge_id} does not involve account {owner_id}",
                        edge_id=edge_id,
                        account_id=owner_id,
                    )
                txn.remove_edge(edge_id)
            snapshot = txn.index.snapshot_for(owner_id)
        except GraphError as exc:
            return self._failure(op, exc)

        logger.info(
            "Relationship removed %s by %s: %s -> %s",
            edge.id,
            self._actor(actor_id),
            edge.parent_id,
            edge.child_id,
        )
        return ServiceResult(
            ok=True,
            op=op,
            data=snapshot_payload(snapshot, removed=edge.model_dump(mode="json")),
        )

    @traced
    def update_relationships(
        self,
        owner_id: str,
        *,
        add: Sequence[RelationshipChange] = (),
        remove: Sequence[str] = (),
        actor_id: str | None = None,
    ) -> ServiceResult:
        """Apply a batch of additions and removals as one atomic unit.

        Additions run first, each checked against the edge set including
        the batch's earlier additions. Pairs that already exist are
        reported under ``skipped`` rather than failing. Removals must
        touch the owner. Any failure rolls the whole batch back.
        """
        op = "update_relationships"
        warnings: list[str] = []
        try:
            if not add and not remove:
                raise InvalidOperationError(
                    "At least one relationship to add or remove is required",
                    account_id=owner_id,
                )
            actor = self._actor(actor_id)
            with self._registry.relationships.transaction() as txn:
                self._require_account(owner_id, conn=txn.conn)
                added: list[Relationship] = []
                skipped: list[dict[str, Any]] = []
                for change in add:
                    self._require_account(change.target_id, conn=txn.conn)
                    parent_id, child_id = change.endpoints(owner_id)
                    self._guard(txn.index, parent_id, child_id)
                    existing = txn.index.find_pair(parent_id, child_id)
                    if existing is not None:
                        skipped.append(existing.model_dump(mode="json"))
                        warnings.append(
                            f"Relationship {parent_id} -> {child_id} already exists; skipped"
                        )
                        continue
                    added.append(
                        txn.add_edge(parent_id, child_id, change.relationship_type, actor)
                    )
                removed: list[Relationship] = []
                for edge_id in remove:
                    edge = txn.get_edge(edge_id)
                    if not edge.involves(owner_id):
                        raise InvalidOperationError(
                            f"Relationship with ID {edge_id} does not involve account {owner_id}",
                            edge_id=edge_id,
                            account_id=owner_id,
                        )
                    removed.append(txn.remove_edge(edge_id))
            snapshot = txn.index.snapshot_for(owner_id)
        except GraphError as exc:
            return self._failure(op, exc)

        logger.info(
            "Relationships updated for %s: +%d -%d (%d skipped)",
            owner_id,
            len(added),
            len(removed),
            len(skipped),
        )
        return ServiceResult(
            ok=True,
            op=op,
            data=snapshot_payload(
                snapshot,
                added=[e.model_dump(mode="json") for e in added],
                removed=[e.model_dump(mode="json") for e in removed],
                skipped=skipped,
            ),
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @traced
    def get_relationships(self, account_id: str) -> ServiceResult:
        """Direct parent and child edges of *account_id*."""
        op = "get_relationships"
        try:
            self._require_account(account_id)
        except GraphError as exc:
            return self._failure(op, exc)
        snapshot = self._registry.relationships.snapshot().snapshot_for(account_id)
        return ServiceResult(ok=True, op=op, data=snapshot_payload(snapshot))

    @traced
    def get_ancestors(
        self, account_id: str, *, page: int = 1, page_size: int | None = None
    ) -> ServiceResult:
        """Direct parents of *account_id*, resolved and paginated."""
        return self._one_hop("get_ancestors", account_id, page, page_size, upward=True)

    @traced
    def get_descendants(
        self, account_id: str, *, page: int = 1, page_size: int | None = None
    ) -> ServiceResult:
        """Direct children of *account_id*, resolved and paginated."""
        return self._one_hop("get_descendants", account_id, page, page_size, upward=False)

    def _one_hop(
        self,
        op: str,
        account_id: str,
        page: int,
        page_size: int | None,
        *,
        upward: bool,
    ) -> ServiceResult:
        try:
            page, size = self._page_bounds(page, page_size)
            self._require_account(account_id)
        except GraphError as exc:
            return self._failure(op, exc)

        index = self._registry.relationships.snapshot()
        if upward:
            related_ids = [e.parent_id for e in index.edges_where_child(account_id)]
        else:
            related_ids = [e.child_id for e in index.edges_where_parent(account_id)]
        accounts = self._registry.accounts.get_many(related_ids)
        result = AccountPage.paginate(accounts, page, size)
        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(
                AccountPageData,
                {
                    **result.model_dump(mode="json"),
                    "account_id": account_id,
                    "direction": "parents" if upward else "children",
                },
            ),
        )

    @traced
    def get_hierarchy(self, account_id: str, depth: int | None = None) -> ServiceResult:
        """Bounded-depth tree of ancestors and descendants around *account_id*."""
        op = "get_hierarchy"
        if depth is None:
            depth = self._registry.settings.hierarchy.default_depth
        try:
            validate_depth(depth)
            root = self._registry.accounts.get(account_id)
        except GraphError as exc:
            return self._failure(op, exc)

        index = self._registry.relationships.snapshot()
        builder = HierarchyBuilder(index.snapshot_for, self._registry.accounts.find)
        with trace_span("build_hierarchy") as span:
            tree = builder.build(root, depth)
            if span is not None:
                span.annotate("edges_in_snapshot", len(index))

        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(
                HierarchyData,
                {"account_id": account_id, "depth": depth, "root": tree.model_dump(mode="json")},
            ),
        )

    @traced
    def check_circular(self, parent_id: str, child_id: str) -> ServiceResult:
        """Read-only probe: would ``parent_id -> child_id`` close a loop?

        Uses the same algorithm as the pre-commit check, against the
        current published edge set.
        """
        index = self._registry.relationships.snapshot()
        check = find_cycle_path(parent_id, child_id, index.parents_of)
        return ServiceResult(
            ok=True,
            op="check_circular",
            data=dump_validated(
                CircularCheckData,
                {
                    "parent_id": parent_id,
                    "child_id": child_id,
                    "would_create_circular": check.would_create_cycle,
                    "path": list(check.path),
                },
            ),
        )
