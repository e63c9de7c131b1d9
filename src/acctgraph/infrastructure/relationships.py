"""RelationshipStore: exclusive owner of the edge set.

Edges live in a flat arena keyed by id with two derived indices
(``by_parent``, ``by_child``). The whole arena is an immutable
:class:`EdgeIndex` published by reference:

- **Reads** take :meth:`RelationshipStore.snapshot` and traverse that
  point-in-time copy. No lock is held and concurrent writes never change
  what a reader sees mid-traversal.
- **Writes** go through :meth:`RelationshipStore.transaction`, which holds
  the single mutation lock, applies SQL and index changes in lockstep, and
  publishes the new index only after the database commit succeeds.

A caller that runs a check (e.g. the cycle guard) against
``txn.index`` and then mutates inside the same transaction gets an atomic
check-then-commit with respect to every other writer.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, insert, select

from acctgraph.domain.clock import now_iso
from acctgraph.domain.errors import DuplicateEdgeError, InvalidOperationError, NotFoundError
from acctgraph.domain.ids import new_id
from acctgraph.domain.models import Relationship, RelationshipSnapshot
from acctgraph.domain.types import RelationshipType
from acctgraph.infrastructure.database.schema import account_relationships

if TYPE_CHECKING:
    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

    from acctgraph.infrastructure.accounts import AccountStore

logger = logging.getLogger(__name__)

_EMPTY: frozenset[str] = frozenset()


def _sort_key(edge: Relationship) -> tuple[str, str]:
    return (edge.created_at, edge.id)


# ---------------------------------------------------------------------------
# EdgeIndex: immutable arena plus derived indices
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EdgeIndex:
    """Point-in-time edge set.

    ``with_edge``/``without_edge`` return a new index and leave this one
    untouched, so a published index can be shared freely between threads.
    """

    edges: Mapping[str, Relationship] = field(default_factory=dict)
    by_parent: Mapping[str, frozenset[str]] = field(default_factory=dict)
    by_child: Mapping[str, frozenset[str]] = field(default_factory=dict)
    version: int = 0

    @classmethod
    def from_edges(cls, edges: Iterable[Relationship], *, version: int = 0) -> EdgeIndex:
        arena: dict[str, Relationship] = {}
        by_parent: dict[str, set[str]] = {}
        by_child: dict[str, set[str]] = {}
        for edge in edges:
            arena[edge.id] = edge
            by_parent.setdefault(edge.parent_id, set()).add(edge.id)
            by_child.setdefault(edge.child_id, set()).add(edge.id)
        return cls(
            edges=MappingProxyType(arena),
            by_parent=MappingProxyType({k: frozenset(v) for k, v in by_parent.items()}),
            by_child=MappingProxyType({k: frozenset(v) for k, v in by_child.items()}),
            version=version,
        )

    def __len__(self) -> int:
        return len(self.edges)

    def __contains__(self, edge_id: object) -> bool:
        return edge_id in self.edges

    # -- lookups -----------------------------------------------------------

    def get(self, edge_id: str) -> Relationship | None:
        return self.edges.get(edge_id)

    def edges_where_parent(self, account_id: str) -> list[Relationship]:
        ids = self.by_parent.get(account_id, _EMPTY)
        return sorted((self.edges[i] for i in ids), key=_sort_key)

    def edges_where_child(self, account_id: str) -> list[Relationship]:
        ids = self.by_child.get(account_id, _EMPTY)
        return sorted((self.edges[i] for i in ids), key=_sort_key)

    def parents_of(self, account_id: str) -> list[str]:
        """Direct parent ids of *account_id* (the cycle guard's lookup)."""
        return [self.edges[i].parent_id for i in self.by_child.get(account_id, _EMPTY)]

    def find_pair(self, parent_id: str, child_id: str) -> Relationship | None:
        for edge_id in self.by_parent.get(parent_id, _EMPTY):
            edge = self.edges[edge_id]
            if edge.child_id == child_id:
                return edge
        return None

    def touching(self, account_id: str) -> list[Relationship]:
        """Every edge where *account_id* is either endpoint."""
        ids = self.by_parent.get(account_id, _EMPTY) | self.by_child.get(account_id, _EMPTY)
        return sorted((self.edges[i] for i in ids), key=_sort_key)

    def snapshot_for(self, account_id: str) -> RelationshipSnapshot:
        return RelationshipSnapshot(
            account_id=account_id,
            parent_relationships=tuple(self.edges_where_child(account_id)),
            child_relationships=tuple(self.edges_where_parent(account_id)),
        )

    # -- copy-on-write updates --------------------------------------------

    def with_edge(self, edge: Relationship) -> EdgeIndex:
        edges = dict(self.edges)
        edges[edge.id] = edge
        return replace(
            self,
            edges=MappingProxyType(edges),
            by_parent=_index_add(self.by_parent, edge.parent_id, edge.id),
            by_child=_index_add(self.by_child, edge.child_id, edge.id),
        )

    def without_edge(self, edge_id: str) -> EdgeIndex:
        edge = self.edges[edge_id]
        edges = dict(self.edges)
        del edges[edge_id]
        return replace(
            self,
            edges=MappingProxyType(edges),
            by_parent=_index_remove(self.by_parent, edge.parent_id, edge_id),
            by_child=_index_remove(self.by_child, edge.child_id, edge_id),
        )


def _index_add(
    index: Mapping[str, frozenset[str]], key: str, edge_id: str
) -> Mapping[str, frozenset[str]]:
    updated = dict(index)
    updated[key] = index.get(key, _EMPTY) | {edge_id}
    return MappingProxyType(updated)


def _index_remove(
    index: Mapping[str, frozenset[str]], key: str, edge_id: str
) -> Mapping[str, frozenset[str]]:
    updated = dict(index)
    remaining = index.get(key, _EMPTY) - {edge_id}
    if remaining:
        updated[key] = remaining
    else:
        updated.pop(key, None)
    return MappingProxyType(updated)


def _row_to_edge(row: Any) -> Relationship:
    return Relationship(
        id=row.id,
        parent_id=row.parent_id,
        child_id=row.child_id,
        relationship_type=RelationshipType(row.relationship_type),
        created_by=row.created_by,
        created_at=row.created_at,
        updated_by=row.updated_by,
        updated_at=row.updated_at,
    )


# ---------------------------------------------------------------------------
# RelationshipTransaction: yielded to callers within transaction()
# ---------------------------------------------------------------------------


@dataclass
class RelationshipTransaction:
    """Active write context: a DB connection plus the working index.

    All edge mutations must go through this object so the SQL rows and
    the in-memory index never drift apart. ``index`` always reflects the
    pending (uncommitted) state, including this transaction's own writes.
    """

    conn: Connection
    index: EdgeIndex
    _accounts: AccountStore = field(repr=False)
    added: list[Relationship] = field(default_factory=list)
    removed: list[Relationship] = field(default_factory=list)

    def get_edge(self, edge_id: str) -> Relationship:
        edge = self.index.get(edge_id)
        if edge is None:
            raise NotFoundError(f"Relationship with ID {edge_id} not found", edge_id=edge_id)
        return edge

    def edges_where_parent(self, account_id: str) -> list[Relationship]:
        return self.index.edges_where_parent(account_id)

    def edges_where_child(self, account_id: str) -> list[Relationship]:
        return self.index.edges_where_child(account_id)

    def add_edge(
        self,
        parent_id: str,
        child_id: str,
        relationship_type: RelationshipType,
        actor_id: str,
    ) -> Relationship:
        """Persist one new edge with a fresh id and timestamps.

        Raises:
            NotFoundError: Either endpoint is not a known account.
            DuplicateEdgeError: The ordered pair already has an edge.
            InvalidOperationError: ``parent_id == child_id``.
        """
        if parent_id == child_id:
            raise InvalidOperationError(
                "An account cannot be related to itself", account_id=parent_id
            )
        for account_id in (parent_id, child_id):
            if not self._accounts.exists(account_id, conn=self.conn):
                raise NotFoundError(
                    f"Account with ID {account_id} not found", account_id=account_id
                )
        existing = self.index.find_pair(parent_id, child_id)
        if existing is not None:
            raise DuplicateEdgeError(
                "Relationship already exists",
                parent_id=parent_id,
                child_id=child_id,
                edge_id=existing.id,
            )

        now = now_iso()
        edge = Relationship(
            id=new_id(),
            parent_id=parent_id,
            child_id=child_id,
            relationship_type=relationship_type,
            created_by=actor_id,
            created_at=now,
            updated_by=actor_id,
            updated_at=now,
        )
        self.conn.execute(insert(account_relationships).values(**edge.model_dump(mode="json")))
        self.index = self.index.with_edge(edge)
        self.added.append(edge)
        return edge

    def remove_edge(self, edge_id: str) -> Relationship:
        """Delete one edge and return it. Raises :class:`NotFoundError`."""
        edge = self.get_edge(edge_id)
        self.conn.execute(
            delete(account_relationships).where(account_relationships.c.id == edge_id)
        )
        self.index = self.index.without_edge(edge_id)
        self.removed.append(edge)
        return edge

    def remove_all_edges_touching(self, account_id: str) -> int:
        """Cascade helper for account deletion. Zero removals is not an error."""
        edges = self.index.touching(account_id)
        for edge in edges:
            self.remove_edge(edge.id)
        return len(edges)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


# ---------------------------------------------------------------------------
# RelationshipStore
# ---------------------------------------------------------------------------


class RelationshipStore:
    """Edge repository with lock-free snapshot reads and serialized writes."""

    def __init__(self, engine: Engine, accounts: AccountStore) -> None:
        self._engine = engine
        self._accounts = accounts
        self._lock = threading.RLock()
        self._published: EdgeIndex | None = None

    def snapshot(self) -> EdgeIndex:
        """Return the current published index, loading from DB on first access."""
        published = self._published
        if published is None:
            with self._lock:
                if self._published is None:
                    self._published = self._load(version=0)
                published = self._published
        return published

    def reload(self) -> EdgeIndex:
        """Discard the in-memory index and rebuild it from committed rows."""
        with self._lock:
            version = self._published.version + 1 if self._published is not None else 0
            self._published = self._load(version=version)
            return self._published

    def _load(self, *, version: int) -> EdgeIndex:
        with self._engine.connect() as conn:
            rows = conn.execute(select(account_relationships)).fetchall()
        index = EdgeIndex.from_edges((_row_to_edge(r) for r in rows), version=version)
        logger.debug("Loaded %d relationship edges (version %d)", len(index), version)
        return index

    @contextmanager
    def transaction(self) -> Iterator[RelationshipTransaction]:
        """Serialized write transaction across SQL and the edge index.

        - The mutation lock is held for the whole block, so every check
          made against ``txn.index`` stays valid until commit.
        - SQL uses ``engine.begin()``: commit on success, rollback on
          exception.
        - The working index is published only after the commit succeeds.
          On failure the previously published index stays in place.

        Usage::

            with store.transaction() as txn:
                if not would_create_cycle(p, c, txn.index.parents_of):
                    txn.add_edge(p, c, RelationshipType.PARENT_CHILD, actor)
        """
        with self._lock:
            base = self.snapshot()
            with self._engine.begin() as conn:
                txn = RelationshipTransaction(conn=conn, index=base, _accounts=self._accounts)
                yield txn
            if txn.changed:
                self._published = replace(txn.index, version=base.version + 1)
                logger.debug(
                    "Published relationship index version %d (+%d/-%d)",
                    base.version + 1,
                    len(txn.added),
                    len(txn.removed),
                )

    # ------------------------------------------------------------------
    # Single-operation conveniences (each its own transaction)
    # ------------------------------------------------------------------

    def get_edge(self, edge_id: str) -> Relationship:
        edge = self.snapshot().get(edge_id)
        if edge is None:
            raise NotFoundError(f"Relationship with ID {edge_id} not found", edge_id=edge_id)
        return edge

    def edges_where_parent(self, account_id: str) -> list[Relationship]:
        return self.snapshot().edges_where_parent(account_id)

    def edges_where_child(self, account_id: str) -> list[Relationship]:
        return self.snapshot().edges_where_child(account_id)

    def add_edge(
        self,
        parent_id: str,
        child_id: str,
        relationship_type: RelationshipType,
        actor_id: str,
    ) -> Relationship:
        with self.transaction() as txn:
            return txn.add_edge(parent_id, child_id, relationship_type, actor_id)

    def remove_edge(self, edge_id: str) -> Relationship:
        with self.transaction() as txn:
            return txn.remove_edge(edge_id)

    def remove_all_edges_touching(self, account_id: str) -> int:
        with self.transaction() as txn:
            return txn.remove_all_edges_touching(account_id)
