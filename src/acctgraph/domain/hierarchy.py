"""Hierarchy builder: bounded-depth tree view of an account's relationships.

Expands parents and children recursively from a root account. Each branch
carries its own immutable visited set (the ids on the current path only),
so siblings that share a descendant are both expanded while a true loop
back to an ancestor on the path becomes an ``is_cycle`` leaf.

The builder tolerates cycles even though the store forbids them; imported
data or bugs could still introduce one. Unresolvable related accounts
degrade to placeholder nodes instead of failing the traversal.
"""

from __future__ import annotations

from collections.abc import Callable

from acctgraph.domain.errors import InvalidOperationError
from acctgraph.domain.models import Account, HierarchyNode, Relationship, RelationshipSnapshot
from acctgraph.domain.types import RelationshipType

MIN_DEPTH = 1
MAX_DEPTH = 5
UNRESOLVED_MESSAGE = "Could not load account details"


def validate_depth(depth: int) -> int:
    """Return *depth* unchanged, or raise if it falls outside [1, 5]."""
    if not MIN_DEPTH <= depth <= MAX_DEPTH:
        raise InvalidOperationError(
            f"Depth must be between {MIN_DEPTH} and {MAX_DEPTH}",
            depth=depth,
        )
    return depth


class HierarchyBuilder:
    """Build :class:`HierarchyNode` trees from two lookups.

    Args:
        relationships_of: Direct edges of an account. Callers pass a lookup
            bound to a single point-in-time snapshot.
        resolve: Account record for an id, or None if it cannot be loaded.
    """

    def __init__(
        self,
        relationships_of: Callable[[str], RelationshipSnapshot],
        resolve: Callable[[str], Account | None],
    ) -> None:
        self._relationships_of = relationships_of
        self._resolve = resolve

    def build(self, root: Account, depth: int) -> HierarchyNode:
        return self._expand(root, depth, frozenset(), None)

    def _expand(
        self,
        account: Account,
        remaining: int,
        path: frozenset[str],
        relationship_type: RelationshipType | None,
    ) -> HierarchyNode:
        on_path = account.id in path
        if remaining <= 0 or on_path:
            return _node(account, relationship_type, is_cycle=on_path)

        path = path | {account.id}
        snapshot = self._relationships_of(account.id)
        parents = [
            self._branch(edge.parent_id, edge, remaining - 1, path)
            for edge in snapshot.parent_relationships
        ]
        children = [
            self._branch(edge.child_id, edge, remaining - 1, path)
            for edge in snapshot.child_relationships
        ]
        return _node(account, relationship_type, parents=parents, children=children)

    def _branch(
        self,
        account_id: str,
        edge: Relationship,
        remaining: int,
        path: frozenset[str],
    ) -> HierarchyNode:
        related = self._resolve(account_id)
        if related is None:
            return HierarchyNode(
                id=account_id,
                relationship_type=edge.relationship_type,
                error=UNRESOLVED_MESSAGE,
            )
        return self._expand(related, remaining, path, edge.relationship_type)


def _node(
    account: Account,
    relationship_type: RelationshipType | None,
    *,
    is_cycle: bool = False,
    parents: list[HierarchyNode] | None = None,
    children: list[HierarchyNode] | None = None,
) -> HierarchyNode:
    return HierarchyNode(
        id=account.id,
        name=account.name,
        type=account.type,
        status=account.status,
        relationship_type=relationship_type,
        is_cycle=is_cycle,
        parents=parents or [],
        children=children or [],
    )
