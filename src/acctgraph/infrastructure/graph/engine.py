"""GraphEngine: lazy-built NetworkX graph over a relationship snapshot.

Rebuilt only when the published edge index version changes. Commands that
don't need whole-graph algorithms never build it. Nodes carry no account
attributes; callers resolve ids against the account store themselves.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import networkx as nx

if TYPE_CHECKING:
    from acctgraph.infrastructure.relationships import EdgeIndex, RelationshipStore

type _Graph = nx.DiGraph


def build_digraph(index: EdgeIndex) -> _Graph:
    """Directed graph with an edge ``parent -> child`` per relationship."""
    g: _Graph = nx.DiGraph()
    for edge in index.edges.values():
        g.add_edge(
            edge.parent_id,
            edge.child_id,
            id=edge.id,
            relationship_type=str(edge.relationship_type),
        )
    return g


class GraphEngine:
    """Lazy-loading graph engine backed by the relationship store."""

    def __init__(self, relationships: RelationshipStore) -> None:
        self._relationships = relationships
        self._lock = threading.Lock()
        self._graph: _Graph | None = None
        self._version: int | None = None

    @property
    def graph(self) -> _Graph:
        """Return the graph, rebuilding if the edge set moved on."""
        index = self._relationships.snapshot()
        with self._lock:
            if self._graph is None or self._version != index.version:
                self._graph = build_digraph(index)
                self._version = index.version
            return self._graph

    def invalidate(self) -> None:
        """Clear the cached graph, forcing rebuild on next access."""
        with self._lock:
            self._graph = None
            self._version = None

    def is_acyclic(self) -> bool:
        return nx.is_directed_acyclic_graph(self.graph)
