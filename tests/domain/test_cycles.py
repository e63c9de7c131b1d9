"""Tests for the cycle guard (upward BFS from the prospective parent)."""

from __future__ import annotations

from collections.abc import Iterable

import networkx as nx
from hypothesis import given
from hypothesis import strategies as st

from acctgraph.domain.cycles import find_cycle_path, would_create_cycle


def _parents(edges: Iterable[tuple[str, str]]):
    """Build a ``parents_of`` lookup from (parent, child) pairs."""
    table: dict[str, list[str]] = {}
    for parent, child in edges:
        table.setdefault(child, []).append(parent)
    return lambda node: table.get(node, [])


class TestFindCyclePath:
    def test_empty_graph_is_safe(self) -> None:
        check = find_cycle_path("a", "b", _parents([]))
        assert check.would_create_cycle is False
        assert check.path == ()

    def test_self_loop(self) -> None:
        check = find_cycle_path("a", "a", _parents([]))
        assert check.would_create_cycle is True
        assert check.path == ("a", "a")

    def test_direct_reverse_edge(self) -> None:
        check = find_cycle_path("b", "a", _parents([("a", "b")]))
        assert check.would_create_cycle is True
        assert check.path == ("b", "a", "b")

    def test_transitive_cycle_path(self) -> None:
        """A -> B -> C exists, so C -> A closes the loop C, A, B, C."""
        parents_of = _parents([("a", "b"), ("b", "c")])
        check = find_cycle_path("c", "a", parents_of)
        assert check.would_create_cycle is True
        assert check.path == ("c", "a", "b", "c")

    def test_forward_shortcut_is_safe(self) -> None:
        """A -> B -> C plus A -> C is a diamond, not a cycle."""
        parents_of = _parents([("a", "b"), ("b", "c")])
        assert would_create_cycle("a", "c", parents_of) is False

    def test_siblings_are_safe(self) -> None:
        parents_of = _parents([("root", "x"), ("root", "y")])
        assert would_create_cycle("x", "y", parents_of) is False
        assert would_create_cycle("y", "x", parents_of) is False

    def test_unknown_accounts_are_safe(self) -> None:
        assert would_create_cycle("ghost-1", "ghost-2", _parents([("a", "b")])) is False

    def test_terminates_on_existing_cycle(self) -> None:
        """Corrupt data with a loop elsewhere must not hang the walk."""
        parents_of = _parents([("x", "y"), ("y", "x"), ("y", "p")])
        assert would_create_cycle("p", "c", parents_of) is False

    def test_path_starts_and_ends_at_parent(self) -> None:
        edges = [("a", "b"), ("b", "c"), ("c", "d"), ("a", "e")]
        check = find_cycle_path("d", "a", _parents(edges))
        assert check.path[0] == "d"
        assert check.path[-1] == "d"
        assert check.path[1] == "a"
        # Every consecutive pair after the new edge is an existing edge.
        for parent, child in zip(check.path[1:], check.path[2:], strict=False):
            assert (parent, child) in edges


_NODES = st.sampled_from([f"n{i}" for i in range(6)])


class TestCycleGuardProperties:
    @given(
        edges=st.lists(st.tuples(_NODES, _NODES), max_size=15),
        parent=_NODES,
        child=_NODES,
    )
    def test_agrees_with_reachability(
        self, edges: list[tuple[str, str]], parent: str, child: str
    ) -> None:
        """``p -> c`` closes a loop exactly when ``c`` already reaches ``p``."""
        g = nx.DiGraph()
        g.add_nodes_from([parent, child])
        g.add_edges_from(edges)
        expected = parent == child or nx.has_path(g, child, parent)
        assert would_create_cycle(parent, child, _parents(edges)) is expected
