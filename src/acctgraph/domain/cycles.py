"""Cycle guard: would a prospective parent -> child edge close a loop?

The check walks *upward* from the prospective parent along existing
parent-of edges (breadth-first), looking for the prospective child. If
the child is already an ancestor of the parent, the new edge closes a
directed cycle. The same function backs both the read-only probe and the
pre-commit check inside the mutating path, so the two cannot disagree.

Termination: the visited set strictly grows and the edge set is finite,
so the walk ends even if a cycle already exists in the data.
Complexity: O(V + E) per check.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass

type ParentsOf = Callable[[str], Iterable[str]]


@dataclass(frozen=True)
class CycleCheck:
    """Outcome of a cycle probe.

    ``path`` is the loop the edge would close, starting and ending at the
    prospective parent: ``(parent, child, ..., parent)``. Empty when no
    cycle would form.
    """

    would_create_cycle: bool
    path: tuple[str, ...] = ()


def find_cycle_path(parent_id: str, child_id: str, parents_of: ParentsOf) -> CycleCheck:
    """Decide whether adding ``parent_id -> child_id`` would create a cycle.

    Args:
        parent_id: The prospective parent.
        child_id: The prospective child.
        parents_of: Returns the direct parents of an account id in the
            current (point-in-time) edge set.
    """
    # Self-loop
    if parent_id == child_id:
        return CycleCheck(True, (parent_id, parent_id))

    # Direct reverse edge: child is already a parent of parent
    if child_id in set(parents_of(parent_id)):
        return CycleCheck(True, (parent_id, child_id, parent_id))

    came_from: dict[str, str] = {}
    visited: set[str] = set()
    queue: deque[str] = deque([parent_id])

    while queue:
        node = queue.popleft()
        if node in visited:
            continue
        visited.add(node)
        for ancestor in parents_of(node):
            came_from.setdefault(ancestor, node)
            if ancestor == child_id:
                return CycleCheck(True, _close_loop(parent_id, child_id, came_from))
            queue.append(ancestor)

    return CycleCheck(False)


def would_create_cycle(parent_id: str, child_id: str, parents_of: ParentsOf) -> bool:
    """Boolean form of :func:`find_cycle_path`."""
    return find_cycle_path(parent_id, child_id, parents_of).would_create_cycle


def _close_loop(parent_id: str, child_id: str, came_from: dict[str, str]) -> tuple[str, ...]:
    """Rebuild ``parent -> child -> ... -> parent`` from BFS back-pointers.

    ``came_from[a]`` is the descendant through which ancestor ``a`` was
    first reached, so following it from the child walks down to the parent.
    """
    chain = [child_id]
    current = child_id
    while current != parent_id:
        current = came_from[current]
        chain.append(current)
    return (parent_id, *chain)
