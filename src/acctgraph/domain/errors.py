"""Typed failures raised by stores and graph algorithms.

Each error carries a stable ``code`` and a ``detail`` dict. The service
layer converts them into ``ServiceResult(ok=False, error=...)`` without
losing either, so callers branch on codes rather than message text.

INVARIANT: every error is raised before any mutation becomes visible.
"""

from __future__ import annotations

from typing import Any, ClassVar


class GraphError(Exception):
    """Base class for all relationship graph failures."""

    code: ClassVar[str] = "GRAPH_ERROR"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail: dict[str, Any] = detail


class NotFoundError(GraphError):
    """A referenced account or edge id does not exist."""

    code = "NOT_FOUND"


class DuplicateEdgeError(GraphError):
    """The ordered ``(parent, child)`` pair already has an edge."""

    code = "DUPLICATE_EDGE"


class CircularReferenceError(GraphError):
    """The cycle guard rejected a prospective edge."""

    code = "CIRCULAR_REFERENCE"

    def __init__(self, parent_id: str, child_id: str, path: list[str] | None = None) -> None:
        super().__init__(
            f"Adding a relationship between {parent_id} and {child_id} "
            "would create a circular reference",
            parent_id=parent_id,
            child_id=child_id,
            path=list(path or []),
        )
        self.parent_id = parent_id
        self.child_id = child_id
        self.path = list(path or [])


class InvalidOperationError(GraphError):
    """Structural misuse: cross-owner removal, bad depth, empty batch."""

    code = "INVALID_OPERATION"


class DependencyError(GraphError):
    """Account deletion blocked by existing relationship edges."""

    code = "DEPENDENCY_ERROR"
