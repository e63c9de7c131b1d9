"""Typed payload contracts for the service boundary.

These models validate operation payload shapes before they leave the
service layer so key regressions (for example ``children`` vs
``child_relationships``) fail fast in tests and during development.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


def dump_validated[T: BaseModel](model_cls: type[T], data: dict[str, Any]) -> dict[str, Any]:
    """Validate *data* against *model_cls* and return a normalized payload dict."""
    return model_cls.model_validate(data).model_dump(mode="json")


class RelationshipItem(BaseModel):
    """One edge as it appears in payloads."""

    id: str
    parent_id: str
    child_id: str
    relationship_type: str
    created_by: str
    created_at: str
    updated_by: str
    updated_at: str


class SnapshotData(BaseModel):
    """Payload contract for the relationship snapshot operations.

    Mutations add their own keys (``relationship``, ``removed``,
    ``added``, ``skipped``) alongside the refreshed snapshot.
    """

    model_config = ConfigDict(extra="allow")

    account_id: str
    parent_relationships: list[RelationshipItem]
    child_relationships: list[RelationshipItem]
    count: int


class AccountItem(BaseModel):
    """One account row."""

    id: str
    name: str
    type: str
    status: str
    industry: str | None = None
    created_by: str
    created_at: str
    updated_by: str
    updated_at: str


class AccountPageData(BaseModel):
    """Payload contract for paginated account lists (plain and one-hop)."""

    model_config = ConfigDict(extra="allow")

    items: list[AccountItem]
    total: int
    page: int
    page_size: int
    total_pages: int


class HierarchyNodeItem(BaseModel):
    """Recursive hierarchy node."""

    id: str
    name: str | None = None
    type: str | None = None
    status: str | None = None
    relationship_type: str | None = None
    is_cycle: bool = False
    error: str | None = None
    parents: list[HierarchyNodeItem] = Field(default_factory=list)
    children: list[HierarchyNodeItem] = Field(default_factory=list)


class HierarchyData(BaseModel):
    """Payload contract for ``RelationshipService.get_hierarchy``."""

    account_id: str
    depth: int
    root: HierarchyNodeItem


class CircularCheckData(BaseModel):
    """Payload contract for ``RelationshipService.check_circular``."""

    parent_id: str
    child_id: str
    would_create_circular: bool
    path: list[str] = Field(default_factory=list)


class CheckIssue(BaseModel):
    """One integrity finding returned by ``CheckService.check``."""

    model_config = ConfigDict(extra="allow")

    category: str
    severity: Literal["warning", "error"]
    node_id: str | None = None
    message: str
    fix_action: str | None = None


class CheckResultData(BaseModel):
    """Payload contract for ``CheckService.check``."""

    issues: list[CheckIssue]
    count: int
    error_count: int
    warning_count: int
    healthy: bool
