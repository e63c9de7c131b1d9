"""Frozen Pydantic models for accounts, edges, snapshots, and hierarchies."""

from __future__ import annotations

import math

from pydantic import BaseModel, Field

from acctgraph.domain.types import AccountStatus, AccountType, RelationshipType


class Account(BaseModel):
    """An entity record in the account store."""

    model_config = {"frozen": True}

    id: str
    name: str
    type: AccountType
    status: AccountStatus
    industry: str | None = None
    created_by: str
    created_at: str
    updated_by: str
    updated_at: str


class Relationship(BaseModel):
    """A directed edge linking a parent account to a child account.

    Edges are never mutated in place: a type change is a remove followed
    by an add, so ``updated_*`` always equals ``created_*`` in practice.
    """

    model_config = {"frozen": True}

    id: str
    parent_id: str
    child_id: str
    relationship_type: RelationshipType
    created_by: str
    created_at: str
    updated_by: str
    updated_at: str

    def involves(self, account_id: str) -> bool:
        return account_id in (self.parent_id, self.child_id)

    def other_endpoint(self, account_id: str) -> str:
        """Return the endpoint that is not *account_id*."""
        return self.child_id if self.parent_id == account_id else self.parent_id


class RelationshipSnapshot(BaseModel):
    """An account's direct parent and child edges at a point in time."""

    model_config = {"frozen": True}

    account_id: str
    parent_relationships: tuple[Relationship, ...] = ()
    child_relationships: tuple[Relationship, ...] = ()

    @property
    def edge_count(self) -> int:
        return len(self.parent_relationships) + len(self.child_relationships)


class HierarchyNode(BaseModel):
    """One node of a bounded-depth hierarchy rendering.

    Leaf markers have empty ``parents``/``children``; ``is_cycle`` tells a
    revisit on the current path apart from depth exhaustion. Placeholders
    for unresolvable accounts carry only ``id``, ``relationship_type`` and
    ``error``.
    """

    model_config = {"frozen": True}

    id: str
    name: str | None = None
    type: AccountType | None = None
    status: AccountStatus | None = None
    relationship_type: RelationshipType | None = None
    is_cycle: bool = False
    error: str | None = None
    parents: list[HierarchyNode] = Field(default_factory=list)
    children: list[HierarchyNode] = Field(default_factory=list)

    def max_path_length(self) -> int:
        """Longest root-to-leaf path, counted in edges."""
        branches = [*self.parents, *self.children]
        if not branches:
            return 0
        return 1 + max(b.max_path_length() for b in branches)


class AccountPage(BaseModel):
    """A page of accounts."""

    model_config = {"frozen": True}

    items: list[Account]
    total: int
    page: int
    page_size: int
    total_pages: int

    @classmethod
    def paginate(cls, accounts: list[Account], page: int, page_size: int) -> AccountPage:
        """Slice *accounts* into the requested 1-based page."""
        start = (page - 1) * page_size
        return cls(
            items=accounts[start : start + page_size],
            total=len(accounts),
            page=page,
            page_size=page_size,
            total_pages=math.ceil(len(accounts) / page_size) if page_size else 0,
        )


class RelationshipChange(BaseModel):
    """One pending addition in a batch relationship update.

    ``target_is_parent`` picks the direction: True makes the target the
    parent of the owner, False makes the owner the parent of the target.
    """

    model_config = {"frozen": True}

    target_id: str
    relationship_type: RelationshipType = RelationshipType.PARENT_CHILD
    target_is_parent: bool = False

    def endpoints(self, owner_id: str) -> tuple[str, str]:
        """Return ``(parent_id, child_id)`` for this change applied to *owner_id*."""
        if self.target_is_parent:
            return self.target_id, owner_id
        return owner_id, self.target_id
