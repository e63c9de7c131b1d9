"""SQLAlchemy Core table definitions for the acctgraph database.

``account_relationships`` is the persisted edge set. The unique
``(parent_id, child_id)`` constraint backs the no-duplicate-pair
invariant; acyclicity is enforced in the write path, not in SQL.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

accounts = Table(
    "accounts",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", Text, nullable=False),
    Column("type", String(50), nullable=False),
    Column("status", String(50), nullable=False),
    Column("industry", Text),
    Column("created_by", String(36), nullable=False),
    Column("created_at", Text, nullable=False),
    Column("updated_by", String(36), nullable=False),
    Column("updated_at", Text, nullable=False),
)

account_relationships = Table(
    "account_relationships",
    metadata,
    Column("id", String(36), primary_key=True),
    Column(
        "parent_id",
        String(36),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "child_id",
        String(36),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("relationship_type", String(50), nullable=False),
    Column("created_by", String(36), nullable=False),
    Column("created_at", Text, nullable=False),
    Column("updated_by", String(36), nullable=False),
    Column("updated_at", Text, nullable=False),
    UniqueConstraint("parent_id", "child_id", name="uq_relationship_pair"),
)

# ---------------------------------------------------------------------------
# Indexes for the by-parent / by-child lookups
# ---------------------------------------------------------------------------

Index("ix_accounts_status", accounts.c.status)
Index("ix_relationships_parent", account_relationships.c.parent_id)
Index("ix_relationships_child", account_relationships.c.child_id)
