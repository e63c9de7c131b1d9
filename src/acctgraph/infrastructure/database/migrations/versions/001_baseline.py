"""Baseline schema: accounts and account_relationships.

Revision ID: 001_baseline
Revises: None
Create Date: 2026-10-18

Databases created by ``init_database`` already contain these tables and
are stamped at this revision instead of running it.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("industry", sa.Text),
        sa.Column("created_by", sa.String(36), nullable=False),
        sa.Column("created_at", sa.Text, nullable=False),
        sa.Column("updated_by", sa.String(36), nullable=False),
        sa.Column("updated_at", sa.Text, nullable=False),
    )
    op.create_index("ix_accounts_status", "accounts", ["status"])

    op.create_table(
        "account_relationships",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "parent_id",
            sa.String(36),
            sa.ForeignKey("accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "child_id",
            sa.String(36),
            sa.ForeignKey("accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("relationship_type", sa.String(50), nullable=False),
        sa.Column("created_by", sa.String(36), nullable=False),
        sa.Column("created_at", sa.Text, nullable=False),
        sa.Column("updated_by", sa.String(36), nullable=False),
        sa.Column("updated_at", sa.Text, nullable=False),
        sa.UniqueConstraint("parent_id", "child_id", name="uq_relationship_pair"),
    )
    op.create_index("ix_relationships_parent", "account_relationships", ["parent_id"])
    op.create_index("ix_relationships_child", "account_relationships", ["child_id"])


def downgrade() -> None:
    op.drop_index("ix_relationships_child", table_name="account_relationships")
    op.drop_index("ix_relationships_parent", table_name="account_relationships")
    op.drop_table("account_relationships")
    op.drop_index("ix_accounts_status", table_name="accounts")
    op.drop_table("accounts")
