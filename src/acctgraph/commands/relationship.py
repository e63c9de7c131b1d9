"""Command group: relationship edges and hierarchy queries.

Every subcommand goes through :class:`CachedRelationshipService`, so
reads within one invocation are served from the cache after the first
and mutations invalidate before they report.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from acctgraph.commands._base import AcgGroup
from acctgraph.domain.models import RelationshipChange
from acctgraph.domain.types import RelationshipType

if TYPE_CHECKING:
    from acctgraph.commands._context import AppContext
    from acctgraph.services.cached import CachedRelationshipService

_TYPE_CHOICE = click.Choice([t.value for t in RelationshipType], case_sensitive=False)

_REL_EXAMPLES = """\
  acctgraph rel add PARENT_ID CHILD_ID
  acctgraph rel add CHILD_ID PARENT_ID --target-is-parent
  acctgraph rel update OWNER --add CHILD:SUBSIDIARY --add PARENT:PARTNER:parent
  acctgraph rel remove OWNER EDGE_ID
  acctgraph rel show OWNER
  acctgraph rel hierarchy OWNER --depth 4
  acctgraph rel check PARENT_ID CHILD_ID"""


def _service(app: AppContext) -> CachedRelationshipService:
    from acctgraph.services.cached import CachedRelationshipService

    return CachedRelationshipService(app.registry)


def _parse_change(value: str) -> RelationshipChange:
    """Parse ``TARGET[:TYPE[:parent]]`` into a :class:`RelationshipChange`."""
    parts = value.split(":")
    if not parts[0] or len(parts) > 3:
        raise click.BadParameter(f"expected TARGET[:TYPE[:parent]], got '{value}'")
    rel_type = RelationshipType.PARENT_CHILD
    if len(parts) > 1 and parts[1]:
        try:
            rel_type = RelationshipType(parts[1].upper())
        except ValueError:
            raise click.BadParameter(f"unknown relationship type '{parts[1]}'") from None
    target_is_parent = False
    if len(parts) == 3:
        if parts[2].lower() != "parent":
            raise click.BadParameter(f"third field must be 'parent', got '{parts[2]}'")
        target_is_parent = True
    return RelationshipChange(
        target_id=parts[0], relationship_type=rel_type, target_is_parent=target_is_parent
    )


@click.group(cls=AcgGroup, examples=_REL_EXAMPLES)
def rel() -> None:
    """Manage parent/child relationships between accounts."""


@rel.command(
    examples="""\
  acctgraph rel add PARENT_ID CHILD_ID
  acctgraph rel add PARENT_ID CHILD_ID --type subsidiary
  acctgraph rel add CHILD_ID PARENT_ID --target-is-parent"""
)
@click.argument("owner_id")
@click.argument("target_id")
@click.option(
    "--type",
    "relationship_type",
    default=RelationshipType.PARENT_CHILD.value,
    type=_TYPE_CHOICE,
    help="Relationship type tag.",
)
@click.option(
    "--target-is-parent",
    is_flag=True,
    help="Make TARGET the parent of OWNER (default: OWNER is the parent).",
)
@click.option("--actor", "actor_id", default=None, help="Audit actor id.")
@click.pass_obj
def add(
    app: AppContext,
    owner_id: str,
    target_id: str,
    relationship_type: str,
    target_is_parent: bool,
    actor_id: str | None,
) -> None:
    """Add an edge between OWNER and TARGET (rejected if it closes a loop)."""
    app.emit(
        _service(app).add_relationship(
            owner_id,
            target_id,
            relationship_type,
            target_is_parent=target_is_parent,
            actor_id=actor_id,
        )
    )


@rel.command(
    examples="""\
  acctgraph rel remove OWNER_ID EDGE_ID"""
)
@click.argument("owner_id")
@click.argument("edge_id")
@click.option("--actor", "actor_id", default=None, help="Audit actor id.")
@click.pass_obj
def remove(app: AppContext, owner_id: str, edge_id: str, actor_id: str | None) -> None:
    """Remove one edge touching OWNER."""
    app.emit(_service(app).remove_relationship(owner_id, edge_id, actor_id=actor_id))


@rel.command(
    examples="""\
  acctgraph rel update OWNER --add CHILD_ID
  acctgraph rel update OWNER --add PARENT_ID:PARTNER:parent --remove EDGE_ID"""
)
@click.argument("owner_id")
@click.option(
    "--add",
    "additions",
    multiple=True,
    help="TARGET[:TYPE[:parent]] to link (repeatable).",
)
@click.option("--remove", "removals", multiple=True, help="Edge id to remove (repeatable).")
@click.option("--actor", "actor_id", default=None, help="Audit actor id.")
@click.pass_obj
def update(
    app: AppContext,
    owner_id: str,
    additions: tuple[str, ...],
    removals: tuple[str, ...],
    actor_id: str | None,
) -> None:
    """Apply several additions and removals as one atomic batch."""
    changes = [_parse_change(value) for value in additions]
    app.emit(
        _service(app).update_relationships(
            owner_id, add=changes, remove=list(removals), actor_id=actor_id
        )
    )


@rel.command(
    examples="""\
  acctgraph rel show ACCOUNT_ID
  acctgraph --json rel show ACCOUNT_ID"""
)
@click.argument("account_id")
@click.pass_obj
def show(app: AppContext, account_id: str) -> None:
    """Show the direct parent and child edges of an account."""
    app.emit(_service(app).get_relationships(account_id))


@rel.command(
    examples="""\
  acctgraph rel parents ACCOUNT_ID
  acctgraph rel parents ACCOUNT_ID --page 2 --page-size 5"""
)
@click.argument("account_id")
@click.option("--page", default=1, type=int, help="1-based page number.")
@click.option("--page-size", default=None, type=int, help="Accounts per page.")
@click.pass_obj
def parents(app: AppContext, account_id: str, page: int, page_size: int | None) -> None:
    """List the direct parent accounts."""
    app.emit(_service(app).get_ancestors(account_id, page=page, page_size=page_size))


@rel.command(
    examples="""\
  acctgraph rel children ACCOUNT_ID
  acctgraph rel children ACCOUNT_ID --page-size 50"""
)
@click.argument("account_id")
@click.option("--page", default=1, type=int, help="1-based page number.")
@click.option("--page-size", default=None, type=int, help="Accounts per page.")
@click.pass_obj
def children(app: AppContext, account_id: str, page: int, page_size: int | None) -> None:
    """List the direct child accounts."""
    app.emit(_service(app).get_descendants(account_id, page=page, page_size=page_size))


@rel.command(
    examples="""\
  acctgraph rel hierarchy ACCOUNT_ID
  acctgraph rel hierarchy ACCOUNT_ID --depth 5
  acctgraph --json rel hierarchy ACCOUNT_ID"""
)
@click.argument("account_id")
@click.option("--depth", default=None, type=int, help="Levels in each direction (1-5).")
@click.pass_obj
def hierarchy(app: AppContext, account_id: str, depth: int | None) -> None:
    """Show ancestors and descendants as a tree."""
    app.emit(_service(app).get_hierarchy(account_id, depth))


@rel.command(
    "check",
    examples="""\
  acctgraph rel check PARENT_ID CHILD_ID
  acctgraph -q rel check PARENT_ID CHILD_ID""",
)
@click.argument("parent_id")
@click.argument("child_id")
@click.pass_obj
def check_cmd(app: AppContext, parent_id: str, child_id: str) -> None:
    """Would PARENT -> CHILD create a circular reference?"""
    app.emit(_service(app).check_circular(parent_id, child_id))
