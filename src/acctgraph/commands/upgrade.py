"""Command: database schema migration."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from acctgraph.commands._base import AcgCommand

if TYPE_CHECKING:
    from acctgraph.commands._context import AppContext


@click.command(
    cls=AcgCommand,
    examples="""\
  acctgraph upgrade
  acctgraph upgrade --check
  acctgraph --json upgrade --check""",
)
@click.option(
    "--check", "check_only", is_flag=True, help="Show pending migrations without applying."
)
@click.pass_obj
def upgrade(app: AppContext, check_only: bool) -> None:
    """Run pending database migrations."""
    from acctgraph.services.upgrade import UpgradeService

    svc = UpgradeService(app.registry)
    app.emit(svc.check_pending() if check_only else svc.apply())
