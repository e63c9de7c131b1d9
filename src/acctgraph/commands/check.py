"""Command: relationship graph integrity report."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from acctgraph.commands._base import AcgCommand

if TYPE_CHECKING:
    from acctgraph.commands._context import AppContext


@click.command(
    cls=AcgCommand,
    examples="""\
  acctgraph check
  acctgraph -v check
  acctgraph --json check""",
)
@click.pass_obj
def check(app: AppContext) -> None:
    """Report cycles, dangling edges and other integrity issues."""
    from acctgraph.services.check import CheckService

    app.emit(CheckService(app.registry).check())
