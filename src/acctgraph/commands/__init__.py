"""Subcommand modules for acctgraph.

``register_commands()`` imports command modules only when called, keeping
``acctgraph --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Attach the command groups and standalone commands to the root group."""
    from acctgraph.commands.account import account
    from acctgraph.commands.relationship import rel

    cli.add_command(account)
    cli.add_command(rel)

    from acctgraph.commands.check import check
    from acctgraph.commands.upgrade import upgrade

    cli.add_command(check)
    cli.add_command(upgrade)
