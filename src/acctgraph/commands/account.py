"""Command group: account lifecycle."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from acctgraph.commands._base import AcgGroup
from acctgraph.domain.types import AccountStatus, AccountType

if TYPE_CHECKING:
    from acctgraph.commands._context import AppContext

_ACCOUNT_EXAMPLES = """\
  acctgraph account create "Acme Holdings" --type customer
  acctgraph account show 5f0c...
  acctgraph account list --page 2
  acctgraph account delete 5f0c... --cascade"""


@click.group(cls=AcgGroup, examples=_ACCOUNT_EXAMPLES)
def account() -> None:
    """Create, inspect and delete accounts."""


@account.command(
    examples="""\
  acctgraph account create "Acme Holdings"
  acctgraph account create "Acme EU" --type partner --industry Retail
  acctgraph --json account create "Beta" --status pending"""
)
@click.argument("name")
@click.option(
    "--type",
    "account_type",
    default=AccountType.CUSTOMER.value,
    type=click.Choice([t.value for t in AccountType], case_sensitive=False),
    help="Account type.",
)
@click.option(
    "--status",
    default=AccountStatus.ACTIVE.value,
    type=click.Choice([s.value for s in AccountStatus], case_sensitive=False),
    help="Account status.",
)
@click.option("--industry", default=None, help="Free-form industry label.")
@click.option("--actor", "actor_id", default=None, help="Audit actor id.")
@click.pass_obj
def create(
    app: AppContext,
    name: str,
    account_type: str,
    status: str,
    industry: str | None,
    actor_id: str | None,
) -> None:
    """Create an account."""
    from acctgraph.services.accounts import AccountService

    app.emit(
        AccountService(app.registry).create_account(
            name,
            account_type=account_type,
            status=status,
            industry=industry,
            actor_id=actor_id,
        )
    )


@account.command(
    examples="""\
  acctgraph account show 5f0c...
  acctgraph --json account show 5f0c..."""
)
@click.argument("account_id")
@click.pass_obj
def show(app: AppContext, account_id: str) -> None:
    """Show an account with its edge counts."""
    from acctgraph.services.accounts import AccountService

    app.emit(AccountService(app.registry).get_account(account_id))


@account.command(
    "list",
    examples="""\
  acctgraph account list
  acctgraph account list --page 2 --page-size 25""",
)
@click.option("--page", default=1, type=int, help="1-based page number.")
@click.option("--page-size", default=None, type=int, help="Accounts per page.")
@click.pass_obj
def list_cmd(app: AppContext, page: int, page_size: int | None) -> None:
    """List accounts, oldest first."""
    from acctgraph.services.accounts import AccountService

    app.emit(AccountService(app.registry).list_accounts(page=page, page_size=page_size))


@account.command(
    examples="""\
  acctgraph account delete 5f0c...
  acctgraph account delete 5f0c... --cascade"""
)
@click.argument("account_id")
@click.option("--cascade", is_flag=True, help="Also remove every relationship edge.")
@click.option("--actor", "actor_id", default=None, help="Audit actor id.")
@click.pass_obj
def delete(app: AppContext, account_id: str, cascade: bool, actor_id: str | None) -> None:
    """Delete an account (blocked while it has edges unless --cascade)."""
    from acctgraph.services.accounts import AccountService

    app.emit(
        AccountService(app.registry).delete_account(
            account_id, cascade=cascade, actor_id=actor_id
        )
    )
