"""AccountStore: the entity store the relationship graph resolves against.

The graph engine only needs ``exists`` and ``get``/``find``; the rest
backs the account commands. Methods accept an optional connection so a
delete can join the relationship store's transaction.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, insert, select

from acctgraph.domain.clock import now_iso
from acctgraph.domain.errors import NotFoundError
from acctgraph.domain.ids import new_id
from acctgraph.domain.models import Account, AccountPage
from acctgraph.domain.types import AccountStatus, AccountType
from acctgraph.infrastructure.database.schema import accounts

if TYPE_CHECKING:
    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine


def _row_to_account(row: Any) -> Account:
    return Account(
        id=row.id,
        name=row.name,
        type=AccountType(row.type),
        status=AccountStatus(row.status),
        industry=row.industry,
        created_by=row.created_by,
        created_at=row.created_at,
        updated_by=row.updated_by,
        updated_at=row.updated_at,
    )


class AccountStore:
    """SQL-backed lookup and CRUD for account records."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @contextmanager
    def _connect(self, conn: Connection | None) -> Iterator[Connection]:
        if conn is not None:
            yield conn
            return
        with self._engine.begin() as own:
            yield own

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def exists(self, account_id: str, *, conn: Connection | None = None) -> bool:
        with self._connect(conn) as c:
            row = c.execute(select(accounts.c.id).where(accounts.c.id == account_id)).first()
        return row is not None

    def find(self, account_id: str, *, conn: Connection | None = None) -> Account | None:
        """Return the account, or None if it does not exist."""
        with self._connect(conn) as c:
            row = c.execute(select(accounts).where(accounts.c.id == account_id)).first()
        return _row_to_account(row) if row is not None else None

    def get(self, account_id: str, *, conn: Connection | None = None) -> Account:
        """Return the account or raise :class:`NotFoundError`."""
        account = self.find(account_id, conn=conn)
        if account is None:
            raise NotFoundError(f"Account with ID {account_id} not found", account_id=account_id)
        return account

    def get_many(self, account_ids: Sequence[str]) -> list[Account]:
        """Resolve ids in the given order, silently skipping missing ones."""
        if not account_ids:
            return []
        with self._engine.connect() as conn:
            rows = conn.execute(select(accounts).where(accounts.c.id.in_(set(account_ids))))
            by_id = {row.id: _row_to_account(row) for row in rows}
        return [by_id[aid] for aid in account_ids if aid in by_id]

    def list_page(self, page: int, page_size: int) -> AccountPage:
        with self._engine.connect() as conn:
            total = conn.execute(select(func.count()).select_from(accounts)).scalar_one()
            rows = conn.execute(
                select(accounts)
                .order_by(accounts.c.created_at, accounts.c.id)
                .limit(page_size)
                .offset((page - 1) * page_size)
            ).fetchall()
        return AccountPage(
            items=[_row_to_account(r) for r in rows],
            total=total,
            page=page,
            page_size=page_size,
            total_pages=-(-total // page_size),
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(
        self,
        name: str,
        *,
        account_type: AccountType = AccountType.CUSTOMER,
        status: AccountStatus = AccountStatus.ACTIVE,
        industry: str | None = None,
        actor_id: str = "system",
        account_id: str | None = None,
    ) -> Account:
        now = now_iso()
        account = Account(
            id=account_id or new_id(),
            name=name,
            type=account_type,
            status=status,
            industry=industry,
            created_by=actor_id,
            created_at=now,
            updated_by=actor_id,
            updated_at=now,
        )
        with self._engine.begin() as conn:
            conn.execute(insert(accounts).values(**account.model_dump(mode="json")))
        return account

    def delete(self, account_id: str, *, conn: Connection | None = None) -> None:
        with self._connect(conn) as c:
            result = c.execute(delete(accounts).where(accounts.c.id == account_id))
        if result.rowcount == 0:
            raise NotFoundError(f"Account with ID {account_id} not found", account_id=account_id)
