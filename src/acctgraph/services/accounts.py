"""AccountService: account lifecycle around the relationship graph.

Deletion is where the two stores meet: without ``cascade`` an account
with edges is blocked with DEPENDENCY_ERROR; with it, every touching edge
is removed in the same transaction as the account row, so no dangling
edge is ever visible.
"""

from __future__ import annotations

import logging
from enum import StrEnum

from acctgraph.domain.errors import DependencyError, GraphError, InvalidOperationError, NotFoundError
from acctgraph.domain.types import AccountStatus, AccountType
from acctgraph.services.base import BaseService
from acctgraph.services.cached import CachedRelationshipService
from acctgraph.services.contracts import AccountItem, AccountPageData, dump_validated
from acctgraph.services.result import ServiceResult
from acctgraph.services.telemetry import traced

logger = logging.getLogger(__name__)


def _parse_enum[E: StrEnum](enum_cls: type[E], value: E | str, field: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidOperationError(
            f"Unknown {field} '{value}' (expected one of: {allowed})", **{field: value}
        ) from None


class AccountService(BaseService):
    """Create, look up, list and delete accounts."""

    @traced
    def create_account(
        self,
        name: str,
        *,
        account_type: AccountType | str = AccountType.CUSTOMER,
        status: AccountStatus | str = AccountStatus.ACTIVE,
        industry: str | None = None,
        actor_id: str | None = None,
    ) -> ServiceResult:
        op = "create_account"
        try:
            if not name.strip():
                raise InvalidOperationError("Account name must not be empty")
            account = self._registry.accounts.create(
                name.strip(),
                account_type=_parse_enum(AccountType, account_type, "type"),
                status=_parse_enum(AccountStatus, status, "status"),
                industry=industry,
                actor_id=self._actor(actor_id),
            )
        except GraphError as exc:
            return self._failure(op, exc)

        logger.info("Account created %s (%s)", account.id, account.name)
        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(AccountItem, account.model_dump(mode="json")),
        )

    @traced
    def get_account(self, account_id: str) -> ServiceResult:
        op = "get_account"
        try:
            account = self._registry.accounts.get(account_id)
        except GraphError as exc:
            return self._failure(op, exc)
        snapshot = self._registry.relationships.snapshot().snapshot_for(account_id)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                **dump_validated(AccountItem, account.model_dump(mode="json")),
                "parent_count": len(snapshot.parent_relationships),
                "child_count": len(snapshot.child_relationships),
            },
        )

    @traced
    def list_accounts(self, *, page: int = 1, page_size: int | None = None) -> ServiceResult:
        op = "list_accounts"
        cfg = self._registry.settings.pagination
        size = page_size if page_size is not None else cfg.default_page_size
        if page < 1 or not 1 <= size <= cfg.max_page_size:
            return self._failure(
                op,
                InvalidOperationError(
                    f"Page must be >= 1 and page size between 1 and {cfg.max_page_size}",
                    page=page,
                    page_size=size,
                ),
            )
        result = self._registry.accounts.list_page(page, size)
        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(AccountPageData, result.model_dump(mode="json")),
        )

    @traced
    def delete_account(
        self,
        account_id: str,
        *,
        cascade: bool = False,
        actor_id: str | None = None,
    ) -> ServiceResult:
        """Delete an account, optionally cascading to its relationship edges."""
        op = "delete_account"
        try:
            with self._registry.relationships.transaction() as txn:
                if not self._registry.accounts.exists(account_id, conn=txn.conn):
                    raise NotFoundError(
                        f"Account with ID {account_id} not found", account_id=account_id
                    )
                edge_count = len(txn.index.touching(account_id))
                if edge_count and not cascade:
                    raise DependencyError(
                        f"Account {account_id} has {edge_count} relationships; "
                        "remove them first or delete with cascade",
                        account_id=account_id,
                        edge_count=edge_count,
                    )
                removed = txn.remove_all_edges_touching(account_id)
                self._registry.accounts.delete(account_id, conn=txn.conn)
        except GraphError as exc:
            return self._failure(op, exc)

        CachedRelationshipService(self._registry).invalidate_all()
        logger.info(
            "Account deleted %s by %s (%d relationships removed)",
            account_id,
            self._actor(actor_id),
            removed,
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={"id": account_id, "relationships_removed": removed},
        )
