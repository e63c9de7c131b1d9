"""UpgradeService: database migration with Alembic.

Pipeline: BACKUP -> MIGRATE (or STAMP) -> VALIDATE -> REPORT
"""

from __future__ import annotations

import logging
from typing import Any

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import inspect

from acctgraph.infrastructure.database.migrations import build_config, db_url_for
from acctgraph.services.base import BaseService
from acctgraph.services.check import CheckService
from acctgraph.services.result import ServiceError, ServiceResult

logger = logging.getLogger(__name__)


class UpgradeService(BaseService):
    """Handles database schema migrations via Alembic."""

    def _config(self) -> Config:
        return build_config(db_url_for(self._registry.root))

    def _tables_exist(self) -> bool:
        """Workspaces created by ``init_database`` have tables but no version row."""
        return "account_relationships" in inspect(self._registry.engine).get_table_names()

    def check_pending(self) -> ServiceResult:
        """List pending migrations without applying."""
        op = "upgrade"
        try:
            script = ScriptDirectory.from_config(self._config())
            head = script.get_current_head()
            with self._registry.engine.connect() as conn:
                current = MigrationContext.configure(conn).get_current_revision()

            pending: list[dict[str, Any]] = []
            rev = script.get_revision(head) if head is not None and current != head else None
            while rev is not None and rev.revision != current:
                pending.append({"revision": rev.revision, "description": rev.doc or ""})
                down = rev.down_revision
                rev = script.get_revision(str(down)) if down is not None else None
        except Exception as exc:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code="CHECK_FAILED", message=f"Failed to check migrations: {exc}"
                ),
            )

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "pending_count": len(pending),
                "pending": pending,
                "current": current,
                "head": head,
            },
        )

    def apply(self) -> ServiceResult:
        """BACKUP -> MIGRATE -> VALIDATE -> REPORT."""
        op = "upgrade"
        warnings: list[str] = []

        check_result = self.check_pending()
        if not check_result.ok:
            return check_result

        pending_count = check_result.data["pending_count"]
        if pending_count == 0:
            return ServiceResult(
                ok=True,
                op=op,
                data={
                    "applied_count": 0,
                    "current": check_result.data["head"],
                    "message": "Database is already up to date",
                },
            )

        checker = CheckService(self._registry)
        try:
            backup_path = checker._backup_db()
        except OSError as exc:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(code="BACKUP_FAILED", message=f"Backup failed: {exc}"),
            )

        stamped = False
        try:
            cfg = self._config()
            if check_result.data["current"] is None and self._tables_exist():
                # Tables were created directly from metadata: record the
                # baseline instead of re-running CREATE TABLE.
                command.stamp(cfg, "head")
                stamped = True
            else:
                command.upgrade(cfg, "head")
        except Exception as exc:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code="MIGRATION_FAILED",
                    message=f"Migration failed: {exc}. Backup at: {backup_path}",
                    detail={"backup_path": str(backup_path)},
                ),
            )

        logger.info("Upgraded database to %s (stamped=%s)", check_result.data["head"], stamped)
        self._registry.relationships.reload()
        integrity = checker.check()
        if integrity.data.get("error_count", 0) > 0:
            warnings.append(
                f"Post-migration integrity check found {integrity.data['error_count']} errors"
            )

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "applied_count": pending_count,
                "stamped": stamped,
                "current": check_result.data["head"],
                "backup_path": str(backup_path),
            },
            warnings=warnings,
        )
