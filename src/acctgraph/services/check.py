"""CheckService: read-only integrity report over the relationship graph.

Four categories, each a list of issue dicts validated by
:class:`~acctgraph.services.contracts.CheckIssue`:

- index consistency: the in-memory edge index vs committed rows
- referential integrity: edges whose endpoints no longer resolve
- structural validation: unknown relationship types, duplicate pairs
- graph health: self-loops and directed cycles (NetworkX view)
"""

from __future__ import annotations

import itertools
import shutil
from pathlib import Path
from typing import TYPE_CHECKING, Any

import networkx as nx
from sqlalchemy import func, select

from acctgraph.domain.clock import now_compact
from acctgraph.domain.types import RelationshipType
from acctgraph.infrastructure.database.engine import DATA_DIR, db_path_for
from acctgraph.infrastructure.database.schema import account_relationships, accounts
from acctgraph.services.base import BaseService
from acctgraph.services.contracts import CheckResultData, dump_validated
from acctgraph.services.result import ServiceResult
from acctgraph.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from sqlalchemy import Connection

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"

CAT_INDEX = "index_consistency"
CAT_REFERENTIAL = "referential_integrity"
CAT_STRUCTURAL = "structural_validation"
CAT_GRAPH = "graph_health"

# Reporting every simple cycle is exponential in the worst case.
MAX_REPORTED_CYCLES = 20

_KNOWN_TYPES = frozenset(t.value for t in RelationshipType)


def _issue(
    category: str,
    severity: str,
    message: str,
    *,
    node_id: str | None = None,
    fix_action: str | None = None,
    **extra: Any,
) -> dict[str, Any]:
    return {
        "category": category,
        "severity": severity,
        "node_id": node_id,
        "message": message,
        "fix_action": fix_action,
        **extra,
    }


class CheckService(BaseService):
    """Handles relationship graph integrity checking."""

    @traced
    def check(self) -> ServiceResult:
        """Report integrity issues without modifying anything."""
        issues: list[dict[str, Any]] = []
        warnings: list[str] = []
        with self._registry.engine.connect() as conn:
            with trace_span("index_consistency"):
                issues.extend(self._check_index_consistency(conn))
            with trace_span("referential_integrity"):
                issues.extend(self._check_referential_integrity(conn))
            with trace_span("structural_validation"):
                structural = self._check_structural_validation(conn)
                issues.extend(structural)

        unreadable = any(i.get("fix_action") == "retype_edge" for i in structural)
        if unreadable:
            warnings.append("Graph health skipped: some edges carry unknown relationship types")
        else:
            with trace_span("graph_health"):
                issues.extend(self._check_graph_health())

        error_count = sum(1 for i in issues if i["severity"] == SEVERITY_ERROR)
        return ServiceResult(
            ok=True,
            op="check",
            data=dump_validated(
                CheckResultData,
                {
                    "issues": issues,
                    "count": len(issues),
                    "error_count": error_count,
                    "warning_count": len(issues) - error_count,
                    "healthy": error_count == 0,
                },
            ),
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Backups (used by UpgradeService before migrating)
    # ------------------------------------------------------------------

    def _backup_db(self) -> Path:
        """Create a timestamped copy of the database file."""
        backup_dir = self._registry.root / DATA_DIR / "backups"
        backup_dir.mkdir(parents=True, exist_ok=True)

        backup_path = backup_dir / f"acctgraph-{now_compact()}.db"
        shutil.copy2(db_path_for(self._registry.root), backup_path)
        self._prune_backups(backup_dir)
        return backup_path

    def _prune_backups(self, backup_dir: Path) -> None:
        """Keep only the newest ``[check] backup_max_count`` backups."""
        keep = self._registry.settings.check.backup_max_count
        backups = sorted(backup_dir.glob("acctgraph-*.db"))
        for old in backups[: max(0, len(backups) - keep)]:
            old.unlink(missing_ok=True)

    # ------------------------------------------------------------------
    # Check categories
    # ------------------------------------------------------------------

    def _check_index_consistency(self, conn: Connection) -> list[dict[str, Any]]:
        """In-memory index and committed rows must hold the same edge ids."""
        db_ids = set(conn.execute(select(account_relationships.c.id)).scalars())
        index_ids = set(self._registry.relationships.snapshot().edges)
        issues = [
            _issue(
                CAT_INDEX,
                SEVERITY_WARNING,
                f"Edge {edge_id} is committed but missing from the in-memory index",
                fix_action="reload_index",
                edge_id=edge_id,
            )
            for edge_id in sorted(db_ids - index_ids)
        ]
        issues.extend(
            _issue(
                CAT_INDEX,
                SEVERITY_WARNING,
                f"Edge {edge_id} is indexed but has no committed row",
                fix_action="reload_index",
                edge_id=edge_id,
            )
            for edge_id in sorted(index_ids - db_ids)
        )
        return issues

    def _check_referential_integrity(self, conn: Connection) -> list[dict[str, Any]]:
        """Every edge endpoint must resolve to an account row."""
        issues: list[dict[str, Any]] = []
        known = set(conn.execute(select(accounts.c.id)).scalars())
        rows = conn.execute(
            select(
                account_relationships.c.id,
                account_relationships.c.parent_id,
                account_relationships.c.child_id,
            )
        ).fetchall()
        for row in rows:
            for role, account_id in (("parent", row.parent_id), ("child", row.child_id)):
                if account_id not in known:
                    issues.append(
                        _issue(
                            CAT_REFERENTIAL,
                            SEVERITY_ERROR,
                            f"Dangling edge {row.id}: {role} account {account_id} does not exist",
                            node_id=account_id,
                            fix_action="remove_dangling_edge",
                            edge_id=row.id,
                        )
                    )
        return issues

    def _check_structural_validation(self, conn: Connection) -> list[dict[str, Any]]:
        """Relationship type values and ordered-pair uniqueness."""
        issues: list[dict[str, Any]] = []
        rows = conn.execute(
            select(account_relationships.c.id, account_relationships.c.relationship_type)
        ).fetchall()
        for row in rows:
            if row.relationship_type not in _KNOWN_TYPES:
                issues.append(
                    _issue(
                        CAT_STRUCTURAL,
                        SEVERITY_ERROR,
                        f"Edge {row.id} has unknown relationship type '{row.relationship_type}'",
                        fix_action="retype_edge",
                        edge_id=row.id,
                    )
                )

        pairs = account_relationships.c.parent_id, account_relationships.c.child_id
        duplicates = conn.execute(
            select(*pairs, func.count().label("n")).group_by(*pairs).having(func.count() > 1)
        ).fetchall()
        for dup in duplicates:
            issues.append(
                _issue(
                    CAT_STRUCTURAL,
                    SEVERITY_ERROR,
                    f"Duplicate relationship {dup.parent_id} -> {dup.child_id} ({dup.n} edges)",
                    node_id=dup.parent_id,
                    fix_action="remove_duplicate_edge",
                )
            )
        return issues

    def _check_graph_health(self) -> list[dict[str, Any]]:
        """Self-loops and directed cycles in the indexed edge set."""
        issues: list[dict[str, Any]] = []
        g = self._registry.graph.graph

        for node, _ in nx.selfloop_edges(g):
            issues.append(
                _issue(
                    CAT_GRAPH,
                    SEVERITY_ERROR,
                    f"Self-referencing relationship: {node} -> {node}",
                    node_id=node,
                    fix_action="remove_self_edge",
                )
            )

        if nx.is_directed_acyclic_graph(g):
            return issues

        loops = (c for c in nx.simple_cycles(g) if len(c) > 1)
        for cycle in itertools.islice(loops, MAX_REPORTED_CYCLES):
            path = [*cycle, cycle[0]]
            issues.append(
                _issue(
                    CAT_GRAPH,
                    SEVERITY_ERROR,
                    "Circular relationship: " + " -> ".join(path),
                    node_id=cycle[0],
                    fix_action="break_cycle",
                    path=path,
                )
            )
        return issues
