"""Database engine setup for SQLite with WAL mode.

The DB is stored at ``{workspace_root}/.acctgraph/acctgraph.db``.
SQLAlchemy Core (not ORM) is used: the stores keep their own in-memory
indices, so an identity map would only duplicate them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from acctgraph.infrastructure.database.schema import metadata

DATA_DIR = ".acctgraph"
DB_FILENAME = "acctgraph.db"


def db_path_for(workspace_root: Path) -> Path:
    """Location of the database file for a workspace."""
    return workspace_root / DATA_DIR / DB_FILENAME


def create_db_engine(db_path: Path) -> Engine:
    """Create a SQLite engine with WAL mode and foreign keys enabled."""
    engine = create_engine(f"sqlite:///{db_path}", echo=False)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def init_database(workspace_root: Path) -> Engine:
    """Initialize the database under ``{workspace_root}/.acctgraph/``.

    Creates the data directory, the ``backups/`` directory, and all
    tables from :data:`schema.metadata`. Idempotent, safe to call on an
    existing workspace.
    """
    data_dir = workspace_root / DATA_DIR
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / "backups").mkdir(exist_ok=True)

    engine = create_db_engine(db_path_for(workspace_root))
    metadata.create_all(engine)
    return engine
