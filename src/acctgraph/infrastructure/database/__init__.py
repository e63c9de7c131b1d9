"""SQLite database engine and schema via SQLAlchemy Core."""

from acctgraph.infrastructure.database.engine import create_db_engine, db_path_for, init_database
from acctgraph.infrastructure.database.schema import account_relationships, accounts, metadata

__all__ = [
    "account_relationships",
    "accounts",
    "create_db_engine",
    "db_path_for",
    "init_database",
    "metadata",
]
