"""Registry: the single dependency injected into every service.

Owns the database engine and everything built on it: the account store,
the relationship store, the query cache and the graph engine. Constructed
once per CLI invocation (or per test) from :class:`AcgSettings`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from acctgraph.infrastructure.accounts import AccountStore
from acctgraph.infrastructure.cache import RelationshipCache, build_cache
from acctgraph.infrastructure.database.engine import init_database
from acctgraph.infrastructure.graph.engine import GraphEngine
from acctgraph.infrastructure.relationships import RelationshipStore

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from acctgraph.config.settings import AcgSettings

logger = logging.getLogger(__name__)


class Registry:
    """Repository root: database, stores, cache and graph for one workspace."""

    def __init__(self, settings: AcgSettings, *, cache: RelationshipCache | None = None) -> None:
        self._settings = settings
        self._engine: Engine = init_database(self.root)
        self._accounts = AccountStore(self._engine)
        self._relationships = RelationshipStore(self._engine, self._accounts)
        self._cache = cache if cache is not None else build_cache(settings.cache)
        self._graph = GraphEngine(self._relationships)
        logger.debug("Opened workspace at %s", self.root)

    @property
    def root(self) -> Path:
        return self._settings.workspace_root

    @property
    def settings(self) -> AcgSettings:
        return self._settings

    @property
    def engine(self) -> Engine:
        """The underlying SQLAlchemy engine (for direct access when needed)."""
        return self._engine

    @property
    def accounts(self) -> AccountStore:
        return self._accounts

    @property
    def relationships(self) -> RelationshipStore:
        return self._relationships

    @property
    def cache(self) -> RelationshipCache:
        return self._cache

    @property
    def graph(self) -> GraphEngine:
        """NetworkX view, rebuilt when the edge set changes."""
        return self._graph

    def close(self) -> None:
        self._engine.dispose()
