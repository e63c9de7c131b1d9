"""Shared pytest fixtures and test helpers for acctgraph tests."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from acctgraph.config.settings import AcgSettings
from acctgraph.infrastructure.database.engine import init_database
from acctgraph.infrastructure.registry import Registry


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep ACCTGRAPH_* variables from the host out of every test."""
    for key in list(os.environ):
        if key.startswith("ACCTGRAPH_"):
            monkeypatch.delenv(key)


@pytest.fixture(autouse=True)
def _reset_telemetry() -> Iterator[None]:
    """``-v`` invocations enable spans and DEBUG logging process-wide."""
    yield
    from acctgraph.services.telemetry import disable_telemetry

    disable_telemetry()
    logging.getLogger("acctgraph").setLevel(logging.WARNING)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_engine(tmp_path: Path) -> Iterator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def registry(tmp_path: Path) -> Iterator[Registry]:
    """Fully initialized registry on a temp workspace."""
    reg = Registry(AcgSettings(workspace_root=tmp_path))
    try:
        yield reg
    finally:
        reg.close()


@pytest.fixture
def _isolated_workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp workspace so the CLI opens an isolated database.

    Use via ``@pytest.mark.usefixtures("_isolated_workspace")`` on command
    test classes.
    """
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Shared test helpers (used across service test modules)
# ---------------------------------------------------------------------------


def create_account(registry: Registry, name: str, **kwargs: Any) -> dict[str, Any]:
    """Create an account via AccountService, asserting success."""
    from acctgraph.services.accounts import AccountService

    result = AccountService(registry).create_account(name, **kwargs)
    assert result.ok, result.error
    return result.data


def link(registry: Registry, parent_id: str, child_id: str, **kwargs: Any) -> dict[str, Any]:
    """Add ``parent -> child`` via RelationshipService, asserting success."""
    from acctgraph.services.relationships import RelationshipService

    result = RelationshipService(registry).add_relationship(parent_id, child_id, **kwargs)
    assert result.ok, result.error
    return result.data["relationship"]


def chain(registry: Registry, *names: str) -> list[str]:
    """Create accounts and link them ``names[0] -> names[1] -> ...``."""
    ids = [create_account(registry, name)["id"] for name in names]
    for parent_id, child_id in zip(ids, ids[1:], strict=False):
        link(registry, parent_id, child_id)
    return ids
