"""Tests for the account command group."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from acctgraph.cli import cli


def _create(runner: CliRunner, name: str, *extra: str) -> str:
    result = runner.invoke(cli, ["--json", "account", "create", name, *extra])
    assert result.exit_code == 0, result.output
    return json.loads(result.output)["data"]["id"]


@pytest.mark.usefixtures("_isolated_workspace")
class TestAccountCommands:
    def test_create_json(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["--json", "account", "create", "Acme", "--type", "partner"]
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["ok"] is True
        assert data["data"]["type"] == "PARTNER"

    def test_create_rejects_unknown_type(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["account", "create", "Acme", "--type", "alien"])
        assert result.exit_code == 2

    def test_show(self, cli_runner: CliRunner) -> None:
        account_id = _create(cli_runner, "Acme")
        result = cli_runner.invoke(cli, ["account", "show", account_id])
        assert result.exit_code == 0
        assert "Acme" in result.output

    def test_show_missing(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "account", "show", "ghost"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["error"]["code"] == "NOT_FOUND"

    def test_list_quiet(self, cli_runner: CliRunner) -> None:
        ids = [_create(cli_runner, f"Acct {i}") for i in range(3)]
        result = cli_runner.invoke(cli, ["-q", "account", "list"])
        assert result.exit_code == 0
        assert set(result.output.split()) == set(ids)

    def test_delete_blocked_then_cascade(self, cli_runner: CliRunner) -> None:
        a = _create(cli_runner, "A")
        b = _create(cli_runner, "B")
        assert cli_runner.invoke(cli, ["rel", "add", a, b]).exit_code == 0

        blocked = cli_runner.invoke(cli, ["--json", "account", "delete", b])
        assert blocked.exit_code == 1
        assert json.loads(blocked.output)["error"]["code"] == "DEPENDENCY_ERROR"

        done = cli_runner.invoke(cli, ["--json", "account", "delete", b, "--cascade"])
        assert done.exit_code == 0
        assert json.loads(done.output)["data"]["relationships_removed"] == 1
