"""Tests for the rel command group."""

from __future__ import annotations

import json
from typing import Any

import pytest
from click.testing import CliRunner

from acctgraph.cli import cli
from acctgraph.commands.relationship import _parse_change
from acctgraph.domain.types import RelationshipType


def _create(runner: CliRunner, name: str) -> str:
    result = runner.invoke(cli, ["--json", "account", "create", name])
    assert result.exit_code == 0, result.output
    return json.loads(result.output)["data"]["id"]


def _json(runner: CliRunner, *args: str) -> tuple[int, dict[str, Any]]:
    result = runner.invoke(cli, ["--json", *args])
    return result.exit_code, json.loads(result.output)


class TestParseChange:
    def test_target_only(self) -> None:
        change = _parse_change("abc")
        assert change.target_id == "abc"
        assert change.relationship_type == RelationshipType.PARENT_CHILD
        assert change.target_is_parent is False

    def test_type_and_direction(self) -> None:
        change = _parse_change("abc:partner:parent")
        assert change.relationship_type == RelationshipType.PARTNER
        assert change.target_is_parent is True

    @pytest.mark.parametrize("value", ["", ":PARTNER", "abc:cousin", "abc:PARTNER:child", "a:b:c:d"])
    def test_rejects_malformed(self, value: str) -> None:
        import click

        with pytest.raises(click.BadParameter):
            _parse_change(value)


@pytest.mark.usefixtures("_isolated_workspace")
class TestRelCommands:
    def test_circular_scenario(self, cli_runner: CliRunner) -> None:
        a, b, c = (_create(cli_runner, n) for n in ("A", "B", "C"))
        assert _json(cli_runner, "rel", "add", a, b)[0] == 0
        assert _json(cli_runner, "rel", "add", b, c)[0] == 0

        code, probe = _json(cli_runner, "rel", "check", c, a)
        assert code == 0
        assert probe["data"]["would_create_circular"] is True

        code, failed = _json(cli_runner, "rel", "add", c, a)
        assert code == 1
        assert failed["error"]["code"] == "CIRCULAR_REFERENCE"
        assert failed["error"]["detail"]["path"] == [c, a, b, c]

    def test_target_is_parent_flag(self, cli_runner: CliRunner) -> None:
        a, b = (_create(cli_runner, n) for n in ("A", "B"))
        code, data = _json(cli_runner, "rel", "add", a, b, "--target-is-parent")
        assert code == 0
        assert data["data"]["relationship"]["parent_id"] == b

    def test_show_and_remove(self, cli_runner: CliRunner) -> None:
        a, b = (_create(cli_runner, n) for n in ("A", "B"))
        _, added = _json(cli_runner, "rel", "add", a, b, "--type", "subsidiary")
        edge_id = added["data"]["relationship"]["id"]

        shown = cli_runner.invoke(cli, ["rel", "show", b])
        assert shown.exit_code == 0
        assert "Parents" in shown.output
        assert edge_id in shown.output

        code, removed = _json(cli_runner, "rel", "remove", b, edge_id)
        assert code == 0
        assert removed["data"]["count"] == 0

    def test_update_batch(self, cli_runner: CliRunner) -> None:
        owner, child, parent = (_create(cli_runner, n) for n in ("O", "C", "P"))
        code, data = _json(
            cli_runner,
            "rel",
            "update",
            owner,
            "--add",
            child,
            "--add",
            f"{parent}:affiliate:parent",
        )
        assert code == 0, data
        assert len(data["data"]["added"]) == 2
        assert data["data"]["count"] == 2

    def test_update_requires_changes(self, cli_runner: CliRunner) -> None:
        owner = _create(cli_runner, "O")
        code, data = _json(cli_runner, "rel", "update", owner)
        assert code == 1
        assert data["error"]["code"] == "INVALID_OPERATION"

    def test_update_bad_add_spec(self, cli_runner: CliRunner) -> None:
        owner = _create(cli_runner, "O")
        result = cli_runner.invoke(cli, ["rel", "update", owner, "--add", "x:cousin"])
        assert result.exit_code != 0

    def test_parents_and_children(self, cli_runner: CliRunner) -> None:
        a, b = (_create(cli_runner, n) for n in ("A", "B"))
        cli_runner.invoke(cli, ["rel", "add", a, b])
        assert _json(cli_runner, "rel", "parents", b)[1]["data"]["items"][0]["id"] == a
        assert _json(cli_runner, "rel", "children", a)[1]["data"]["items"][0]["id"] == b

        quiet = cli_runner.invoke(cli, ["-q", "rel", "children", a])
        assert quiet.output.strip() == b

    def test_hierarchy(self, cli_runner: CliRunner) -> None:
        a, b = (_create(cli_runner, n) for n in ("Alpha", "Beta"))
        cli_runner.invoke(cli, ["rel", "add", a, b])
        result = cli_runner.invoke(cli, ["rel", "hierarchy", a, "--depth", "2"])
        assert result.exit_code == 0
        assert "Alpha" in result.output
        assert "Beta" in result.output

    def test_hierarchy_bad_depth(self, cli_runner: CliRunner) -> None:
        a = _create(cli_runner, "A")
        code, data = _json(cli_runner, "rel", "hierarchy", a, "--depth", "9")
        assert code == 1
        assert data["error"]["code"] == "INVALID_OPERATION"

    def test_verbose_includes_telemetry(self, cli_runner: CliRunner) -> None:
        a, b = (_create(cli_runner, n) for n in ("A", "B"))
        result = cli_runner.invoke(cli, ["-v", "rel", "add", a, b])
        assert result.exit_code == 0
        assert "meta:" in result.output
        assert "RelationshipService.add_relationship" in result.output


@pytest.mark.usefixtures("_isolated_workspace")
class TestMaintenanceCommands:
    def test_check_clean(self, cli_runner: CliRunner) -> None:
        code, data = _json(cli_runner, "check")
        assert code == 0
        assert data["data"]["healthy"] is True

    def test_upgrade_check_then_apply(self, cli_runner: CliRunner) -> None:
        code, pending = _json(cli_runner, "upgrade", "--check")
        assert code == 0
        assert pending["data"]["pending_count"] == 1

        code, applied = _json(cli_runner, "upgrade")
        assert code == 0
        assert applied["data"]["current"] == "001_baseline"
