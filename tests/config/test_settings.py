"""Tests for AcgSettings: CLI flags, env vars and TOML in one object."""

from __future__ import annotations

from pathlib import Path

import click
import pytest

from acctgraph.config.discovery import CONFIG_ENV_VAR, find_config, load_config
from acctgraph.config.settings import AcgSettings


class TestDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        settings = AcgSettings.from_cli(workspace_root=tmp_path)
        assert settings.workspace_root == tmp_path
        assert settings.config_path is None
        assert settings.json_output is False
        assert settings.cache.enabled is True
        assert settings.cache.relationship_ttl == 300
        assert settings.hierarchy.default_depth == 3
        assert settings.pagination.default_page_size == 10
        assert settings.audit.default_actor == "system"

    def test_frozen(self, tmp_path: Path) -> None:
        settings = AcgSettings.from_cli(workspace_root=tmp_path)
        with pytest.raises(Exception):
            settings.quiet = True  # type: ignore[misc]


class TestTomlSource:
    def test_sparse_override(self, tmp_path: Path) -> None:
        (tmp_path / "acctgraph.toml").write_text("[cache]\nlist_ttl = 30\n")
        settings = AcgSettings.from_cli(workspace_root=tmp_path)
        assert settings.cache.list_ttl == 30
        assert settings.cache.relationship_ttl == 300
        assert settings.config_path == tmp_path / "acctgraph.toml"

    def test_workspace_root_from_config_dir(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "acctgraph.toml").write_text('[workspace]\nname = "crm"\n')
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        settings = AcgSettings.from_cli()
        assert settings.workspace_root == tmp_path.resolve()
        assert settings.workspace.name == "crm"

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        custom = tmp_path / "conf" / "mine.toml"
        custom.parent.mkdir()
        custom.write_text("[hierarchy]\ndefault_depth = 5\n")
        settings = AcgSettings.from_cli(config_path=str(custom), workspace_root=tmp_path)
        assert settings.hierarchy.default_depth == 5

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "acctgraph.toml").write_text("[cache\n")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            AcgSettings.from_cli(workspace_root=tmp_path)

    def test_out_of_range_depth_rejected(self, tmp_path: Path) -> None:
        (tmp_path / "acctgraph.toml").write_text("[hierarchy]\ndefault_depth = 9\n")
        with pytest.raises(Exception):
            AcgSettings.from_cli(workspace_root=tmp_path)


class TestPriority:
    def test_env_over_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "acctgraph.toml").write_text("[cache]\nenabled = true\n")
        monkeypatch.setenv("ACCTGRAPH_CACHE__ENABLED", "false")
        settings = AcgSettings.from_cli(workspace_root=tmp_path)
        assert settings.cache.enabled is False

    def test_cli_over_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ACCTGRAPH_QUIET", "true")
        settings = AcgSettings.from_cli(workspace_root=tmp_path, quiet=False)
        assert settings.quiet is False


class TestDiscovery:
    def test_walk_up(self, tmp_path: Path) -> None:
        (tmp_path / "acctgraph.toml").write_text("")
        nested = tmp_path / "x" / "y"
        nested.mkdir(parents=True)
        assert find_config(nested) == (tmp_path / "acctgraph.toml").resolve()

    def test_env_var_wins(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        other = tmp_path / "other.toml"
        other.write_text("")
        (tmp_path / "acctgraph.toml").write_text("")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(other))
        assert find_config(tmp_path) == other

    def test_env_var_missing_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "nope.toml"))
        assert find_config(tmp_path) is None

    def test_load_config_defaults(self, tmp_path: Path) -> None:
        config = load_config(cwd=tmp_path)
        assert config.pagination.max_page_size == 100

    def test_load_config_file(self, tmp_path: Path) -> None:
        path = tmp_path / "acctgraph.toml"
        path.write_text('[audit]\ndefault_actor = "importer"\n')
        assert load_config(path).audit.default_actor == "importer"
