"""Unified settings: CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  (CLI flags passed by Click)
  2. Env vars     (``ACCTGRAPH_*`` prefix, ``__`` for nested sections)
  3. TOML file    (``acctgraph.toml`` discovered via walk-up)
  4. Code defaults baked into the section models
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from acctgraph.config.discovery import find_config
from acctgraph.config.models import (
    AuditConfig,
    CacheConfig,
    CheckConfig,
    HierarchyConfig,
    PaginationConfig,
    WorkspaceConfig,
)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from an ``acctgraph.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            try:
                self._data = tomllib.loads(toml_path.read_text(encoding="utf-8"))
            except tomllib.TOMLDecodeError as exc:
                raise click.ClickException(f"Invalid TOML in {toml_path}: {exc}") from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# The TOML path has to reach settings_customise_sources, which is a
# classmethod invoked from inside BaseSettings.__init__.
_tls = threading.local()


class AcgSettings(BaseSettings):
    """Unified settings for the acctgraph CLI and services.

    Attributes:
        workspace_root: Directory holding ``.acctgraph/`` (parent of
            ``acctgraph.toml``, or CWD if no config was found).
        config_path: The TOML file actually loaded, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "ACCTGRAPH_",
        "env_nested_delimiter": "__",
    }

    workspace_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    hierarchy: HierarchyConfig = Field(default_factory=HierarchyConfig)
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    check: CheckConfig = Field(default_factory=CheckConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert the TOML source between env vars and defaults."""
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, getattr(_tls, "toml_path", None)),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        workspace_root: Path | None = None,
        **cli_flags: Any,
    ) -> AcgSettings:
        """Construct settings for a CLI invocation.

        Discovers ``acctgraph.toml`` via walk-up (or explicit
        *config_path*), resolves *workspace_root* from the config file's
        directory, and applies CLI flags as highest-priority overrides.
        """
        toml_path: Path | None
        if config_path:
            p = Path(config_path)
            toml_path = p if p.is_file() else None
        else:
            toml_path = find_config(workspace_root)

        resolved_root = workspace_root
        if resolved_root is None:
            resolved_root = toml_path.parent if toml_path else Path.cwd()

        _tls.toml_path = toml_path
        try:
            return cls(workspace_root=resolved_root, config_path=toml_path, **cli_flags)
        finally:
            _tls.toml_path = None
