"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, acctgraph.toml only contains
overrides. A fresh workspace needs no config file at all.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# --- acctgraph.toml sections ---


class WorkspaceConfig(BaseModel):
    """[workspace] section."""

    model_config = {"frozen": True}

    name: str = "accounts"


class CacheConfig(BaseModel):
    """[cache] section. TTLs are in seconds."""

    model_config = {"frozen": True}

    enabled: bool = True
    relationship_ttl: int = Field(default=300, ge=0)
    list_ttl: int = Field(default=300, ge=0)


class HierarchyConfig(BaseModel):
    """[hierarchy] section."""

    model_config = {"frozen": True}

    default_depth: int = Field(default=3, ge=1, le=5)


class PaginationConfig(BaseModel):
    """[pagination] section."""

    model_config = {"frozen": True}

    default_page_size: int = Field(default=10, ge=1)
    max_page_size: int = Field(default=100, ge=1)


class AuditConfig(BaseModel):
    """[audit] section."""

    model_config = {"frozen": True}

    default_actor: str = "system"


class CheckConfig(BaseModel):
    """[check] section."""

    model_config = {"frozen": True}

    backup_max_count: int = 10


class AcgConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    hierarchy: HierarchyConfig = Field(default_factory=HierarchyConfig)
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    check: CheckConfig = Field(default_factory=CheckConfig)
