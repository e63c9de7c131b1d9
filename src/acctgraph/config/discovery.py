"""Config file discovery and loading.

Walk-up finder locates acctgraph.toml, similar to how git finds .git/.
Supports ACCTGRAPH_CONFIG env var and --config CLI flag overrides.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from acctgraph.config.models import AcgConfig

CONFIG_FILENAME = "acctgraph.toml"
CONFIG_ENV_VAR = "ACCTGRAPH_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for acctgraph.toml.

    ACCTGRAPH_CONFIG wins when set; a path that does not exist yields None
    rather than falling back to the walk.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        return p if p.is_file() else None

    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Path | None = None, cwd: Path | None = None) -> AcgConfig:
    """Load and validate the section models from a TOML file.

    Returns defaults when no file is found.
    """
    if path is None:
        path = find_config(cwd)
    if path is None:
        return AcgConfig()

    data: dict[str, Any] = tomllib.loads(path.read_text(encoding="utf-8"))
    return AcgConfig.model_validate(data)
