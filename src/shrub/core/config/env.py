"""Environment file loading.

SHRUB_* settings can live in .env files as well as in the shell. Files are
layered so that:

  os.environ (pre-existing) > project .env/.env.local > user .env

A file value never replaces a variable that was already exported.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from dotenv import dotenv_values

logger = logging.getLogger(__name__)


def get_user_env_path() -> Path:
    xdg_home = Path(os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config")))
    return xdg_home / "shrub" / ".env"


def read_env_file(path: Path) -> dict[str, str]:
    """Return the assignments in an env file, skipping bare keys."""
    if not path.is_file():
        return {}
    return {str(k): str(v) for k, v in dotenv_values(path).items() if k and v is not None}


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> list[Path]:
    """Copy variables from user and project env files into os.environ.

    Args:
        project_dir: base directory for project env paths (defaults to cwd)
        user_env_paths: explicit user env file paths
        project_env_paths: explicit project env file paths

    Returns:
        The env files that contributed at least one variable
    """
    project_dir = project_dir or Path.cwd()
    if user_env_paths is None:
        user_env_paths = [get_user_env_path()]
    if project_env_paths is None:
        project_env_paths = [project_dir / ".env", project_dir / ".env.local"]

    exported = set(os.environ)
    loaded: list[Path] = []
    for path in [*map(Path, user_env_paths), *map(Path, project_env_paths)]:
        values = {k: v for k, v in read_env_file(path).items() if k not in exported}
        if values:
            os.environ.update(values)
            loaded.append(path)
            logger.debug("Loaded %d variables from %s", len(values), path)
    return loaded
