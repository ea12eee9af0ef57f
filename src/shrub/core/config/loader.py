"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from shrub.core.config.models import ShrubConfig

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per session
_config_cache: ShrubConfig | None = None

_FALSE_VALUES = ("false", "0", "no", "off", "")


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """Path to ~/.config/shrub/config.json (or XDG equivalent)."""
    return get_xdg_config_home() / "shrub" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """Path to .shrub.json in the project directory (defaults to cwd)."""
    return (cwd or Path.cwd()) / ".shrub.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence; nested dicts are merged, not
    replaced.

    Example:
        >>> deep_merge({"ids": {"exclusive": False, "counter_start": 5}},
        ...            {"ids": {"exclusive": True}})
        {'ids': {'exclusive': True, 'counter_start': 5}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON object from a file.

    Returns:
        Parsed JSON as dict, or None if the file is missing, unreadable or
        not a JSON object
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring config at %s: expected a JSON object", path)
        return None
    return data


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Supported env vars:
        SHRUB_DB - overrides database.path
        SHRUB_EXCLUSIVE - overrides ids.exclusive
        SHRUB_MAX_ATTEMPTS - overrides ids.max_attempts ("0" or "none" for no limit)
        SHRUB_LOG_LEVEL - overrides logging.level
    """
    result = config_dict.copy()

    def section(name: str) -> dict[str, Any]:
        result[name] = dict(result.get(name) or {})
        return result[name]

    if db_path := os.environ.get("SHRUB_DB"):
        section("database")["path"] = db_path

    if (exclusive_str := os.environ.get("SHRUB_EXCLUSIVE")) is not None:
        section("ids")["exclusive"] = exclusive_str.strip().lower() not in _FALSE_VALUES

    if attempts_str := os.environ.get("SHRUB_MAX_ATTEMPTS"):
        value = attempts_str.strip().lower()
        if value in ("0", "none"):
            section("ids")["max_attempts"] = None
        else:
            try:
                attempts = int(value)
            except ValueError:
                logger.warning("Invalid SHRUB_MAX_ATTEMPTS value '%s', ignoring", attempts_str)
            else:
                if attempts < 0:
                    logger.warning("SHRUB_MAX_ATTEMPTS must be >= 0, got %d, ignoring", attempts)
                else:
                    section("ids")["max_attempts"] = attempts

    if level := os.environ.get("SHRUB_LOG_LEVEL"):
        section("logging")["level"] = level

    return result


def get_default_config() -> dict[str, Any]:
    """Hardcoded default configuration."""
    return {
        "database": {"path": ".shrub/shrub.db", "timeout": 30.0},
        "ids": {"exclusive": False, "max_attempts": 1000, "counter_start": 1},
        "logging": {"level": "WARNING"},
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> ShrubConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (SHRUB_*)
        2. Project config (.shrub.json)
        3. User config (~/.config/shrub/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project directory to load .shrub.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = ShrubConfig(**merged)
    _config_cache = config
    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
