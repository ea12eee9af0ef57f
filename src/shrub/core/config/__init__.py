"""
Configuration models and loading.

Pydantic models for shrub configuration with multi-layer merging:
defaults < user < project < env vars.
"""

from shrub.core.config.env import load_layered_env
from shrub.core.config.loader import (
    clear_cache,
    get_project_config_path,
    get_user_config_path,
    get_xdg_config_home,
    load_config,
)
from shrub.core.config.models import DatabaseConfig, IdConfig, LoggingConfig, ShrubConfig

__all__ = [
    # Models
    "DatabaseConfig",
    "IdConfig",
    "LoggingConfig",
    "ShrubConfig",
    # Loader functions
    "clear_cache",
    "get_project_config_path",
    "get_user_config_path",
    "get_xdg_config_home",
    "load_config",
    "load_layered_env",
]
