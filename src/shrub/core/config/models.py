"""
Configuration data models for shrub.

These models define the structure of .shrub.json and
~/.config/shrub/config.json files, with validation via Pydantic.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DatabaseConfig(BaseModel):
    """
    Location of the Shrub database and how long to wait on locks.
    """
    path: str = Field(
        default=".shrub/shrub.db",
        description="SQLite database file, relative to the working directory"
    )
    timeout: float = Field(
        default=30.0,
        gt=0.0,
        description="Seconds to wait when another loader holds the write lock"
    )


class IdConfig(BaseModel):
    """
    ID allocation settings.

    Exclusive mode is faster but assumes this loader is the only writer of
    the tables it loads. Leave it off when loaders run side by side.
    """
    exclusive: bool = Field(
        default=False,
        description="Assume no other loader writes the same tables"
    )
    max_attempts: Optional[int] = Field(
        default=1000,
        ge=1,
        description="Insert attempts per ID in shared mode (null for no limit)"
    )
    counter_start: int = Field(
        default=1,
        ge=1,
        description="First counter ID issued for an empty table"
    )

    @field_validator("max_attempts", mode="before")
    @classmethod
    def validate_max_attempts(cls, v: object) -> object:
        """Treat 0 and "none" as no limit."""
        if v == 0 or (isinstance(v, str) and v.strip().lower() in ("0", "none", "")):
            return None
        return v


class LoggingConfig(BaseModel):
    """Log output settings."""
    level: str = Field(
        default="WARNING",
        description="Log level name (DEBUG, INFO, WARNING, ERROR)"
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


class ShrubConfig(BaseModel):
    """
    Top-level shrub configuration.

    Loaded from defaults, user config, project config, and env vars.

    Example:
        >>> config = ShrubConfig(ids=IdConfig(exclusive=True))
        >>> config.ids.exclusive
        True
        >>> config.database.path
        '.shrub/shrub.db'
    """
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig,
        description="Database location"
    )
    ids: IdConfig = Field(
        default_factory=IdConfig,
        description="ID allocation"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging"
    )

    model_config = ConfigDict(
        extra="allow",  # Allow extra fields for forward compatibility
        validate_assignment=True,
    )
