"""
Magic-name ID model.

A magic name is a mnemonic prefix derived from an entity's name plus an
optional numeric suffix. The first entity with a given prefix gets the bare
prefix; later ones get suffixes starting at 2.

Examples:
    - ThreSynt      first "Threonine synthase"-style role
    - ThreSynt2     second role whose name yields the same prefix
"""

from pydantic import BaseModel, ConfigDict, field_validator


class MagicName(BaseModel):
    """
    Magic name: {prefix}{suffix} → ThreSynt2

    A suffix of None means the bare prefix.
    """

    prefix: str
    suffix: int | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Validate that the prefix is not empty."""
        if not v:
            raise ValueError("Magic name prefix must not be empty")
        return v

    @field_validator("suffix")
    @classmethod
    def validate_suffix(cls, v: int | None) -> int | None:
        """Validate that the suffix is positive."""
        if v is not None and v < 1:
            raise ValueError("Magic name suffix must be positive")
        return v

    @property
    def id(self) -> str:
        return f"{self.prefix}{self.suffix or ''}"

    def next(self) -> "MagicName":
        """The name to try after this one collides: bare → 2, then n → n + 1."""
        return MagicName(prefix=self.prefix, suffix=(self.suffix + 1) if self.suffix else 2)

    def __str__(self) -> str:
        return self.id
