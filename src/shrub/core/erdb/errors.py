"""
Exceptions raised by the ERDB storage layer.

A rejected duplicate is not an error: `ERDB.insert` reports it as
`InsertOutcome.REJECTED`. Everything here is a hard failure that callers
must not mistake for a duplicate.
"""

from shrub.core.errors import ShrubError


class StorageError(ShrubError):
    """The database failed for a reason other than a duplicate key."""


class SchemaError(StorageError):
    """A table or field name is not part of the Shrub schema."""


class MissingFieldError(StorageError):
    """An insert omitted a field the table requires."""

    def __init__(self, entity_name: str, missing: list[str]):
        super().__init__(
            f"Insert for {entity_name} failed due to missing fields: {' '.join(missing)}"
        )
        self.entity_name = entity_name
        self.missing = missing
