"""
Value types exchanged with the ERDB storage layer.
"""

from enum import Enum


class DuplicatePolicy(str, Enum):
    """What an insert does when a row with the same unique key exists."""

    IGNORE = "ignore"
    REPLACE = "replace"


class InsertOutcome(str, Enum):
    """
    Result of an insert attempt.

    Hard failures are raised as StorageError, so together with the two
    values here an insert has exactly three possible outcomes.
    """

    INSERTED = "inserted"
    REJECTED = "rejected"

    @property
    def inserted(self) -> bool:
        return self is InsertOutcome.INSERTED
