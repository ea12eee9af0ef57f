"""
Exceptions raised by the ID allocators.

Duplicate-key conflicts are handled inside the allocators and never reach
callers. What does reach them is either a configuration defect or, when a
retry ceiling is set, contention that did not subside.
"""

from shrub.core.errors import ShrubError


class IdError(ShrubError):
    """Base class for ID allocation errors."""


class AllocatorConfigurationError(IdError):
    """
    The allocator is missing configuration it needs.

    Raised for a missing check field when a rejected insert can only be
    resolved through one, a missing name field on a magic-name allocator,
    or an entity whose key type does not fit the allocator. Never retried.
    """


class AllocationExhaustedError(IdError):
    """Exception raised when an insert-retry loop hits its attempt ceiling."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class IdTakenError(IdError):
    """
    Exception raised when a caller-chosen ID already belongs to another instance.

    An allocated ID can be moved on to the next free one; an ID the caller
    supplied cannot, so the conflict is reported instead.
    """

    def __init__(self, message: str, entity_id: object = None):
        super().__init__(message)
        self.entity_id = entity_id
