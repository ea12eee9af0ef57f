"""
ID reconciliation for Shrub loaders.

Assigns IDs to new entities so that independent loader runs never hand out
the same ID twice, and so that a second run loading the same instance finds
the ID the first run gave it.

Main components:
- counter.py: integer IDs (exclusive and shared)
- magic.py: mnemonic IDs built from names (exclusive and shared)
- naming.py: name-to-prefix transform and suffix parsing
- factory.py: create_allocator()

Usage:
    from shrub.core.ids import create_allocator

    subsystems = create_allocator(
        "Subsystem", loader, magic=True, exclusive=False,
        name_field="name", check_field="checksum",
    )
    subsystem_id = subsystems.check(checksum) or subsystems.insert_new(
        {"name": name, "checksum": checksum}
    )
"""

from shrub.core.ids.base import DEFAULT_MAX_ATTEMPTS, IdAllocator
from shrub.core.ids.counter import ExclusiveCounterAllocator, SharedCounterAllocator
from shrub.core.ids.errors import (
    AllocationExhaustedError,
    AllocatorConfigurationError,
    IdError,
    IdTakenError,
)
from shrub.core.ids.factory import create_allocator
from shrub.core.ids.magic import ExclusiveMagicAllocator, SharedMagicAllocator
from shrub.core.ids.models import MagicName
from shrub.core.ids.naming import Namer, magic_name, split_magic_id, update_prefix_map

__all__ = [
    "DEFAULT_MAX_ATTEMPTS",
    "AllocationExhaustedError",
    "AllocatorConfigurationError",
    "ExclusiveCounterAllocator",
    "ExclusiveMagicAllocator",
    "IdAllocator",
    "IdError",
    "IdTakenError",
    "MagicName",
    "Namer",
    "SharedCounterAllocator",
    "SharedMagicAllocator",
    "create_allocator",
    "magic_name",
    "split_magic_id",
    "update_prefix_map",
]
