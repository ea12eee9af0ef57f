"""
Allocator selection.

Loaders do not pick an allocator class themselves. They describe what they
need (magic names or counters, exclusive or shared access) and get one of
the four strategies back.
"""

from __future__ import annotations

from shrub.core.ids.base import DEFAULT_MAX_ATTEMPTS, IdAllocator
from shrub.core.ids.counter import ExclusiveCounterAllocator, SharedCounterAllocator
from shrub.core.ids.magic import ExclusiveMagicAllocator, SharedMagicAllocator
from shrub.core.ids.naming import Namer, magic_name
from shrub.core.loader import DBLoader


def create_allocator(
    entity_name: str,
    loader: DBLoader,
    *,
    magic: bool,
    exclusive: bool,
    check_field: str | None = None,
    name_field: str | None = None,
    namer: Namer | None = None,
    start: int = 1,
    max_attempts: int | None = DEFAULT_MAX_ATTEMPTS,
) -> IdAllocator:
    """
    Build the allocator for an entity.

    Args:
        entity_name: Table to allocate IDs for
        loader: Loader the allocator reads and writes through
        magic: Magic-name IDs if True, counter IDs otherwise
        exclusive: The caller guarantees no other writer for the table
        check_field: Alternate unique key (defaults to none)
        name_field: Name source for magic names (required when magic)
        namer: Name-to-prefix transform for magic names
        start: First counter value for an empty table
        max_attempts: Retry ceiling for shared allocators (None for no limit)

    Returns:
        One of the four allocator strategies

    Raises:
        AllocatorConfigurationError: The options do not fit the entity
    """
    if magic:
        namer = namer or magic_name
        if exclusive:
            return ExclusiveMagicAllocator(
                entity_name, loader, name_field=name_field, check_field=check_field, namer=namer
            )
        return SharedMagicAllocator(
            entity_name,
            loader,
            name_field=name_field,
            check_field=check_field,
            namer=namer,
            max_attempts=max_attempts,
        )

    if exclusive:
        return ExclusiveCounterAllocator(entity_name, loader, check_field=check_field, start=start)
    return SharedCounterAllocator(
        entity_name, loader, check_field=check_field, start=start, max_attempts=max_attempts
    )
