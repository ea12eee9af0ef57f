"""
Common interface and shared steps for the ID allocators.

There are four allocators, one per combination of ID style and access mode:

                  exclusive                     shared
    counter       ExclusiveCounterAllocator     SharedCounterAllocator
    magic name    ExclusiveMagicAllocator       SharedMagicAllocator

Exclusive allocators assume nobody else writes the entity's table while
they live. They scan it once and answer from memory afterwards. The
allocator does no locking; if another writer does insert, IDs can collide
without being noticed. That precondition belongs to the caller.

Shared allocators trust nothing but a fresh query. Each insert is attempted
with the ignore policy; a rejected attempt is followed by a lookup of the
check field to find the row that won, and otherwise by another attempt.
The loops stop after `max_attempts` attempts (None means never).

The steps the allocators have in common live here as plain functions.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Protocol, runtime_checkable

from shrub.core.erdb import ERDB, EntityDef
from shrub.core.ids.errors import (
    AllocationExhaustedError,
    AllocatorConfigurationError,
    IdTakenError,
)
from shrub.core.loader import DBLoader
from shrub.core.stats import Stats

logger = logging.getLogger(__name__)

# Default ceiling for shared insert-retry loops
DEFAULT_MAX_ATTEMPTS = 1000


@runtime_checkable
class IdAllocator(Protocol):
    """What loaders see of an allocator."""

    entity_name: str
    check_field: str | None

    def check(self, check_value: Any) -> Any | None:
        """Return the ID of the instance with this check value, or None."""
        ...

    def insert_new(self, fields: Mapping[str, Any]) -> Any:
        """Insert a new instance under a freshly allocated ID and return the ID."""
        ...

    def insert(self, fields: Mapping[str, Any]) -> Any:
        """Insert with the caller's ID if `fields["id"]` is set, else allocate one."""
        ...


def resolve_entity(
    loader: DBLoader,
    entity_name: str,
    *,
    key_type: str,
    check_field: str | None = None,
    name_field: str | None = None,
) -> EntityDef:
    """
    Validate an allocator's configuration against the schema.

    Raises:
        AllocatorConfigurationError: Wrong key type or unknown field names
    """
    entity = loader.db.entity(entity_name)
    if entity.key_type != key_type:
        raise AllocatorConfigurationError(
            f"{entity_name} has a {entity.key_type or 'missing'} key; "
            f"this allocator needs a {key_type} key."
        )
    for label, field in (("check", check_field), ("name", name_field)):
        if field is not None and field not in entity.fields:
            raise AllocatorConfigurationError(
                f"{label.capitalize()} field {field!r} is not a field of {entity_name}."
            )
    return entity


def attempt_numbers(max_attempts: int | None) -> Iterable[int]:
    """Attempt numbers 1, 2, ... up to `max_attempts`, or forever for None."""
    if max_attempts is None:
        return itertools.count(1)
    return range(1, max_attempts + 1)


def exhausted(entity_name: str, max_attempts: int | None) -> AllocationExhaustedError:
    attempts = max_attempts or 0
    logger.warning("Gave up inserting %s after %d attempts", entity_name, attempts)
    return AllocationExhaustedError(
        f"Failed to insert {entity_name} after {attempts} attempts", attempts=attempts
    )


def scan_existing(
    db: ERDB, entity_name: str, check_field: str | None
) -> Iterator[tuple[Any, Any]]:
    """
    Yield (id, check value) for every row of the entity.

    The check value is None when there is no check field.
    """
    if check_field:
        yield from db.get(entity_name, "", [], ["id", check_field])
    else:
        for (entity_id,) in db.get(entity_name, "", [], ["id"]):
            yield entity_id, None


def check_exclusive(
    entity_name: str,
    check_map: dict[Any, Any] | None,
    check_value: Any,
    stats: Stats,
) -> Any | None:
    """
    Look up a check value in an exclusive allocator's in-memory map.

    Raises:
        AllocatorConfigurationError: The allocator has no check field
    """
    if check_map is None:
        raise AllocatorConfigurationError(f"No check field is configured for {entity_name}.")
    found = check_map.get(check_value)
    stats.add(f"{entity_name}{'CheckFound' if found is not None else 'CheckNotFound'}")
    return found


def check_shared(
    db: ERDB,
    entity_name: str,
    check_field: str | None,
    check_value: Any,
    stats: Stats,
) -> Any | None:
    """
    Look up a check value in the database.

    The answer can be out of date as soon as it is returned; it only saves
    an insert attempt when the instance is likely to exist already.

    Raises:
        AllocatorConfigurationError: The allocator has no check field
    """
    if not check_field:
        raise AllocatorConfigurationError(f"No check field is configured for {entity_name}.")
    found = next(iter(db.get_flat(entity_name, f"{check_field} = ?", [check_value], "id")), None)
    stats.add(f"{entity_name}{'CheckFound' if found is not None else 'CheckNotFound'}")
    return found


def insert_with_id(
    loader: DBLoader,
    entity_name: str,
    check_field: str | None,
    fields: Mapping[str, Any],
) -> Any:
    """
    Insert a row whose ID the caller already chose.

    Returns the caller's ID when the row went in. When it was rejected, the
    row holding the same check value is looked up and its ID returned, since
    that row is the same instance.

    Raises:
        IdTakenError: The insert was rejected and no row holds the check
            value, so the ID belongs to a different instance
    """
    loader.stats.add("insertWithID")
    outcome = loader.insert_object(entity_name, **fields)
    if outcome.inserted:
        return fields["id"]

    loader.stats.add(f"{entity_name}InsertRejected")
    check_value = fields.get(check_field) if check_field else None
    if check_value is not None:
        winner = next(
            iter(loader.db.get_flat(entity_name, f"{check_field} = ?", [check_value], "id")),
            None,
        )
        if winner is not None:
            loader.stats.add(f"{entity_name}DuplicateInsert")
            return winner

    logger.warning("%s ID %r is already used by another instance", entity_name, fields["id"])
    raise IdTakenError(
        f"{entity_name} ID {fields['id']!r} is already used by another instance.",
        entity_id=fields["id"],
    )

def resolve_rejection(
    db: ERDB,
    entity_name: str,
    check_field: str | None,
    fields: Mapping[str, Any],
    stats: Stats,
) -> Any | None:
    """
    Work out why a shared insert of `fields` was rejected.

    Returns the ID of the row that holds the same check value, if there is
    one. Returns None when the attempt should simply be repeated with another
    ID: either the attempted ID itself was taken, or the competing row has
    been deleted again since the attempt.

    Raises:
        AllocatorConfigurationError: There is no check field and the
            attempted ID is free again, so the rejection cannot be explained:
            another unique key conflicted, or the competing row was deleted
    """
    stats.add(f"{entity_name}InsertRejected")
    check_value = fields.get(check_field) if check_field else None

    if check_value is not None:
        winner = next(
            iter(db.get_flat(entity_name, f"{check_field} = ?", [check_value], "id")), None
        )
        if winner is not None:
            return winner
        logger.debug("%s %r rejected but no row holds its check value", entity_name, fields["id"])
        return None

    if db.count(entity_name, "id = ?", [fields["id"]]):
        return None

    raise AllocatorConfigurationError(
        f"Insert of {entity_name} {fields['id']!r} was rejected, but the ID is free now: "
        "either another unique key conflicted or the competing row was deleted again. "
        "A check field is needed to tell these apart."
    )
