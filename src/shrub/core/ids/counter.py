"""
Counter-style ID allocation.

Counter IDs are plain integers with no meaning of their own (clusters,
functions). The exclusive allocator finds the largest existing ID once and
counts up in memory. The shared allocator re-reads the largest ID before
every attempt and relies on the insert being rejected if another loader
took the same number first.

Example:
    >>> loader = DBLoader(ERDB(":memory:"))
    >>> clusters = ExclusiveCounterAllocator("Cluster", loader)
    >>> clusters.insert_new({"description": "first"})
    1
    >>> clusters.next_id()
    2
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from shrub.core.erdb import DuplicatePolicy
from shrub.core.ids.base import (
    DEFAULT_MAX_ATTEMPTS,
    attempt_numbers,
    check_exclusive,
    check_shared,
    exhausted,
    insert_with_id,
    resolve_entity,
    resolve_rejection,
    scan_existing,
)
from shrub.core.loader import DBLoader

logger = logging.getLogger(__name__)


def _largest_id(loader: DBLoader, entity_name: str) -> int | None:
    found = loader.db.get_flat(entity_name, "ORDER BY id DESC LIMIT 1", [], "id")
    return int(found[0]) if found else None


class ExclusiveCounterAllocator:
    """
    Counter IDs for a loader with exclusive access to the entity's table.

    Args:
        entity_name: Table to allocate IDs for (must have an integer key)
        loader: Loader used for the scan and for inserts
        check_field: Alternate unique key, cached in memory for check()
        start: First ID to issue when the table is empty
    """

    def __init__(
        self,
        entity_name: str,
        loader: DBLoader,
        *,
        check_field: str | None = None,
        start: int = 1,
    ) -> None:
        resolve_entity(loader, entity_name, key_type="int", check_field=check_field)
        self.entity_name = entity_name
        self.check_field = check_field
        self._loader = loader
        self._stats = loader.stats
        self._check_map: dict[Any, int] | None = {} if check_field else None

        largest: int | None = None
        for entity_id, check_value in scan_existing(loader.db, entity_name, check_field):
            entity_id = int(entity_id)
            if largest is None or entity_id > largest:
                largest = entity_id
            if self._check_map is not None and check_value is not None:
                self._check_map[check_value] = entity_id

        self._next_id = largest + 1 if largest is not None else start
        if self._check_map is not None:
            self._stats.add(f"{entity_name}CheckHash", len(self._check_map))
        logger.debug("%s counter starts at %d", entity_name, self._next_id)

    def next_id(self) -> int:
        """Return the next ID and advance the counter. No database access."""
        allocated = self._next_id
        self._next_id += 1
        self._stats.add(f"{self.entity_name}IDAllocated")
        return allocated

    def check(self, check_value: Any) -> int | None:
        return check_exclusive(self.entity_name, self._check_map, check_value, self._stats)

    def _remember(self, entity_id: int, fields: Mapping[str, Any]) -> None:
        if entity_id >= self._next_id:
            self._next_id = entity_id + 1
        if self._check_map is not None and fields.get(self.check_field) is not None:
            self._check_map[fields[self.check_field]] = entity_id

    def insert_new(self, fields: Mapping[str, Any]) -> int:
        """
        Insert under the next counter value.

        Exactly one insert is made. A rejection would mean another writer is
        using the table, which exclusive mode rules out; it is counted but
        not retried.
        """
        fields = dict(fields)
        fields["id"] = self.next_id()
        outcome = self._loader.insert_object(self.entity_name, **fields)
        if not outcome.inserted:
            self._stats.add(f"{self.entity_name}InsertRejected")
        self._remember(fields["id"], fields)
        return fields["id"]

    def insert(self, fields: Mapping[str, Any]) -> int:
        if fields.get("id") is None:
            self._stats.add("insertIDNeeded")
            return self.insert_new(fields)
        entity_id = int(insert_with_id(self._loader, self.entity_name, self.check_field, fields))
        self._remember(entity_id, fields)
        return entity_id


class SharedCounterAllocator:
    """
    Counter IDs for a table other loaders may be writing at the same time.

    Args:
        entity_name: Table to allocate IDs for (must have an integer key)
        loader: Loader whose database is queried and inserted into
        check_field: Alternate unique key used to find a competing row
        start: First ID to try when the table is empty
        max_attempts: Insert attempts before giving up (None for no limit)
    """

    def __init__(
        self,
        entity_name: str,
        loader: DBLoader,
        *,
        check_field: str | None = None,
        start: int = 1,
        max_attempts: int | None = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        resolve_entity(loader, entity_name, key_type="int", check_field=check_field)
        self.entity_name = entity_name
        self.check_field = check_field
        self.max_attempts = max_attempts
        self._loader = loader
        self._db = loader.db
        self._stats = loader.stats
        self._start = start

    def next_id(self) -> int:
        """Propose an ID from the current table contents. Nothing is reserved."""
        largest = _largest_id(self._loader, self.entity_name)
        self._stats.add(f"{self.entity_name}IDAllocated")
        return largest + 1 if largest is not None else self._start

    def check(self, check_value: Any) -> int | None:
        return check_shared(self._db, self.entity_name, self.check_field, check_value, self._stats)

    def insert_new(self, fields: Mapping[str, Any]) -> int:
        """
        Insert under a fresh ID, or return the ID of the competing row.

        Each attempt proposes max(id) + 1. When the insert is rejected, the
        check field tells whether another loader stored the same instance
        (its ID is returned) or merely took the number (try again).

        Raises:
            AllocatorConfigurationError: A rejection that only a check field
                could explain, with none configured
            AllocationExhaustedError: max_attempts reached
        """
        fields = dict(fields)
        for attempt in attempt_numbers(self.max_attempts):
            fields["id"] = self.next_id()
            logger.debug("%s insert attempt %d with ID %d", self.entity_name, attempt, fields["id"])
            outcome = self._db.insert(self.entity_name, fields, dup=DuplicatePolicy.IGNORE)
            if outcome.inserted:
                self._stats.add(f"{self.entity_name}Inserted")
                return fields["id"]

            winner = resolve_rejection(
                self._db, self.entity_name, self.check_field, fields, self._stats
            )
            if winner is not None:
                self._stats.add(f"{self.entity_name}DuplicateInsert")
                return int(winner)

        raise exhausted(self.entity_name, self.max_attempts)

    def insert(self, fields: Mapping[str, Any]) -> int:
        if fields.get("id") is None:
            self._stats.add("insertIDNeeded")
            return self.insert_new(fields)
        return int(insert_with_id(self._loader, self.entity_name, self.check_field, fields))
