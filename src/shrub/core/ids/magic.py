"""
Magic-name ID allocation.

Magic-name IDs are built from an entity's human-readable name: a prefix
from the name transform, then a numeric suffix when the prefix is already
taken. For one prefix the IDs come out as SS, SS2, SS3, ...

The exclusive allocator builds a prefix -> next-suffix map from a single
scan and hands out suffixes from memory. The shared allocator asks the
database for the highest suffix in use, then walks the suffix upward on
every rejected insert until one sticks or the row that beat it is found.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from shrub.core.erdb import DuplicatePolicy, escape_glob
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
from shrub.core.ids.errors import AllocatorConfigurationError
from shrub.core.ids.models import MagicName
from shrub.core.ids.naming import Namer, magic_name, update_prefix_map
from shrub.core.loader import DBLoader

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"[0-9]+")


def _require_name_field(entity_name: str, name_field: str | None) -> str:
    if not name_field:
        raise AllocatorConfigurationError(
            f"A name field is required to build magic names for {entity_name}."
        )
    return name_field


def _name_of(entity_name: str, name_field: str, fields: Mapping[str, Any]) -> str:
    name = fields.get(name_field)
    if name is None:
        raise AllocatorConfigurationError(
            f"Cannot name a new {entity_name}: field {name_field!r} was not supplied."
        )
    return str(name)


class ExclusiveMagicAllocator:
    """
    Magic-name IDs for a loader with exclusive access to the entity's table.

    Args:
        entity_name: Table to allocate IDs for (must have a string key)
        loader: Loader used for the scan and for inserts
        name_field: Field whose value is turned into the prefix
        check_field: Alternate unique key, cached in memory for check()
        namer: Name-to-prefix transform
    """

    def __init__(
        self,
        entity_name: str,
        loader: DBLoader,
        *,
        name_field: str | None,
        check_field: str | None = None,
        namer: Namer = magic_name,
    ) -> None:
        name_field = _require_name_field(entity_name, name_field)
        resolve_entity(
            loader, entity_name, key_type="str", check_field=check_field, name_field=name_field
        )
        self.entity_name = entity_name
        self.check_field = check_field
        self.name_field = name_field
        self._loader = loader
        self._stats = loader.stats
        self._namer = namer
        self._prefix_map: dict[str, int] = {}
        self._check_map: dict[Any, str] | None = {} if check_field else None

        rows = 0
        for entity_id, check_value in scan_existing(loader.db, entity_name, check_field):
            rows += 1
            update_prefix_map(self._prefix_map, entity_id)
            if self._check_map is not None and check_value is not None:
                self._check_map[check_value] = entity_id

        if self._check_map is not None:
            self._stats.add(f"{entity_name}CheckHash", len(self._check_map))
        logger.debug(
            "Scanned %d %s rows into %d prefixes", rows, entity_name, len(self._prefix_map)
        )

    def compute_id(self, name: str) -> MagicName:
        """
        Choose the ID for a new instance named `name` and reserve it.

        A prefix seen for the first time is used bare; later uses get
        suffixes 2, 3, ... Reserving here means callers that insert through
        their own path still never receive the same name twice.
        """
        suggested = self._namer(name)
        prefix = suggested.prefix
        if prefix in self._prefix_map:
            suffix = self._prefix_map[prefix]
            self._stats.add(f"{self.entity_name}NextSuffix")
        else:
            suffix = suggested.suffix
            self._stats.add(f"{self.entity_name}Suffix")
        self._prefix_map[prefix] = suffix + 1 if suffix else 2
        return MagicName(prefix=prefix, suffix=suffix)

    def check(self, check_value: Any) -> str | None:
        return check_exclusive(self.entity_name, self._check_map, check_value, self._stats)

    def _remember(self, entity_id: str, fields: Mapping[str, Any]) -> None:
        if self._check_map is not None and fields.get(self.check_field) is not None:
            self._check_map[fields[self.check_field]] = entity_id

    def insert_new(self, fields: Mapping[str, Any]) -> str:
        """
        Insert under a new magic name.

        Exactly one insert is made; see ExclusiveCounterAllocator.insert_new
        for how a rejection is treated.

        Raises:
            AllocatorConfigurationError: The name field is missing from `fields`
        """
        fields = dict(fields)
        name = _name_of(self.entity_name, self.name_field, fields)
        fields["id"] = self.compute_id(name).id
        outcome = self._loader.insert_object(self.entity_name, **fields)
        if not outcome.inserted:
            self._stats.add(f"{self.entity_name}InsertRejected")
            logger.debug("Exclusive insert of %s %s was rejected", self.entity_name, fields["id"])
        self._remember(fields["id"], fields)
        return fields["id"]

    def insert(self, fields: Mapping[str, Any]) -> str:
        if fields.get("id") is None:
            self._stats.add("insertIDNeeded")
            return self.insert_new(fields)
        entity_id = insert_with_id(self._loader, self.entity_name, self.check_field, fields)
        update_prefix_map(self._prefix_map, entity_id)
        self._remember(entity_id, fields)
        return entity_id


class SharedMagicAllocator:
    """
    Magic-name IDs for a table other loaders may be writing at the same time.

    Args:
        entity_name: Table to allocate IDs for (must have a string key)
        loader: Loader whose database is queried and inserted into
        name_field: Field whose value is turned into the prefix
        check_field: Alternate unique key used to find a competing row
        namer: Name-to-prefix transform
        max_attempts: Insert attempts before giving up (None for no limit)
    """

    def __init__(
        self,
        entity_name: str,
        loader: DBLoader,
        *,
        name_field: str | None,
        check_field: str | None = None,
        namer: Namer = magic_name,
        max_attempts: int | None = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        name_field = _require_name_field(entity_name, name_field)
        resolve_entity(
            loader, entity_name, key_type="str", check_field=check_field, name_field=name_field
        )
        self.entity_name = entity_name
        self.check_field = check_field
        self.name_field = name_field
        self.max_attempts = max_attempts
        self._loader = loader
        self._db = loader.db
        self._stats = loader.stats
        self._namer = namer

    def compute_id(self, name: str) -> MagicName:
        """
        Guess the first ID to try for a new instance named `name`.

        Looks at every stored ID made of the prefix and an optional digit
        run, and proposes one past the highest suffix: 2 after a bare
        prefix, n + 1 after suffix n. Suffixes are compared as numbers, so
        SS10 ranks above SS9. With no match the transform's own suggestion
        stands. Nothing is reserved; the insert loop handles collisions.
        """
        suggested = self._namer(name)
        prefix = suggested.prefix
        self._stats.add(f"{self.entity_name}IdRequested")

        found = self._db.get_flat(
            self.entity_name,
            "id = ? OR id GLOB ?",
            [prefix, f"{escape_glob(prefix)}[0-9]*"],
            "id",
        )
        best: int | None = None
        for entity_id in found:
            tail = entity_id[len(prefix):]
            if not tail:
                candidate = 2
            elif _DIGITS.fullmatch(tail):
                candidate = int(tail) + 1
            else:
                continue
            if best is None or candidate > best:
                best = candidate

        if best is None:
            return suggested
        return MagicName(prefix=prefix, suffix=best)

    def check(self, check_value: Any) -> str | None:
        return check_shared(self._db, self.entity_name, self.check_field, check_value, self._stats)

    def insert_new(self, fields: Mapping[str, Any]) -> str:
        """
        Insert under a new magic name, or return the ID of the competing row.

        The first attempt uses compute_id(). After each rejection the check
        field is used to look for a row holding the same instance; if there
        is none, the suffix moves up by one and the insert is tried again.
        The suffix only ever increases within one call.

        Raises:
            AllocatorConfigurationError: The name field is missing from
                `fields`, or a rejection that only a check field could
                explain, with none configured
            AllocationExhaustedError: max_attempts reached
        """
        fields = dict(fields)
        magic = self.compute_id(_name_of(self.entity_name, self.name_field, fields))

        for attempt in attempt_numbers(self.max_attempts):
            fields["id"] = magic.id
            logger.debug("%s insert attempt %d with ID %s", self.entity_name, attempt, magic)
            outcome = self._db.insert(self.entity_name, fields, dup=DuplicatePolicy.IGNORE)
            if outcome.inserted:
                self._stats.add(f"{self.entity_name}Inserted")
                return magic.id

            winner = resolve_rejection(
                self._db, self.entity_name, self.check_field, fields, self._stats
            )
            if winner is not None:
                self._stats.add(f"{self.entity_name}DuplicateInsert")
                return winner

            magic = magic.next()
            self._stats.add(f"{self.entity_name}IdSuffixIncremented")
            logger.warning(
                "%s ID %s was taken; trying %s", self.entity_name, fields["id"], magic
            )

        raise exhausted(self.entity_name, self.max_attempts)

    def insert(self, fields: Mapping[str, Any]) -> str:
        if fields.get("id") is None:
            self._stats.add("insertIDNeeded")
            return self.insert_new(fields)
        return insert_with_id(self._loader, self.entity_name, self.check_field, fields)
