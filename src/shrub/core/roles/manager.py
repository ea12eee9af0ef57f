"""
Role managers.

A role manager turns role text into a Role ID, inserting the role if it is
new. Roles are identified by checksum; their IDs are magic names built from
the role text. When an existing role is seen again with an EC or TC number
it did not have yet, the number is added.

Two variants, picked with create_role_manager():

- ExclusiveRoleManager keeps every role in memory, assigns IDs through an
  ExclusiveMagicAllocator, and writes all new and changed rows when it is
  closed.
- SharedRoleManager asks the database every time and writes immediately,
  so several loaders can share one Role table.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any, Protocol

from shrub.core.erdb import ERDB, DuplicatePolicy
from shrub.core.ids import (
    DEFAULT_MAX_ATTEMPTS,
    ExclusiveMagicAllocator,
    MagicName,
    Namer,
    SharedMagicAllocator,
    magic_name,
)
from shrub.core.ids.base import attempt_numbers, exhausted
from shrub.core.loader import DBLoader
from shrub.core.roles.parser import ParsedRole, format_role, parse_role, role_checksum

logger = logging.getLogger(__name__)

ROLE_FIELDS = ["id", "checksum", "ec_number", "tc_number"]


class RoleManager(Protocol):
    """What loaders see of a role manager."""

    def process(self, role: str, checksum: str | None = None) -> tuple[str, str]:
        """Return (role ID, checksum) for the role, inserting it if needed."""
        ...

    def close(self) -> None:
        """Write anything still queued."""
        ...


def _prepare(role: str, checksum: str | None) -> tuple[ParsedRole, str, str]:
    parsed = parse_role(role)
    if checksum is None:
        checksum = role_checksum(parsed.text)
    description = format_role(parsed.ec_number, parsed.tc_number, parsed.text)
    return parsed, checksum, description


class ExclusiveRoleManager:
    """
    Role manager for a loader with exclusive access to the Role table.

    Nothing is written until close(). New roles and roles that gained an
    EC or TC number are queued and flushed in replace mode.
    """

    def __init__(self, loader: DBLoader, *, namer: Namer = magic_name) -> None:
        self._loader = loader
        self._stats = loader.stats
        self._check_map: dict[str, str] = {}
        self._numbers: dict[str, tuple[str | None, str | None]] = {}
        self._updates: dict[str, dict[str, Any]] = {}

        for role_id, checksum, ec_number, tc_number in loader.db.get("Role", "", [], ROLE_FIELDS):
            self._check_map[checksum] = role_id
            self._numbers[role_id] = (ec_number, tc_number)

        # Role rows are written by close(), so the allocator only names them.
        self._names = ExclusiveMagicAllocator(
            "Role", loader, name_field="description", namer=namer
        )
        logger.debug("Loaded %d roles", len(self._check_map))

    def process(self, role: str, checksum: str | None = None) -> tuple[str, str]:
        parsed, checksum, description = _prepare(role, checksum)
        ec_number, tc_number = parsed.ec_number, parsed.tc_number

        role_id = self._check_map.get(checksum)
        if role_id is not None:
            self._stats.add("roleFound")
            old_ec, old_tc = self._numbers[role_id]
            ec_number, tc_number = old_ec or ec_number, old_tc or tc_number
            if (ec_number, tc_number) == (old_ec, old_tc):
                return role_id, checksum
            self._stats.add("roleNumsUpdate")
            description = format_role(ec_number, tc_number, parsed.text)
        else:
            self._stats.add("roleNotFound")
            role_id = self._names.compute_id(description).id
            self._check_map[checksum] = role_id

        self._numbers[role_id] = (ec_number, tc_number)
        self._stats.add("roleUpdateQueued")
        self._updates[role_id] = {
            "id": role_id,
            "checksum": checksum,
            "description": description,
            "ec_number": ec_number,
            "tc_number": tc_number,
            "hypo": int(parsed.hypo),
        }
        return role_id, checksum

    def close(self) -> None:
        """Write the queued roles."""
        self._loader.replace_mode("Role")
        for fields in self._updates.values():
            self._stats.add("roleUpdateUnspooled")
            self._loader.insert_object("Role", **fields)
        logger.info("Wrote %d queued roles", len(self._updates))
        self._updates.clear()


class SharedRoleManager:
    """
    Role manager for a Role table other loaders may be writing.

    Args:
        loader: Loader whose database is queried and inserted into
        namer: Name-to-prefix transform for new role IDs
        max_attempts: Lookup/insert rounds per role before giving up
    """

    def __init__(
        self,
        loader: DBLoader,
        *,
        namer: Namer = magic_name,
        max_attempts: int | None = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self._db = loader.db
        self._stats = loader.stats
        self.max_attempts = max_attempts
        self._names = SharedMagicAllocator(
            "Role",
            loader,
            name_field="description",
            check_field="checksum",
            namer=namer,
            max_attempts=max_attempts,
        )

    def process(self, role: str, checksum: str | None = None) -> tuple[str, str]:
        """
        Find or insert the role.

        Each round looks the checksum up first. A missing role is inserted
        under the next candidate magic name; if that insert is rejected, the
        next round either finds the role another loader stored or tries the
        following suffix.
        """
        parsed, checksum, description = _prepare(role, checksum)
        magic: MagicName | None = None

        for _ in attempt_numbers(self.max_attempts):
            found = self._db.get_all(
                "Role", "checksum = ?", [checksum], ["id", "ec_number", "tc_number"]
            )
            if found:
                self._stats.add("roleFound")
                role_id, old_ec, old_tc = found[0]
                self._merge_number(role_id, "ec_number", old_ec, parsed.ec_number)
                self._merge_number(role_id, "tc_number", old_tc, parsed.tc_number)
                return role_id, checksum

            magic = magic.next() if magic else self._names.compute_id(description)
            fields = {
                "id": magic.id,
                "checksum": checksum,
                "description": description,
                "ec_number": parsed.ec_number,
                "tc_number": parsed.tc_number,
                "hypo": int(parsed.hypo),
            }
            if self._db.insert("Role", fields, dup=DuplicatePolicy.IGNORE).inserted:
                self._stats.add("roleInserted")
                return magic.id, checksum
            self._stats.add("roleInsertFailed")
            logger.debug("Role insert as %s rejected", magic)

        raise exhausted("Role", self.max_attempts)

    def _merge_number(
        self, role_id: str, field: str, old_value: str | None, new_value: str | None
    ) -> None:
        """
        Fill in an EC/TC number the stored role lacks.

        The update only applies while the field is still empty, so a number
        stored by another loader in the meantime is kept and the miss is only
        counted.
        """
        if not new_value or old_value:
            return
        count = self._db.update_field("Role", field, old_value, new_value, "id = ?", [role_id])
        self._stats.add(f"role-{field}{'Updated' if count else 'UpdateFailed'}")

    def close(self) -> None:
        pass


def create_role_manager(
    loader: DBLoader,
    *,
    exclusive: bool,
    namer: Namer | None = None,
    max_attempts: int | None = DEFAULT_MAX_ATTEMPTS,
) -> RoleManager:
    """Build the role manager for the given access mode."""
    namer = namer or magic_name
    if exclusive:
        return ExclusiveRoleManager(loader, namer=namer)
    return SharedRoleManager(loader, namer=namer, max_attempts=max_attempts)


def checkpoint_roles(db: ERDB, path: Path) -> int:
    """
    Write every role's ID, checksum, EC and TC number to a tab-separated file.

    A checkpoint lets role IDs be kept stable across a rebuild of the
    database. Returns the number of roles written.
    """
    rows = 0
    with path.open("w", newline="") as handle:
        writer = csv.writer(handle, delimiter="\t", lineterminator="\n")
        for role_id, checksum, ec_number, tc_number in db.get("Role", "", [], ROLE_FIELDS):
            writer.writerow([role_id, checksum, ec_number or "", tc_number or ""])
            rows += 1
    return rows
