"""
Schema-driven access to the Shrub database.

ERDB wraps one SQLite connection and exposes the small set of operations
the loaders and the ID allocators need: insert with a duplicate policy,
flat and row queries with ERDB-style filter strings, and an optimistic
single-field update.

Filter strings are SQL fragments over the entity's own columns, with `?`
placeholders for parameters. They may be empty, and may begin directly with
ORDER BY or LIMIT:

    db.get_flat("Role", "checksum = ?", [checksum], "id")
    db.get_flat("Role", "id = ? OR id GLOB ?", ["Thre", "Thre[0-9]*"], "id")
    db.get_flat("Cluster", "ORDER BY id DESC LIMIT 1", [], "id")

Inserts distinguish three outcomes. A row is inserted, a row is rejected
because a unique key already exists, or the database fails. Only UNIQUE and
PRIMARY KEY violations count as duplicates; every other failure is raised as
StorageError.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from collections.abc import Iterator, Mapping, Sequence
from pathlib import Path
from typing import Any

from shrub.core.erdb.connection import DEFAULT_TIMEOUT, connect
from shrub.core.erdb.errors import MissingFieldError, SchemaError, StorageError
from shrub.core.erdb.models import DuplicatePolicy, InsertOutcome
from shrub.core.erdb.schema import EntityDef, get_entity

logger = logging.getLogger(__name__)

_ORDER_OR_LIMIT = re.compile(r"^(ORDER\s+BY|LIMIT)\b", re.IGNORECASE)
_DUPLICATE_MESSAGES = ("UNIQUE constraint failed", "PRIMARY KEY must be unique")


def escape_glob(text: str) -> str:
    """
    Escape GLOB wildcards so `text` matches literally.

    GLOB is case sensitive, which is what magic-name prefix lookups need.

    Example:
        >>> escape_glob("a*b?[c]")
        'a[*]b[?][[]c]'
    """
    return "".join(f"[{ch}]" if ch in "*?[" else ch for ch in text)


def _is_duplicate(error: sqlite3.IntegrityError) -> bool:
    message = str(error)
    return any(marker in message for marker in _DUPLICATE_MESSAGES)


def _where(filter_expr: str) -> str:
    filter_expr = filter_expr.strip()
    if not filter_expr:
        return ""
    if _ORDER_OR_LIMIT.match(filter_expr):
        return f" {filter_expr}"
    return f" WHERE {filter_expr}"


class ERDB:
    """
    Entity-relationship access to one Shrub database.

    Each instance owns its connection. Two instances pointed at the same
    file behave like two independent loader processes.

    Args:
        db_path: Path to the SQLite file (created with the schema if absent)
        timeout: Seconds to wait on a locked database

    Example:
        >>> with ERDB(":memory:") as db:
        ...     db.insert("Cluster", {"id": 1, "description": "first"})
        <InsertOutcome.INSERTED: 'inserted'>
    """

    def __init__(self, db_path: Path | str, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.db_path = db_path
        try:
            self._conn = connect(db_path, timeout=timeout)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open database {db_path}: {e}") from e

    def __enter__(self) -> ERDB:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    # ------------------------------------------------------------------
    # Schema helpers
    # ------------------------------------------------------------------

    def entity(self, entity_name: str) -> EntityDef:
        """Return the descriptor for a table, raising SchemaError if unknown."""
        return get_entity(entity_name)

    def _check_fields(self, entity: EntityDef, fields: Sequence[str]) -> None:
        unknown = [f for f in fields if f not in entity.fields]
        if unknown:
            raise SchemaError(f"Unknown field(s) for {entity.name}: {', '.join(unknown)}")

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        try:
            return self._conn.execute(sql, tuple(params))
        except sqlite3.Error as e:
            raise StorageError(f"Database error: {e}") from e

    # ------------------------------------------------------------------
    # Inserts and updates
    # ------------------------------------------------------------------

    def insert(
        self,
        entity_name: str,
        fields: Mapping[str, Any],
        dup: DuplicatePolicy = DuplicatePolicy.IGNORE,
    ) -> InsertOutcome:
        """
        Insert one row.

        Args:
            entity_name: Target table
            fields: Column values. Columns with a schema default may be omitted.
            dup: IGNORE reports an existing unique key as REJECTED; REPLACE
                overwrites the existing row.

        Returns:
            INSERTED or REJECTED

        Raises:
            SchemaError: Unknown table or field
            MissingFieldError: A required field is absent or None
            StorageError: Any other database failure
        """
        entity = self.entity(entity_name)
        self._check_fields(entity, list(fields))

        missing = [f for f in entity.required if fields.get(f) is None]
        if missing:
            raise MissingFieldError(entity_name, missing)

        columns = list(fields)
        placeholders = ", ".join("?" * len(columns))
        sql = f'INSERT INTO "{entity_name}" ({", ".join(columns)}) VALUES ({placeholders})'
        if dup is DuplicatePolicy.REPLACE:
            # Update in place so rows that reference this one survive.
            if entity.is_entity:
                updates = ", ".join(f"{c} = excluded.{c}" for c in columns if c != "id")
                action = f"DO UPDATE SET {updates}" if updates else "DO NOTHING"
                sql += f" ON CONFLICT(id) {action}"
            else:
                sql = sql.replace("INSERT", "INSERT OR REPLACE", 1)

        try:
            self._conn.execute(sql, tuple(fields[c] for c in columns))
        except sqlite3.IntegrityError as e:
            if _is_duplicate(e):
                logger.debug("Duplicate %s rejected: %s", entity_name, e)
                return InsertOutcome.REJECTED
            raise StorageError(f"Error inserting into {entity_name}: {e}") from e
        except sqlite3.Error as e:
            raise StorageError(f"Error inserting into {entity_name}: {e}") from e

        return InsertOutcome.INSERTED

    def update_field(
        self,
        entity_name: str,
        field: str,
        old_value: Any,
        new_value: Any,
        filter_expr: str,
        params: Sequence[Any] = (),
    ) -> int:
        """
        Change `field` from `old_value` to `new_value` on matching rows.

        Only rows whose field still holds `old_value` are changed, so a
        concurrent writer that got there first makes this a no-op.

        Returns:
            Number of rows updated
        """
        entity = self.entity(entity_name)
        self._check_fields(entity, [field])

        if old_value is None:
            guard = f"{field} IS NULL"
            guard_params: list[Any] = []
        else:
            guard = f"{field} = ?"
            guard_params = [old_value]

        condition = f"({filter_expr}) AND {guard}" if filter_expr.strip() else guard
        sql = f'UPDATE "{entity_name}" SET {field} = ? WHERE {condition}'
        cursor = self._execute(sql, [new_value, *params, *guard_params])
        return cursor.rowcount

    def delete(self, entity_name: str, filter_expr: str = "", params: Sequence[Any] = ()) -> int:
        """Delete matching rows (all rows for an empty filter). Returns the count."""
        self.entity(entity_name)
        cursor = self._execute(f'DELETE FROM "{entity_name}"{_where(filter_expr)}', params)
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(
        self,
        entity_name: str,
        filter_expr: str,
        params: Sequence[Any],
        fields: Sequence[str],
    ) -> Iterator[tuple[Any, ...]]:
        """
        Iterate over matching rows as tuples of the requested fields.
        """
        entity = self.entity(entity_name)
        fields = list(fields)
        self._check_fields(entity, fields)
        sql = f'SELECT {", ".join(fields)} FROM "{entity_name}"{_where(filter_expr)}'
        cursor = self._execute(sql, params)
        return (tuple(row) for row in cursor)

    def get_all(
        self,
        entity_name: str,
        filter_expr: str,
        params: Sequence[Any],
        fields: Sequence[str],
    ) -> list[tuple[Any, ...]]:
        """Return all matching rows as tuples of the requested fields."""
        return list(self.get(entity_name, filter_expr, params, fields))

    def get_flat(
        self,
        entity_name: str,
        filter_expr: str,
        params: Sequence[Any],
        field: str,
    ) -> list[Any]:
        """Return a single column of the matching rows."""
        return [row[0] for row in self.get(entity_name, filter_expr, params, [field])]

    def count(self, entity_name: str, filter_expr: str = "", params: Sequence[Any] = ()) -> int:
        """Count matching rows."""
        self.entity(entity_name)
        cursor = self._execute(
            f'SELECT COUNT(*) FROM "{entity_name}"{_where(filter_expr)}', params
        )
        return int(cursor.fetchone()[0])
