"""
Loader object shared by the ID allocators and the entity managers.

A DBLoader bundles the database connection with the run's statistics and
decides, per table, whether an insert ignores or replaces an existing row.
Tables start in ignore mode; `replace_mode` switches them over for the rest
of the session (the exclusive role manager uses this to flush queued role
updates).

Example:
    >>> from shrub.core.erdb import ERDB
    >>> loader = DBLoader(ERDB(":memory:"))
    >>> loader.insert_object("Cluster", id=1)
    <InsertOutcome.INSERTED: 'inserted'>
    >>> loader.stats["Cluster-insert"]
    1
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from shrub.core.erdb import ERDB, DuplicatePolicy, InsertOutcome
from shrub.core.stats import Stats

logger = logging.getLogger(__name__)


class DBLoader:
    """
    Inserts rows on behalf of a load session.

    Args:
        db: Database to load into
        stats: Statistics sink (a fresh one is created if omitted)
    """

    def __init__(self, db: ERDB, stats: Stats | None = None) -> None:
        self._db = db
        self._stats = stats if stats is not None else Stats()
        self._replaces: set[str] = set()

    @classmethod
    def open(cls, db_path: Path | str, *, timeout: float = 30.0) -> DBLoader:
        """Open a database file and wrap it in a loader."""
        return cls(ERDB(db_path, timeout=timeout))

    @property
    def db(self) -> ERDB:
        return self._db

    @property
    def stats(self) -> Stats:
        return self._stats

    def replace_mode(self, *tables: str) -> None:
        """Make future inserts into `tables` replace existing rows."""
        for table in tables:
            self._db.entity(table)
            self._replaces.add(table)
            logger.debug("Table %s is now in replace mode", table)

    def duplicate_policy(self, table: str) -> DuplicatePolicy:
        return DuplicatePolicy.REPLACE if table in self._replaces else DuplicatePolicy.IGNORE

    def insert_object(self, table: str, **fields: Any) -> InsertOutcome:
        """
        Insert a row using the table's current duplicate policy.

        Returns:
            INSERTED, or REJECTED if an ignore-mode table already had the key
        """
        outcome = self._db.insert(table, fields, dup=self.duplicate_policy(table))
        if outcome.inserted:
            self._stats.add(f"{table}-insert")
        else:
            self._stats.add(f"{table}-duplicate")
        return outcome

    def clear(self, *tables: str) -> None:
        """Delete every row of the given tables."""
        for table in tables:
            deleted = self._db.delete(table)
            self._stats.add(f"{table}-cleared", deleted)
            logger.info("Cleared %d rows from %s", deleted, table)

    def close(self) -> None:
        self._db.close()

    def __enter__(self) -> DBLoader:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
