"""
Database connection management for the Shrub database.

Every loader process opens its own connection to the shared SQLite file.
Connections run in autocommit mode so that each insert is visible to
competing loaders as soon as it returns; the ID allocators depend on that
when they re-query after a rejected insert.

Connection settings:
- WAL mode for concurrent readers and writers
- Foreign key enforcement
- Case-sensitive LIKE (magic-name prefixes are case sensitive)
- Busy timeout so a briefly locked database waits instead of failing

Usage:
    from shrub.core.erdb import init_db

    conn = init_db(Path(".shrub/shrub.db"))
    conn.close()
"""

import sqlite3
from pathlib import Path

from shrub.core.erdb.schema import create_schema, needs_migration

DEFAULT_TIMEOUT = 30.0


def configure_connection(conn: sqlite3.Connection) -> None:
    """Configure a SQLite connection for Shrub access."""
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute("PRAGMA case_sensitive_like=ON")


def connect(db_path: Path | str, *, timeout: float = DEFAULT_TIMEOUT) -> sqlite3.Connection:
    """
    Open an autocommit connection, creating the file and schema if needed.

    Args:
        db_path: Path to the SQLite database file, or ":memory:"
        timeout: Seconds to wait on a locked database

    Returns:
        Configured SQLite connection
    """
    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path), timeout=timeout, isolation_level=None)
    configure_connection(conn)

    if needs_migration(conn):
        create_schema(conn)

    return conn


def init_db(db_path: Path | str, *, force_recreate: bool = False) -> sqlite3.Connection:
    """
    Initialize the Shrub database.

    Creates the database file if it doesn't exist, applies the schema,
    and returns a configured connection.

    Args:
        db_path: Path to the SQLite database file
        force_recreate: If True, delete existing database and recreate

    Returns:
        Configured SQLite connection
    """
    db_path = Path(db_path)

    if force_recreate:
        for suffix in ("", "-wal", "-shm"):
            candidate = db_path.with_name(db_path.name + suffix)
            if candidate.exists():
                candidate.unlink()

    return connect(db_path)
