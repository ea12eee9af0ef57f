"""
Database layer for Shrub.

Provides the SQLite schema, connection management, and the ERDB access
object that loaders and ID allocators use to read and write entities.

Main components:
- schema.py: table DDL and entity descriptors
- connection.py: connection setup and context managers
- database.py: ERDB insert/query operations
- models.py: DuplicatePolicy and InsertOutcome
- errors.py: StorageError hierarchy

Usage:
    from shrub.core.erdb import ERDB, DuplicatePolicy

    with ERDB(".shrub/shrub.db") as db:
        outcome = db.insert("Cluster", {"id": 7}, dup=DuplicatePolicy.IGNORE)
"""

from shrub.core.erdb.connection import init_db
from shrub.core.erdb.database import ERDB, escape_glob
from shrub.core.erdb.errors import MissingFieldError, SchemaError, StorageError
from shrub.core.erdb.models import DuplicatePolicy, InsertOutcome
from shrub.core.erdb.schema import ENTITIES, SCHEMA_VERSION, EntityDef, create_schema

__all__ = [
    "ENTITIES",
    "ERDB",
    "DuplicatePolicy",
    "EntityDef",
    "InsertOutcome",
    "MissingFieldError",
    "SCHEMA_VERSION",
    "SchemaError",
    "StorageError",
    "create_schema",
    "escape_glob",
    "init_db",
]
