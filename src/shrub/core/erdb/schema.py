"""
SQLite schema for the Shrub annotation database.

Defines the relational tables the loaders populate and a small registry of
entity descriptors that the ERDB access layer uses to validate inserts and
queries.

Schema Design:
- Subsystem: magic-name keyed, unique name checksum
- Role: magic-name keyed, unique normalized-text checksum
- Function: counter keyed, unique checksum over separator + role checksums
- Function2Role: links a function to each of its roles
- Cluster: counter keyed, optional unique checksum
- schema_info: version tracking

Every entity table has an `id` primary key. Relationship tables have none.
The check fields (`checksum`) carry UNIQUE constraints so that a competing
writer's row can be found after a rejected insert.
"""

import sqlite3

from pydantic import BaseModel, ConfigDict, Field

from shrub.core.erdb.errors import SchemaError

# Schema version for migrations
SCHEMA_VERSION = 1


class EntityDef(BaseModel):
    """
    Descriptor for one table in the Shrub schema.

    Example:
        >>> role = ENTITIES["Role"]
        >>> role.check_field
        'checksum'
        >>> "description" in role.fields
        True
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Table name")
    key_type: str | None = Field(
        default=None,
        pattern="^(int|str)$",
        description="Type of the `id` primary key, or None for relationship tables",
    )
    fields: tuple[str, ...] = Field(..., description="All columns, in table order")
    required: tuple[str, ...] = Field(
        default=(),
        description="Columns that must be supplied on insert (NOT NULL without default)",
    )
    check_field: str | None = Field(
        default=None,
        description="Alternate unique key used to detect an existing instance",
    )
    name_field: str | None = Field(
        default=None,
        description="Human-readable field used to derive magic-name IDs",
    )

    @property
    def is_entity(self) -> bool:
        """True for tables keyed by `id`."""
        return self.key_type is not None


ENTITIES: dict[str, EntityDef] = {
    "Subsystem": EntityDef(
        name="Subsystem",
        key_type="str",
        fields=("id", "name", "checksum"),
        required=("id", "name", "checksum"),
        check_field="checksum",
        name_field="name",
    ),
    "Role": EntityDef(
        name="Role",
        key_type="str",
        fields=("id", "checksum", "description", "ec_number", "tc_number", "hypo"),
        required=("id", "checksum", "description"),
        check_field="checksum",
        name_field="description",
    ),
    "Function": EntityDef(
        name="Function",
        key_type="int",
        fields=("id", "checksum", "description", "sep", "comment"),
        required=("id", "checksum", "description"),
        check_field="checksum",
    ),
    "Function2Role": EntityDef(
        name="Function2Role",
        fields=("from_link", "to_link"),
        required=("from_link", "to_link"),
    ),
    "Cluster": EntityDef(
        name="Cluster",
        key_type="int",
        fields=("id", "checksum", "description"),
        required=("id",),
        check_field="checksum",
    ),
}


# SQLite schema DDL
SCHEMA_DDL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_info (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    description TEXT
);

CREATE TABLE IF NOT EXISTS "Subsystem" (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    checksum TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS "Role" (
    id TEXT PRIMARY KEY,
    checksum TEXT NOT NULL UNIQUE,
    description TEXT NOT NULL,
    ec_number TEXT,
    tc_number TEXT,
    hypo INTEGER NOT NULL DEFAULT 0 CHECK(hypo IN (0, 1))
);

CREATE TABLE IF NOT EXISTS "Function" (
    id INTEGER PRIMARY KEY,
    checksum TEXT NOT NULL UNIQUE,
    description TEXT NOT NULL,
    sep TEXT NOT NULL DEFAULT ' ',
    comment TEXT
);

CREATE TABLE IF NOT EXISTS "Function2Role" (
    from_link INTEGER NOT NULL,
    to_link TEXT NOT NULL,

    FOREIGN KEY (from_link) REFERENCES "Function"(id) ON DELETE CASCADE,
    FOREIGN KEY (to_link) REFERENCES "Role"(id) ON DELETE CASCADE,

    PRIMARY KEY (from_link, to_link)
);

CREATE TABLE IF NOT EXISTS "Cluster" (
    id INTEGER PRIMARY KEY,
    checksum TEXT UNIQUE,
    description TEXT
);

CREATE INDEX IF NOT EXISTS idx_role_description ON "Role"(description);
CREATE INDEX IF NOT EXISTS idx_subsystem_name ON "Subsystem"(name);
CREATE INDEX IF NOT EXISTS idx_function2role_to ON "Function2Role"(to_link);
"""


def create_schema(conn: sqlite3.Connection) -> None:
    """
    Create the database schema.

    Executes all DDL statements to create tables and indexes.
    This is idempotent - safe to call multiple times.

    Args:
        conn: SQLite database connection

    Example:
        >>> import sqlite3
        >>> conn = sqlite3.connect(":memory:")
        >>> create_schema(conn)
        >>> cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        >>> tables = [row[0] for row in cursor.fetchall()]
        >>> assert "Role" in tables
    """
    conn.executescript(SCHEMA_DDL)

    conn.execute(
        """
        INSERT OR REPLACE INTO schema_info (version, description)
        VALUES (?, ?)
        """,
        (SCHEMA_VERSION, "Shrub entity tables"),
    )

    conn.commit()


def get_schema_version(conn: sqlite3.Connection) -> int | None:
    """
    Get the current schema version from the database.

    Args:
        conn: SQLite database connection

    Returns:
        Current schema version, or None if schema_info table doesn't exist
    """
    try:
        cursor = conn.execute("SELECT MAX(version) FROM schema_info")
        row = cursor.fetchone()
    except sqlite3.OperationalError:
        # schema_info table doesn't exist
        return None
    if row is None:
        return None
    return row[0]


def needs_migration(conn: sqlite3.Connection) -> bool:
    """
    Check if the database needs the schema applied.

    Args:
        conn: SQLite database connection

    Returns:
        True if the schema is missing or older than SCHEMA_VERSION
    """
    current_version = get_schema_version(conn)
    if current_version is None:
        return True
    return current_version < SCHEMA_VERSION


def get_entity(entity_name: str) -> EntityDef:
    """
    Look up the descriptor for a table.

    Args:
        entity_name: Table name (e.g. "Role")

    Returns:
        The EntityDef for the table

    Raises:
        SchemaError: If the table is not part of the schema
    """
    try:
        return ENTITIES[entity_name]
    except KeyError:
        raise SchemaError(
            f"Invalid entity: {entity_name}. Must be one of: {', '.join(ENTITIES)}"
        ) from None
