"""
Tests for the ERDB access layer.

Covers the three insert outcomes, duplicate policies, filter strings,
optimistic updates, and visibility of writes across connections.
"""

import pytest

from shrub.core.erdb import (
    ERDB,
    DuplicatePolicy,
    InsertOutcome,
    MissingFieldError,
    SchemaError,
    StorageError,
    escape_glob,
)


def _role(role_id: str, checksum: str, **extra) -> dict:
    return {"id": role_id, "checksum": checksum, "description": f"Role {role_id}", **extra}


class TestInsert:
    """Tests for ERDB.insert outcomes."""

    def test_insert_new_row(self, db) -> None:
        """Test a fresh key is inserted."""
        assert db.insert("Cluster", {"id": 1, "description": "first"}) is InsertOutcome.INSERTED
        assert db.count("Cluster") == 1

    def test_duplicate_key_rejected(self, db) -> None:
        """Test an existing primary key is reported as rejected, not raised."""
        db.insert("Cluster", {"id": 1})
        outcome = db.insert("Cluster", {"id": 1, "description": "again"})

        assert outcome is InsertOutcome.REJECTED
        assert not outcome.inserted
        assert db.get_flat("Cluster", "id = ?", [1], "description") == [None]

    def test_duplicate_check_field_rejected(self, db) -> None:
        """Test a UNIQUE violation on a non-key column is also a duplicate."""
        db.insert("Role", _role("A", "sum1"))
        assert db.insert("Role", _role("B", "sum1")) is InsertOutcome.REJECTED

    def test_unknown_field_raises_schema_error(self, db) -> None:
        """Test inserting a column the entity does not have."""
        with pytest.raises(SchemaError, match="colour"):
            db.insert("Cluster", {"id": 1, "colour": "red"})

    def test_unknown_entity_raises_schema_error(self, db) -> None:
        """Test inserting into a table outside the schema."""
        with pytest.raises(SchemaError, match="Invalid entity"):
            db.insert("Genome", {"id": "83333.1"})

    def test_missing_required_field(self, db) -> None:
        """Test a required field left out raises MissingFieldError."""
        with pytest.raises(MissingFieldError, match="description"):
            db.insert("Role", {"id": "A", "checksum": "sum1"})

    def test_required_field_none(self, db) -> None:
        """Test a required field given as None counts as missing."""
        with pytest.raises(MissingFieldError):
            db.insert("Role", {"id": "A", "checksum": None, "description": "x"})

    def test_check_constraint_is_storage_error(self, db) -> None:
        """Test a non-unique constraint failure is never reported as a duplicate."""
        with pytest.raises(StorageError, match="CHECK"):
            db.insert("Role", _role("A", "sum1", hypo=5))

    def test_foreign_key_failure_is_storage_error(self, db) -> None:
        """Test a dangling relationship raises rather than being rejected."""
        with pytest.raises(StorageError, match="FOREIGN KEY"):
            db.insert("Function2Role", {"from_link": 99, "to_link": "Nope"})

    def test_missing_field_error_is_storage_error(self) -> None:
        """Test MissingFieldError can be handled as a StorageError."""
        assert issubclass(MissingFieldError, StorageError)
        assert issubclass(SchemaError, StorageError)


class TestReplacePolicy:
    """Tests for DuplicatePolicy.REPLACE."""

    def test_replace_updates_existing_entity(self, db) -> None:
        """Test replace overwrites the stored row in place."""
        db.insert("Role", _role("A", "sum1"))
        outcome = db.insert(
            "Role", _role("A", "sum1", ec_number="1.1.1.1"), dup=DuplicatePolicy.REPLACE
        )

        assert outcome is InsertOutcome.INSERTED
        assert db.count("Role") == 1
        assert db.get_flat("Role", "id = ?", ["A"], "ec_number") == ["1.1.1.1"]

    def test_replace_keeps_referencing_rows(self, db) -> None:
        """Test replacing a role does not cascade-delete its links."""
        db.insert("Role", _role("A", "sum1"))
        db.insert("Function", {"id": 1, "checksum": "f1", "description": "Role A"})
        db.insert("Function2Role", {"from_link": 1, "to_link": "A"})

        db.insert("Role", _role("A", "sum1", hypo=1), dup=DuplicatePolicy.REPLACE)

        assert db.count("Function2Role") == 1

    def test_replace_on_relationship_table(self, db) -> None:
        """Test replace on a table without an id column."""
        db.insert("Role", _role("A", "sum1"))
        db.insert("Function", {"id": 1, "checksum": "f1", "description": "Role A"})
        link = {"from_link": 1, "to_link": "A"}

        assert db.insert("Function2Role", link) is InsertOutcome.INSERTED
        assert db.insert("Function2Role", link) is InsertOutcome.REJECTED
        assert db.insert("Function2Role", link, dup=DuplicatePolicy.REPLACE).inserted
        assert db.count("Function2Role") == 1


class TestQueries:
    """Tests for get, get_all, get_flat and count."""

    @pytest.fixture
    def clusters(self, db):
        for cluster_id in (3, 1, 12, 2):
            db.insert("Cluster", {"id": cluster_id, "description": f"c{cluster_id}"})
        return db

    def test_get_flat_with_where(self, clusters) -> None:
        """Test a plain filter becomes a WHERE clause."""
        assert clusters.get_flat("Cluster", "id > ?", [2], "description") == ["c3", "c12"]

    def test_get_flat_order_by_limit(self, clusters) -> None:
        """Test a filter may start with ORDER BY."""
        assert clusters.get_flat("Cluster", "ORDER BY id DESC LIMIT 1", [], "id") == [12]

    def test_get_flat_limit_only(self, clusters) -> None:
        """Test a filter may start with LIMIT."""
        assert len(clusters.get_flat("Cluster", "LIMIT 2", [], "id")) == 2

    def test_empty_filter_returns_all(self, clusters) -> None:
        """Test an empty filter selects every row."""
        assert sorted(clusters.get_flat("Cluster", "", [], "id")) == [1, 2, 3, 12]

    def test_get_returns_tuples(self, clusters) -> None:
        """Test get yields one tuple per row in the requested field order."""
        rows = list(clusters.get("Cluster", "id = ?", [1], ["description", "id"]))
        assert rows == [("c1", 1)]

    def test_get_validates_fields_before_iteration(self, clusters) -> None:
        """Test an unknown field fails at call time, not on first fetch."""
        with pytest.raises(SchemaError):
            clusters.get("Cluster", "", [], ["id", "bogus"])

    def test_get_all(self, clusters) -> None:
        """Test get_all materializes the rows."""
        assert clusters.get_all("Cluster", "id < ?", [3], ["id"]) == [(1,), (2,)]

    def test_count_with_filter(self, clusters) -> None:
        """Test count honors the filter."""
        assert clusters.count("Cluster", "id >= ?", [3]) == 2

    def test_bad_sql_is_storage_error(self, clusters) -> None:
        """Test malformed filter SQL surfaces as StorageError."""
        with pytest.raises(StorageError):
            clusters.get_flat("Cluster", "id = = 1", [], "id")

    def test_glob_is_case_sensitive(self, db) -> None:
        """Test prefix matching with GLOB distinguishes case."""
        db.insert("Subsystem", {"id": "SS", "name": "x", "checksum": "a"})
        db.insert("Subsystem", {"id": "ss2", "name": "y", "checksum": "b"})

        assert db.get_flat("Subsystem", "id GLOB ?", ["SS*"], "id") == ["SS"]


class TestUpdateField:
    """Tests for the optimistic single-field update."""

    def test_update_from_null(self, db) -> None:
        """Test an empty field is filled in."""
        db.insert("Role", _role("A", "sum1"))
        count = db.update_field("Role", "ec_number", None, "1.1.1.1", "id = ?", ["A"])

        assert count == 1
        assert db.get_flat("Role", "id = ?", ["A"], "ec_number") == ["1.1.1.1"]

    def test_update_skipped_when_value_changed(self, db) -> None:
        """Test the update is a no-op once someone else set the field."""
        db.insert("Role", _role("A", "sum1", ec_number="2.2.2.2"))
        count = db.update_field("Role", "ec_number", None, "1.1.1.1", "id = ?", ["A"])

        assert count == 0
        assert db.get_flat("Role", "id = ?", ["A"], "ec_number") == ["2.2.2.2"]

    def test_update_from_value(self, db) -> None:
        """Test a non-null old value is matched by equality."""
        db.insert("Role", _role("A", "sum1", tc_number="1.A"))
        assert db.update_field("Role", "tc_number", "1.A", "1.B", "id = ?", ["A"]) == 1

    def test_update_unknown_field(self, db) -> None:
        """Test updating a column the entity does not have."""
        with pytest.raises(SchemaError):
            db.update_field("Role", "colour", None, "red", "", [])


class TestConnections:
    """Tests for behavior across independent connections."""

    def test_insert_visible_to_other_connection(self, db, db_path) -> None:
        """Test an insert is committed as soon as it returns."""
        db.insert("Cluster", {"id": 7})
        with ERDB(db_path) as other:
            assert other.get_flat("Cluster", "", [], "id") == [7]

    def test_competing_insert_rejected(self, db, db_path) -> None:
        """Test two connections cannot both insert the same key."""
        with ERDB(db_path) as other:
            assert other.insert("Cluster", {"id": 7}).inserted
        assert db.insert("Cluster", {"id": 7}) is InsertOutcome.REJECTED

    def test_delete(self, db) -> None:
        """Test delete with and without a filter."""
        for cluster_id in (1, 2, 3):
            db.insert("Cluster", {"id": cluster_id})

        assert db.delete("Cluster", "id = ?", [2]) == 1
        assert db.delete("Cluster") == 2
        assert db.count("Cluster") == 0

    def test_open_failure_is_storage_error(self, tmp_path) -> None:
        """Test a path that cannot be a database raises StorageError."""
        directory = tmp_path / "not-a-file"
        directory.mkdir()
        with pytest.raises(StorageError, match="Cannot open"):
            ERDB(directory)


class TestEscapeGlob:
    """Tests for escape_glob."""

    def test_plain_text_unchanged(self) -> None:
        assert escape_glob("ThreSynt") == "ThreSynt"

    def test_wildcards_bracketed(self) -> None:
        assert escape_glob("a*b?[c]") == "a[*]b[?][[]c]"

    def test_escaped_pattern_matches_literally(self, db) -> None:
        """Test an escaped prefix only matches itself."""
        db.insert("Subsystem", {"id": "A*", "name": "x", "checksum": "a"})
        db.insert("Subsystem", {"id": "AB", "name": "y", "checksum": "b"})

        assert db.get_flat("Subsystem", "id GLOB ?", [escape_glob("A*")], "id") == ["A*"]
