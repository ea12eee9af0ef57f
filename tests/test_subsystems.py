"""
Tests for SubsystemRegistry.
"""

from unittest.mock import patch

import pytest

from shrub.core.ids import ExclusiveMagicAllocator, IdTakenError, SharedMagicAllocator
from shrub.core.subsystems import SubsystemRegistry, subsystem_checksum


class TestSubsystemChecksum:
    """Tests for subsystem_checksum."""

    def test_normalizes_whitespace(self) -> None:
        assert subsystem_checksum("Threonine  synthesis ") == subsystem_checksum(
            "Threonine synthesis"
        )

    def test_case_sensitive(self) -> None:
        assert subsystem_checksum("Threonine synthesis") != subsystem_checksum(
            "threonine synthesis"
        )


@pytest.mark.parametrize("exclusive", [True, False])
class TestSubsystemRegistry:
    """Tests for SubsystemRegistry in both access modes."""

    def test_uses_matching_allocator(self, loader, exclusive) -> None:
        registry = SubsystemRegistry(loader, exclusive=exclusive)
        expected = ExclusiveMagicAllocator if exclusive else SharedMagicAllocator
        assert isinstance(registry.allocator, expected)

    def test_register_new(self, loader, db, exclusive) -> None:
        registry = SubsystemRegistry(loader, exclusive=exclusive)

        assert registry.register("Threonine synthesis") == "ThreSynt"
        assert db.get_all("Subsystem", "", [], ["id", "name"]) == [
            ("ThreSynt", "Threonine synthesis")
        ]
        assert loader.stats["subsystemNew"] == 1

    def test_register_twice(self, loader, db, exclusive) -> None:
        registry = SubsystemRegistry(loader, exclusive=exclusive)
        first = registry.register("Threonine synthesis")
        second = registry.register("Threonine   synthesis")

        assert first == second
        assert db.count("Subsystem") == 1
        assert loader.stats["subsystemFound"] == 1

    def test_found_subsystem_is_not_inserted(self, loader, exclusive) -> None:
        """Test a check hit returns without any insert."""
        registry = SubsystemRegistry(loader, exclusive=exclusive)
        registry.register("Threonine synthesis")

        with patch.object(registry.allocator, "insert", wraps=registry.allocator.insert) as ins:
            registry.register("Threonine synthesis")
        ins.assert_not_called()

    def test_similar_names_get_suffixes(self, loader, exclusive) -> None:
        registry = SubsystemRegistry(loader, exclusive=exclusive)

        assert registry.register("Threonine synthesis") == "ThreSynt"
        assert registry.register("Threonine synthesis and export") == "ThreSyntExpo"
        assert registry.register("Threonine synthesis (bacteria)") == "ThreSynt2"

    def test_explicit_id(self, loader, exclusive) -> None:
        registry = SubsystemRegistry(loader, exclusive=exclusive)

        assert registry.register("Threonine synthesis", "TS") == "TS"
        assert registry.register("Threonine synthesis") == "TS"

    def test_explicit_id_used_by_another_subsystem(self, loader, db, exclusive) -> None:
        registry = SubsystemRegistry(loader, exclusive=exclusive)
        registry.register("Alpha", "X")

        with pytest.raises(IdTakenError):
            registry.register("Beta", "X")
        assert db.get_all("Subsystem", "", [], ["id", "name"]) == [("X", "Alpha")]


def test_explicit_id_loses_to_competing_loader(competing_loader, rival, db) -> None:
    """Test a subsystem stored by another loader during our insert keeps its ID."""

    def store_same(entity, fields):
        rival.insert("Subsystem", {**fields, "id": "Theirs"})

    registry = SubsystemRegistry(competing_loader(store_same), exclusive=False)

    assert registry.register("Threonine synthesis", "TS") == "Theirs"
    assert db.get_flat("Subsystem", "", [], "id") == ["Theirs"]
