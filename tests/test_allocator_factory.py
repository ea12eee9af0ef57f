"""
Tests for create_allocator.
"""

import pytest

from shrub.core.ids import (
    AllocatorConfigurationError,
    ExclusiveCounterAllocator,
    ExclusiveMagicAllocator,
    IdAllocator,
    MagicName,
    SharedCounterAllocator,
    SharedMagicAllocator,
    create_allocator,
)


class TestCreateAllocator:
    """Tests for strategy selection."""

    @pytest.mark.parametrize(
        "entity,magic,exclusive,expected",
        [
            ("Cluster", False, True, ExclusiveCounterAllocator),
            ("Cluster", False, False, SharedCounterAllocator),
            ("Subsystem", True, True, ExclusiveMagicAllocator),
            ("Subsystem", True, False, SharedMagicAllocator),
        ],
    )
    def test_selects_strategy(self, loader, entity, magic, exclusive, expected) -> None:
        allocator = create_allocator(
            entity,
            loader,
            magic=magic,
            exclusive=exclusive,
            check_field="checksum",
            name_field="name" if magic else None,
        )

        assert type(allocator) is expected
        assert isinstance(allocator, IdAllocator)
        assert allocator.entity_name == entity
        assert allocator.check_field == "checksum"

    def test_check_field_defaults_to_none(self, loader) -> None:
        allocator = create_allocator("Cluster", loader, magic=False, exclusive=False)
        assert allocator.check_field is None

    def test_passes_max_attempts(self, loader) -> None:
        allocator = create_allocator(
            "Cluster", loader, magic=False, exclusive=False, max_attempts=None
        )
        assert allocator.max_attempts is None

    def test_passes_start(self, loader) -> None:
        allocator = create_allocator("Cluster", loader, magic=False, exclusive=True, start=42)
        assert allocator.insert_new({}) == 42

    def test_passes_namer(self, loader) -> None:
        allocator = create_allocator(
            "Subsystem",
            loader,
            magic=True,
            exclusive=False,
            name_field="name",
            namer=lambda name: MagicName(prefix="Fixed"),
        )
        assert allocator.insert_new({"name": "anything", "checksum": "c"}) == "Fixed"

    def test_magic_without_name_field(self, loader) -> None:
        with pytest.raises(AllocatorConfigurationError):
            create_allocator("Subsystem", loader, magic=True, exclusive=True)

    def test_counter_on_string_key(self, loader) -> None:
        with pytest.raises(AllocatorConfigurationError):
            create_allocator("Role", loader, magic=False, exclusive=False)
