"""
Subsystem registration.

Subsystems get magic-name IDs derived from their names and are identified
by the checksum of the name, so registering the same subsystem twice, from
one loader or from two, yields one row and one ID.
"""

from __future__ import annotations

import logging
import re

from shrub.core.checksums import md5_base64
from shrub.core.ids import DEFAULT_MAX_ATTEMPTS, IdAllocator, Namer, create_allocator
from shrub.core.loader import DBLoader

logger = logging.getLogger(__name__)

_SPACES = re.compile(r"\s+")


def subsystem_checksum(name: str) -> str:
    """Checksum of a subsystem name with its whitespace normalized."""
    return md5_base64(_SPACES.sub(" ", name).strip())


class SubsystemRegistry:
    """Find or insert subsystems by name."""

    def __init__(
        self,
        loader: DBLoader,
        *,
        exclusive: bool,
        namer: Namer | None = None,
        max_attempts: int | None = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self._stats = loader.stats
        self._allocator: IdAllocator = create_allocator(
            "Subsystem",
            loader,
            magic=True,
            exclusive=exclusive,
            name_field="name",
            check_field="checksum",
            namer=namer,
            max_attempts=max_attempts,
        )

    @property
    def allocator(self) -> IdAllocator:
        return self._allocator

    def register(self, name: str, subsystem_id: str | None = None) -> str:
        """
        Return the ID of the named subsystem, inserting it if it is new.

        Args:
            name: Subsystem name
            subsystem_id: ID to use for a new subsystem instead of a magic
                name (kept stable across reloads)
        """
        name = _SPACES.sub(" ", name).strip()
        checksum = subsystem_checksum(name)
        found = self._allocator.check(checksum)
        if found is not None:
            self._stats.add("subsystemFound")
            return found

        self._stats.add("subsystemNew")
        logger.debug("Registering subsystem %r", name)
        return self._allocator.insert({"id": subsystem_id, "name": name, "checksum": checksum})
