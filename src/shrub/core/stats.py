"""
Statistics sink for load runs.

Every loader and ID allocator counts what it does under a short name
(e.g. "RoleCheckFound", "Function-insert"). The counts have no effect on
correctness; they are reported at the end of a run.

Example:
    >>> stats = Stats()
    >>> stats.add("RoleInserted")
    >>> stats.add("RoleInserted", 2)
    >>> stats["RoleInserted"]
    3
    >>> stats["neverCounted"]
    0
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterator


class Stats:
    """Named integer counters."""

    def __init__(self, **initial: int) -> None:
        self._counts: Counter[str] = Counter()
        for name, amount in initial.items():
            self.add(name, amount)

    def add(self, name: str, amount: int = 1) -> None:
        """Add `amount` to the counter `name`."""
        self._counts[name] += amount

    def get(self, name: str) -> int:
        return self._counts.get(name, 0)

    def __getitem__(self, name: str) -> int:
        return self.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._counts

    def __len__(self) -> int:
        return len(self._counts)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._counts))

    def items(self) -> list[tuple[str, int]]:
        """Counters sorted by name."""
        return sorted(self._counts.items())

    def merge(self, other: Stats) -> None:
        """Fold another run's counters into this one."""
        for name, amount in other.items():
            self.add(name, amount)

    def as_dict(self) -> dict[str, int]:
        return dict(self.items())

    def show(self) -> str:
        """Render the counters as an aligned two-column text block."""
        if not self._counts:
            return ""
        width = max(len(name) for name in self._counts)
        return "\n".join(f"{name:<{width}}  {amount}" for name, amount in self.items()) + "\n"

    def __repr__(self) -> str:
        return f"Stats({self.as_dict()!r})"
