"""
Standardized error handling and exit codes for the shrub CLI.

Every command reports failures through print_error() and leaves with one
of the ExitCode values, so scripts driving several loaders can tell a
configuration mistake from a database failure.
"""

from enum import IntEnum

from rich.console import Console

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for shrub CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Database or other runtime failure."""

    USER_ERROR = 2
    """Configuration or input error (actionable by user)."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "Cannot open database .shrub/shrub.db",
        ...     reason="unable to open database file",
        ...     solution="shrub init",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_database_error(db_path: str, error: Exception) -> None:
    """Print error when the database cannot be opened or written."""
    print_error(
        f"Database operation failed on {db_path}",
        reason=str(error),
        solution="shrub init --force  # to rebuild an unusable database",
    )


def print_configuration_error(error: Exception) -> None:
    """Print error for an allocator or schema configuration defect."""
    print_error(
        "Invalid configuration",
        reason=str(error),
        solution="Check the entity name and the .shrub.json settings",
    )


def print_contention_error(error: Exception) -> None:
    """Print error when shared-mode inserts kept colliding."""
    print_error(
        "Gave up after repeated ID collisions",
        reason=str(error),
        solution="Raise ids.max_attempts or set SHRUB_MAX_ATTEMPTS=none",
    )
