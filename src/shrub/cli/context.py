"""
Shared plumbing for shrub commands.

The root callback stores the resolved configuration in the Typer context.
Commands open their loader through open_loader(), which turns library
exceptions into printed errors and exit codes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import typer
from rich.console import Console
from rich.table import Table

from shrub.cli.errors import (
    ExitCode,
    print_configuration_error,
    print_contention_error,
    print_database_error,
)
from shrub.core.config import ShrubConfig, load_config
from shrub.core.erdb import SchemaError, StorageError
from shrub.core.ids import AllocationExhaustedError, AllocatorConfigurationError, IdTakenError
from shrub.core.loader import DBLoader
from shrub.core.stats import Stats

logger = logging.getLogger(__name__)

err_console = Console(stderr=True)


def get_config(ctx: typer.Context) -> ShrubConfig:
    """Return the configuration resolved by the root callback."""
    obj = ctx.find_root().obj or {}
    config = obj.get("config")
    if config is None:
        config = load_config()
    return config


@contextmanager
def open_loader(ctx: typer.Context) -> Iterator[DBLoader]:
    """
    Open the configured database for one command.

    Raises:
        typer.Exit: With USER_ERROR for configuration defects and taken IDs, GENERAL_ERROR
            for database failures and exhausted retries
    """
    config = get_config(ctx)
    db_path = config.database.path
    try:
        loader = DBLoader.open(db_path, timeout=config.database.timeout)
    except StorageError as e:
        print_database_error(db_path, e)
        raise typer.Exit(ExitCode.GENERAL_ERROR) from e

    try:
        yield loader
    except (SchemaError, AllocatorConfigurationError, IdTakenError) as e:
        print_configuration_error(e)
        raise typer.Exit(ExitCode.USER_ERROR) from e
    except AllocationExhaustedError as e:
        print_contention_error(e)
        raise typer.Exit(ExitCode.GENERAL_ERROR) from e
    except StorageError as e:
        print_database_error(db_path, e)
        raise typer.Exit(ExitCode.GENERAL_ERROR) from e
    finally:
        loader.close()


def print_stats(stats: Stats, title: str = "Statistics") -> None:
    """Show a run's counters as a table on stderr."""
    if not len(stats):
        return
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Counter")
    table.add_column("Count", justify="right")
    for name, amount in stats.items():
        table.add_row(name, str(amount))
    err_console.print(table)
