"""
Shrub CLI - Init command.

Create the Shrub database and its schema.
"""

import sqlite3

import typer
from rich.console import Console

from shrub.cli.context import get_config
from shrub.cli.errors import ExitCode, print_database_error
from shrub.core.erdb import SCHEMA_VERSION, init_db

console = Console()


def main(
    ctx: typer.Context,
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Delete an existing database and start empty",
    ),
) -> None:
    """
    Create the database file and schema.

    Running init on an existing database leaves its contents alone unless
    --force is given.
    """
    db_path = get_config(ctx).database.path
    try:
        conn = init_db(db_path, force_recreate=force)
    except (sqlite3.Error, OSError) as e:
        print_database_error(db_path, e)
        raise typer.Exit(ExitCode.GENERAL_ERROR) from e
    conn.close()

    action = "Recreated" if force else "Initialized"
    console.print(f"[green]{action}[/green] {db_path} (schema v{SCHEMA_VERSION})")
