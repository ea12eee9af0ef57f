"""
Shrub CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
import sys

import typer
from rich.console import Console

from shrub import __version__
from shrub.cli import clusters, functions, ids, init_cmd, roles, subsystems
from shrub.cli.errors import ExitCode
from shrub.core.config import load_config, load_layered_env

# Help panel names for command grouping
PANEL_SETUP = "Set Up"
PANEL_LOAD = "Load Data"
PANEL_INSPECT = "Inspect"

app = typer.Typer(
    name="shrub",
    help="Load annotation data into the Shrub database",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def configure_logging(level: str) -> None:
    """Send log records to stderr at the given level."""
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    db: str | None = typer.Option(
        None,
        "--db",
        help="Database file (overrides database.path and SHRUB_DB)",
    ),
    exclusive: bool | None = typer.Option(
        None,
        "--exclusive/--shared",
        help="Assume this is the only loader writing (default from ids.exclusive)",
    ),
) -> None:
    """
    Shrub - annotation database loader.

    Loaders running side by side must use shared mode (the default).
    Exclusive mode is faster but only safe for a single loader.

    Quick Start:
        shrub init                          # Create the database
        shrub roles load roles.txt          # Load roles
        shrub functions load functions.txt  # Load functions and their roles
        shrub subsystems add "Histidine Degradation"
    """
    # Precedence: OS env > project .env > user .env
    load_layered_env()

    config = load_config(use_cache=False)
    if db is not None:
        config.database.path = db
    if exclusive is not None:
        config.ids.exclusive = exclusive

    configure_logging("DEBUG" if debug else config.logging.level)
    ctx.obj = {"debug": debug, "config": config}


app.command(name="init", rich_help_panel=PANEL_SETUP)(init_cmd.main)

app.add_typer(roles.app, name="roles", rich_help_panel=PANEL_LOAD)
app.add_typer(functions.app, name="functions", rich_help_panel=PANEL_LOAD)
app.add_typer(subsystems.app, name="subsystems", rich_help_panel=PANEL_LOAD)
app.add_typer(clusters.app, name="clusters", rich_help_panel=PANEL_LOAD)

app.add_typer(ids.app, name="ids", rich_help_panel=PANEL_INSPECT)


@app.command(rich_help_panel=PANEL_INSPECT)
def version() -> None:
    """Show shrub version and exit."""
    console.print(f"shrub version {__version__}")
    raise typer.Exit(ExitCode.SUCCESS)


def cli_main() -> None:
    """Main CLI entry point."""
    try:
        app()
    except KeyboardInterrupt:
        sys.exit(ExitCode.SIGINT)


__all__ = ["app", "cli_main"]
