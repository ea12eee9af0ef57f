"""
Shrub CLI - Role commands.

Load role statements into the Role table and checkpoint role IDs.
"""

from pathlib import Path

import typer
from rich.console import Console

from shrub.cli.context import get_config, open_loader, print_stats
from shrub.core.roles import checkpoint_roles, create_role_manager

app = typer.Typer(
    name="roles",
    help="Load and checkpoint roles",
    no_args_is_help=True,
)

console = Console()


@app.command()
def load(
    ctx: typer.Context,
    file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Text file with one role per line",
    ),
) -> None:
    """
    Find or insert each role in FILE.

    Prints one line per role: ID, checksum and the role text, tab separated.
    """
    config = get_config(ctx)
    with open_loader(ctx) as loader:
        roles = create_role_manager(
            loader, exclusive=config.ids.exclusive, max_attempts=config.ids.max_attempts
        )
        try:
            for line in file.read_text().splitlines():
                role = line.strip()
                if not role:
                    continue
                role_id, checksum = roles.process(role)
                typer.echo(f"{role_id}\t{checksum}\t{role}")
        finally:
            roles.close()
        print_stats(loader.stats, title="Role load")


@app.command()
def checkpoint(
    ctx: typer.Context,
    file: Path = typer.Argument(..., dir_okay=False, help="Output file (tab separated)"),
) -> None:
    """Write every role's ID, checksum, EC and TC number to FILE."""
    with open_loader(ctx) as loader:
        count = checkpoint_roles(loader.db, file)
    console.print(f"[green]Wrote[/green] {count} roles to {file}")
