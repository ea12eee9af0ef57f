"""
Shrub CLI - Subsystem commands.
"""

import typer

from shrub.cli.context import get_config, open_loader, print_stats
from shrub.core.subsystems import SubsystemRegistry

app = typer.Typer(
    name="subsystems",
    help="Register subsystems",
    no_args_is_help=True,
)


@app.command()
def add(
    ctx: typer.Context,
    names: list[str] = typer.Argument(..., help="Subsystem names"),
) -> None:
    """Register each named subsystem and print its ID."""
    config = get_config(ctx)
    with open_loader(ctx) as loader:
        registry = SubsystemRegistry(
            loader, exclusive=config.ids.exclusive, max_attempts=config.ids.max_attempts
        )
        for name in names:
            typer.echo(f"{registry.register(name)}\t{name}")
        print_stats(loader.stats, title="Subsystems")
