"""
Shrub CLI - ID commands.

Inspect what the shared allocators would propose, without inserting.
"""

import typer

from shrub.cli.context import get_config, open_loader
from shrub.cli.errors import ExitCode, print_error
from shrub.core.ids import SharedCounterAllocator, SharedMagicAllocator

app = typer.Typer(
    name="ids",
    help="Inspect ID allocation",
    no_args_is_help=True,
)


@app.command(name="next")
def next_id(
    ctx: typer.Context,
    entity: str = typer.Argument(..., help="Entity name, e.g. Subsystem or Cluster"),
    name: str | None = typer.Argument(None, help="Name to derive a magic-name ID from"),
) -> None:
    """
    Print the first ID a shared loader would try for a new ENTITY.

    Magic-name entities need NAME. Nothing is reserved; another loader may
    take the ID before it is used.
    """
    with open_loader(ctx) as loader:
        definition = loader.db.entity(entity)
        if definition.name_field:
            if not name:
                print_error(
                    f"{entity} IDs are built from a name",
                    solution=f'shrub ids next {entity} "Some {definition.name_field}"',
                )
                raise typer.Exit(ExitCode.USER_ERROR)
            allocator = SharedMagicAllocator(
                entity, loader, name_field=definition.name_field, max_attempts=None
            )
            typer.echo(allocator.compute_id(name).id)
        elif definition.key_type == "int":
            start = get_config(ctx).ids.counter_start
            typer.echo(SharedCounterAllocator(entity, loader, start=start).next_id())
        else:
            print_error(
                f"{entity} has no ID", reason="Relationship tables are keyed by their links"
            )
            raise typer.Exit(ExitCode.USER_ERROR)
