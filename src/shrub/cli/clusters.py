"""
Shrub CLI - Cluster commands.

Clusters have counter IDs and are identified by the checksum of their
description.
"""

import typer

from shrub.cli.context import get_config, open_loader, print_stats
from shrub.core.checksums import md5_base64
from shrub.core.ids import create_allocator

app = typer.Typer(
    name="clusters",
    help="Add clusters",
    no_args_is_help=True,
)


@app.command()
def add(
    ctx: typer.Context,
    descriptions: list[str] = typer.Argument(..., help="Cluster descriptions"),
) -> None:
    """Find or insert a cluster for each description and print its ID."""
    config = get_config(ctx)
    with open_loader(ctx) as loader:
        clusters = create_allocator(
            "Cluster",
            loader,
            magic=False,
            exclusive=config.ids.exclusive,
            check_field="checksum",
            start=config.ids.counter_start,
            max_attempts=config.ids.max_attempts,
        )
        for description in descriptions:
            checksum = md5_base64(description)
            cluster_id = clusters.check(checksum)
            if cluster_id is None:
                cluster_id = clusters.insert_new(
                    {"checksum": checksum, "description": description}
                )
            typer.echo(f"{cluster_id}\t{description}")
        print_stats(loader.stats, title="Clusters")
