"""
Shrub CLI - Function commands.

Load functional assignments, creating their roles as needed.
"""

from pathlib import Path

import typer

from shrub.cli.context import get_config, open_loader, print_stats
from shrub.core.functions import FunctionManager

app = typer.Typer(
    name="functions",
    help="Load functional assignments",
    no_args_is_help=True,
)


@app.command()
def load(
    ctx: typer.Context,
    file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Text file with one function per line",
    ),
) -> None:
    """
    Find or insert each function in FILE.

    Prints the function ID and the text, tab separated. Malformed functions
    are printed with "-" as their ID.
    """
    config = get_config(ctx)
    with open_loader(ctx) as loader:
        functions = FunctionManager(
            loader,
            exclusive=config.ids.exclusive,
            max_attempts=config.ids.max_attempts,
            start=config.ids.counter_start,
        )
        try:
            for line in file.read_text().splitlines():
                function = line.strip()
                if not function:
                    continue
                function_id = functions.process(function)
                typer.echo(f"{'-' if function_id is None else function_id}\t{function}")
        finally:
            functions.close()
        print_stats(loader.stats, title="Function load")
