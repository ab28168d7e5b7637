"""Main CLI application for MoneyLens.

This module provides the unified entry point for all MoneyLens CLI operations:
serving the API, seeding a database, and inspecting database contents.
"""

import logging
from typing import Annotated

import typer

from ..logging import setup_logging
from .commands import db, seed, serve

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="moneylens",
    help="MoneyLens: merchant spend aggregates, spending caps and card locks",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose debug logging",
        ),
    ] = False,
) -> None:
    """Global options for MoneyLens CLI."""
    setup_logging(cli_mode=True, verbose=verbose)


app.command("serve")(serve.serve)
app.command("seed")(seed.seed)
app.add_typer(db.app, name="db", help="Database inspection commands")


def main() -> None:
    """Entry point for the MoneyLens CLI application."""
    app()


if __name__ == "__main__":
    main()
