"""CLI entry point; registers all subcommands."""

from typing import Optional

import typer

from .. import __version__
from ._common import console

app = typer.Typer(
    name="review-insight",
    help="Review Insight - code review coverage and line survival from git history",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def _show_version(value: bool) -> None:
    if value:
        console.print(
            f"[bold cyan]Review Insight[/bold cyan] version [green]{__version__}[/green]"
        )
        raise typer.Exit(0)


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        help="Show version and exit",
        callback=_show_version,
        is_eager=True,
    ),
):
    """Review Insight - which lines were reviewed, and how long they lived."""


# Import subcommands to register them
from .ledger import ledger as _ledger  # noqa: F401, E402
from .run import run as _run  # noqa: F401, E402
