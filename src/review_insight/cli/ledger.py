"""Ledger CLI command -- replay history into a dated line ledger."""

from pathlib import Path
from typing import Optional

import typer

from ..exceptions import ReviewInsightError
from ..history import GitHistorySource
from ..logging_config import setup_logging
from ..pipeline import ReviewPipeline
from ..storage import write_jsonl
from . import app
from ._common import console, report_error, resolve_config


@app.command()
def ledger(
    repo: Path = typer.Argument(
        Path("."),
        help="Path to the git repository",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
    output: Path = typer.Option(
        Path("ledger.jsonl.gz"),
        "--output",
        "-o",
        help="Ledger output (JSON lines; gzip when ending in .gz)",
    ),
    binaries: Optional[Path] = typer.Option(
        None,
        "--binaries",
        help="Write binary paths here (default: next to the ledger)",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="TOML configuration file",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Branch to replay"),
    since: Optional[str] = typer.Option(None, "--since", help="Window start (ISO-8601 or epoch)"),
    until: Optional[str] = typer.Option(None, "--until", help="Window end, exclusive"),
    exclude: Optional[list[str]] = typer.Option(
        None, "--exclude", "-x", help="Regex of paths to drop (repeatable)"
    ),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, max=64),
    batch_size: Optional[int] = typer.Option(
        None, "--batch-size", min=1, help="Commits per git show invocation"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable DEBUG logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
):
    """
    Replay first-parent history into a line ledger.

    Every line ever added on the branch gets one record: its birth commit,
    its death commit (if any) and both timestamps.

    [bold cyan]Examples:[/bold cyan]

      review-insight ledger /path/to/repo -o ledger.jsonl.gz

      review-insight ledger . --branch main --exclude '^vendor/'
    """
    logger = setup_logging(verbose=verbose, quiet=quiet)

    try:
        cfg = resolve_config(config, branch, None, since, until, exclude, workers, batch_size)
        result = ReviewPipeline(cfg).build_ledger(GitHistorySource(str(repo), cfg))

        written = write_jsonl(output, (r.to_dict() for r in result.records))
        binaries_path = binaries or output.with_name("binaries.jsonl")
        write_jsonl(binaries_path, ({"path": p} for p in sorted(result.binaries)))

        console.print(
            f"[green]Wrote[/green] {written} ledger record(s) to {output} "
            f"and {len(result.binaries)} binary path(s) to {binaries_path}"
        )

    except ReviewInsightError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        report_error(e)
        raise typer.Exit(1)

    except KeyboardInterrupt:
        logger.info("Ledger build interrupted by user")
        console.print("\n[yellow]Interrupted[/yellow]")
        raise typer.Exit(130)
