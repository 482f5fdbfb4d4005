"""Run CLI command -- the full pipeline, from history to statistics."""

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from ..exceptions import ReviewInsightError
from ..history import GitHistorySource
from ..logging_config import setup_logging
from ..pipeline import PipelineResult, ReviewPipeline
from ..storage import read_annotations, read_events, read_pull_requests, write_jsonl
from . import app
from ._common import console, report_error, resolve_config


@app.command()
def run(
    repo: Path = typer.Argument(
        Path("."),
        help="Path to the git repository",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
    pulls: Path = typer.Option(
        ..., "--pulls", "-p", help="PR metadata (JSON lines)", exists=True, dir_okay=False
    ),
    events: Path = typer.Option(
        ..., "--events", "-e", help="PR events (JSON lines)", exists=True, dir_okay=False
    ),
    annotations: Optional[Path] = typer.Option(
        None, "--annotations", help="Commit annotations (JSON lines)", exists=True, dir_okay=False
    ),
    output_dir: Path = typer.Option(
        Path("review-insight-out"), "--output-dir", "-o", help="Directory for all outputs"
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
    repository: Optional[str] = typer.Option(
        None, "--repository", "-r", help="owner/name, to recognise self-merges"
    ),
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
    Run the whole analysis and write ledger, attribution and statistics.

    Outputs (in --output-dir): ledger.jsonl.gz, binaries.jsonl,
    attribution.jsonl, sessions.jsonl and stats.jsonl.

    [bold cyan]Examples:[/bold cyan]

      review-insight run . --pulls prs.jsonl --events events.jsonl

      review-insight run repo -p prs.jsonl -e events.jsonl --since 2023-01-01T00:00:00Z
    """
    logger = setup_logging(verbose=verbose, quiet=quiet)

    try:
        cfg = resolve_config(config, branch, repository, since, until, exclude, workers, batch_size)
        prs = read_pull_requests(pulls)
        pr_events = read_events(events)
        notes = read_annotations(annotations) if annotations else None

        result = ReviewPipeline(cfg).run(
            GitHistorySource(str(repo), cfg), prs, pr_events, notes
        )
        _write_outputs(result, output_dir)
        if not quiet:
            _print_summary(result, output_dir)

    except ReviewInsightError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        report_error(e)
        raise typer.Exit(1)

    except KeyboardInterrupt:
        logger.info("Analysis interrupted by user")
        console.print("\n[yellow]Analysis interrupted[/yellow]")
        raise typer.Exit(130)


def _write_outputs(result: PipelineResult, output_dir: Path) -> None:
    write_jsonl(output_dir / "ledger.jsonl.gz", (r.to_dict() for r in result.ledger.records))
    write_jsonl(output_dir / "binaries.jsonl", ({"path": p} for p in sorted(result.ledger.binaries)))
    write_jsonl(output_dir / "attribution.jsonl", (l.to_dict() for l in result.attribution.labels))
    write_jsonl(
        output_dir / "sessions.jsonl",
        (
            {
                "pr": s.pr_number,
                "plies": s.ply_count,
                "engagement": s.engagement,
                "lifetime": s.lifetime,
                "participants": sorted(s.participants),
            }
            for s in result.sessions
        ),
    )
    write_jsonl(output_dir / "stats.jsonl", result.stats)


def _print_summary(result: PipelineResult, output_dir: Path) -> None:
    """Human-readable Rich table of the headline numbers."""
    coverage = next(s["data"] for s in result.stats if s["stat"] == "commit_review_coverage")
    survival = next(s["data"] for s in result.stats if s["stat"] == "line_survival")

    table = Table(title="Review Coverage", show_lines=False, pad_edge=True)
    table.add_column("Group", style="bold")
    table.add_column("Commits", justify="right")
    table.add_column("Lines live", justify="right", style="green")
    table.add_column("Lines died", justify="right", style="yellow")
    table.add_column("Surviving", justify="right", style="cyan")

    for group in ("reviewed", "zero_comment", "nonzero_comment", "unreviewed"):
        lines = survival.get(group, {"live": 0, "died": 0, "surviving_fraction": 0.0})
        table.add_row(
            group,
            str(coverage.get(group, 0)),
            str(lines["live"]),
            str(lines["died"]),
            f"{lines['surviving_fraction']:.1%}",
        )

    console.print()
    console.print(table)
    console.print(
        f"Reply latency constant: [bold]{result.reply_latency:.0f}s[/bold]  "
        f"Outputs: [cyan]{output_dir}[/cyan]"
    )
    console.print()
