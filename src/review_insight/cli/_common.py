"""Shared CLI helpers."""

from pathlib import Path
from typing import Optional

from rich.console import Console

from ..config import AnalysisConfig, load_config
from ..exceptions import (
    EmptySelectionError,
    InvalidConfigError,
    MissingCommitDateError,
    ReviewInsightError,
)
from ..review.models import parse_timestamp

console = Console()


def resolve_config(
    config: Optional[Path] = None,
    branch: Optional[str] = None,
    repository: Optional[str] = None,
    since: Optional[str] = None,
    until: Optional[str] = None,
    exclude: Optional[list[str]] = None,
    workers: Optional[int] = None,
    batch_size: Optional[int] = None,
) -> AnalysisConfig:
    """Build configuration from CLI options; unset options defer to files and env."""
    return load_config(
        config_file=config,
        default_branch=branch,
        repository=repository,
        window_start=_timestamp("window_start", since),
        window_end=_timestamp("window_end", until),
        exclude_patterns=list(exclude) if exclude else None,
        workers=workers,
        diff_batch_size=batch_size,
    )


def _timestamp(key: str, value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return parse_timestamp(value)
    except ValueError:
        raise InvalidConfigError(key, value, "expected ISO-8601 or unix seconds")


def report_error(error: ReviewInsightError) -> None:
    """Print a fatal error with the stage and counts a user needs to act on it."""
    if isinstance(error, EmptySelectionError):
        console.print(
            f"[red]Error:[/red] nothing left to analyze after [bold]{error.stage}[/bold] "
            f"({error.candidates} candidate(s) before filtering)"
        )
        if error.reason:
            console.print(f"  [dim]{error.reason}[/dim]")
    elif isinstance(error, MissingCommitDateError):
        where = f" (ledger record {error.record_index})" if error.record_index is not None else ""
        console.print(
            f"[red]Error:[/red] {error.role} commit [cyan]{error.sha}[/cyan] "
            f"is missing from the commit date index{where}"
        )
    else:
        console.print(f"[red]Error:[/red] {error}")
