"""
Logging configuration for Review Insight.

Replays run for minutes on large histories, so progress and skip-and-continue
warnings go to stderr through a rich handler while records go to stdout/files.
Each pipeline stage logs one ``Stage:`` line with the sizes it starts from;
a fatal error reads against the last such line.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "review_insight"


def setup_logging(verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """
    Attach a rich stderr handler to the review_insight logger.

    Calling it again replaces the handler from the previous call, so one
    process can run several commands.

    Args:
        verbose: Enable DEBUG level logging (per-line skips, source paths)
        quiet: Suppress all but ERROR level logging

    Returns:
        The configured review_insight logger
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        markup=False,
        show_path=verbose,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logger = logging.getLogger(ROOT_LOGGER)
    for old in list(logger.handlers):
        logger.removeHandler(old)
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger under the review_insight namespace (the root one for None)."""
    if name is None:
        return logging.getLogger(ROOT_LOGGER)
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def format_counts(**counts: int) -> str:
    """``commits=3, prs=1`` -> ``"3 commits, 1 prs"`` (underscores become spaces)."""
    return ", ".join(f"{count} {name.replace('_', ' ')}" for name, count in counts.items())


def log_stage(logger: logging.Logger, stage: str, **counts: int) -> None:
    """Log entry into a pipeline stage together with its input sizes."""
    if counts:
        logger.info("Stage: %s (%s)", stage, format_counts(**counts))
    else:
        logger.info("Stage: %s", stage)
