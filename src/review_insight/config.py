"""Configuration loading and management for Review Insight.

Configuration sources are merged in priority order:
    1. Defaults (defined in AnalysisConfig)
    2. Global config (~/.review-insight.toml)
    3. Project config (./review-insight.toml)
    4. Explicit config file
    5. Environment variables (REVIEW_INSIGHT_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(default_branch="main", workers=4)
    >>> config.default_branch
    'main'
"""

from __future__ import annotations

import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import InvalidConfigError, ReviewInsightError
from .stats.keys import KeyMode

ENV_PREFIX = "REVIEW_INSIGHT_"

HOUR = 3600
DAY = 24 * HOUR


@dataclass(frozen=True)
class AnalysisConfig:
    """Configuration for one analysis run.

    Attributes:
        History selection:
            default_branch: Branch whose first-parent history is replayed
            repository: "owner/name" of the analyzed repository, used to
                recognise self-merges of the default branch
            exclude_patterns: Regexes; matching paths are dropped before replay
            window_start: Inclusive unix timestamp lower bound (None = open)
            window_end: Exclusive unix timestamp upper bound (None = open)

        Diff extraction:
            diff_batch_size: Maximum commits per `git show` invocation
            workers: Thread pool size for diff extraction and replay
                (None = let the executor decide)
            git_timeout_seconds: Timeout for a single git subprocess

        Review signals:
            bot_actors: Logins never counted as human reviewers
            comment_kinds: Event kinds that count as human comments

        Aggregation:
            percentiles: Percentiles reported for every grouped summary
            key_mode: Group-key ordering, "lexical" or "numeric"
            lifetime_thresholds: CDF thresholds (seconds) for durations
    """

    default_branch: str = "master"
    repository: Optional[str] = None
    exclude_patterns: list[str] = field(default_factory=list)
    window_start: Optional[int] = None
    window_end: Optional[int] = None

    diff_batch_size: int = 100
    workers: Optional[int] = None
    git_timeout_seconds: int = 600

    bot_actors: list[str] = field(default_factory=list)
    comment_kinds: list[str] = field(
        default_factory=lambda: ["comment", "review_comment", "review"]
    )

    percentiles: list[float] = field(default_factory=lambda: [25.0, 50.0, 75.0, 90.0])
    key_mode: KeyMode = "lexical"
    lifetime_thresholds: list[int] = field(
        default_factory=lambda: [
            HOUR,
            DAY,
            7 * DAY,
            30 * DAY,
            90 * DAY,
            180 * DAY,
            365 * DAY,
            2 * 365 * DAY,
            5 * 365 * DAY,
        ]
    )

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.default_branch:
            raise InvalidConfigError("default_branch", self.default_branch, "must not be empty")

        for pattern in self.exclude_patterns:
            try:
                re.compile(pattern)
            except re.error as e:
                raise InvalidConfigError("exclude_patterns", pattern, str(e))

        if (
            self.window_start is not None
            and self.window_end is not None
            and self.window_start >= self.window_end
        ):
            raise InvalidConfigError(
                "window_end", self.window_end, "must be later than window_start"
            )

        if self.diff_batch_size < 1:
            raise InvalidConfigError("diff_batch_size", self.diff_batch_size, "must be at least 1")
        if self.workers is not None and self.workers < 1:
            raise InvalidConfigError("workers", self.workers, "must be at least 1")
        if self.git_timeout_seconds < 1:
            raise InvalidConfigError(
                "git_timeout_seconds", self.git_timeout_seconds, "must be at least 1"
            )

        if not self.percentiles:
            raise InvalidConfigError("percentiles", self.percentiles, "must not be empty")
        for pct in self.percentiles:
            if not 0.0 <= pct <= 100.0:
                raise InvalidConfigError("percentiles", pct, "must be between 0 and 100")

        if self.key_mode not in ("lexical", "numeric"):
            raise InvalidConfigError("key_mode", self.key_mode, "expected lexical or numeric")

        if list(self.lifetime_thresholds) != sorted(self.lifetime_thresholds):
            raise InvalidConfigError(
                "lifetime_thresholds", self.lifetime_thresholds, "must be ascending"
            )


def load_config(config_file: Optional[Path] = None, **overrides) -> AnalysisConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags). ``None``
            values are ignored so unset CLI options do not mask file values.

    Returns:
        Validated AnalysisConfig instance

    Raises:
        ReviewInsightError: If a config file is invalid or missing
    """
    merged: dict = {}

    global_config = Path.home() / ".review-insight.toml"
    if global_config.exists():
        try:
            merged.update(_load_toml_file(global_config))
        except tomllib.TOMLDecodeError as e:
            raise ReviewInsightError(f"Invalid global config '{global_config}': {e}")

    project_config = Path.cwd() / "review-insight.toml"
    if project_config.exists():
        try:
            merged.update(_load_toml_file(project_config))
        except tomllib.TOMLDecodeError as e:
            raise ReviewInsightError(f"Invalid project config '{project_config}': {e}")

    if config_file is not None:
        if not config_file.exists():
            raise ReviewInsightError(f"Config file not found: {config_file}")
        try:
            merged.update(_load_toml_file(config_file))
        except tomllib.TOMLDecodeError as e:
            raise ReviewInsightError(f"Invalid config file '{config_file}': {e}")

    merged.update(_load_env_vars())
    merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return AnalysisConfig(**merged)
    except TypeError as e:
        # Unknown field in config
        raise ReviewInsightError(f"Invalid configuration: {e}")


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from REVIEW_INSIGHT_* environment variables.

    List fields accept comma-separated values, e.g.
    ``REVIEW_INSIGHT_EXCLUDE_PATTERNS='^vendor/,^docs/'``.
    """
    type_hints = get_type_hints(AnalysisConfig)

    result: dict[str, Any] = {}

    for field_name in AnalysisConfig.__dataclass_fields__:
        env_key = f"{ENV_PREFIX}{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
        except ValueError as e:
            raise ReviewInsightError(f"Invalid {env_key}: {e}")
        if parsed is not None:
            result[field_name] = parsed

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse an environment variable string to the field's type.

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    origin = getattr(type_hint, "__origin__", None)
    args = getattr(type_hint, "__args__", ())

    # Optional[X] is Union[X, None]
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)
            args = getattr(type_hint, "__args__", ())

    if origin is list:
        item_type = args[0] if args else str
        items = [item.strip() for item in value.split(",") if item.strip()]
        return [_parse_env_value(item, item_type) for item in items]

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return the ``[review-insight]`` table or the top level."""
    with open(path, "rb") as f:
        data = tomllib.load(f)
    return data.get("review-insight", data)
