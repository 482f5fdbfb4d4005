"""Exception hierarchy for Review Insight."""

from .analysis import (
    AnalysisError,
    DiffFetchError,
    DiffParseError,
    EmptySelectionError,
    MissingCommitDateError,
    UnsortedInputError,
)
from .base import ReviewInsightError
from .config import (
    ConfigurationError,
    InvalidConfigError,
    InvalidPathError,
)

__all__ = [
    "ReviewInsightError",
    "AnalysisError",
    "EmptySelectionError",
    "MissingCommitDateError",
    "DiffFetchError",
    "DiffParseError",
    "UnsortedInputError",
    "ConfigurationError",
    "InvalidPathError",
    "InvalidConfigError",
]
