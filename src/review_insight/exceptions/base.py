"""Base exception for Review Insight."""

from typing import Mapping, Optional


class ReviewInsightError(Exception):
    """Base exception for all Review Insight errors.

    ``details`` holds the stage, counts and identifiers a user needs to act
    on the error. Values are stored as strings; None and empty values are
    dropped so optional context can be passed unconditionally.
    """

    def __init__(self, message: str, details: Optional[Mapping[str, object]] = None):
        super().__init__(message)
        self.message = message
        self.details = {
            key: str(value)
            for key, value in (details or {}).items()
            if value is not None and value != ""
        }

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message
