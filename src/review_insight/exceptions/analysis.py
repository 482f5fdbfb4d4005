"""Analysis-related exceptions: empty selections, missing dates, bad diffs."""

from typing import Optional

from .base import ReviewInsightError


class AnalysisError(ReviewInsightError):
    """Base class for analysis-related errors."""
    pass


class EmptySelectionError(AnalysisError):
    """Raised when filtering leaves nothing to analyze.

    Fatal. ``candidates`` is the number of items that existed before the
    filter ran, so a caller can tell "nothing matched" from "no input".
    """

    def __init__(self, stage: str, candidates: int, reason: str = ""):
        super().__init__(
            f"Nothing left to analyze after {stage}",
            details={"stage": stage, "candidates": candidates, "reason": reason},
        )
        self.stage = stage
        self.candidates = candidates
        self.reason = reason


class MissingCommitDateError(AnalysisError):
    """Raised when a ledger commit has no entry in the commit date index."""

    def __init__(self, sha: str, role: str, record_index: Optional[int] = None):
        super().__init__(
            f"{role} commit not found in date index: {sha}",
            details={"sha": sha, "role": role, "record": record_index},
        )
        self.sha = sha
        self.role = role
        self.record_index = record_index


class DiffFetchError(AnalysisError):
    """Raised when a batch of diffs cannot be read from the commit source."""

    def __init__(self, path: str, commits: list[str], reason: str):
        super().__init__(
            f"Cannot fetch diffs for {path}",
            details={"path": path, "commits": len(commits), "reason": reason},
        )
        self.path = path
        self.commits = commits
        self.reason = reason


class DiffParseError(AnalysisError):
    """Raised when diff text cannot be parsed into hunks."""

    def __init__(self, reason: str, line_number: Optional[int] = None, line: str = ""):
        super().__init__(
            f"Malformed diff output: {reason}",
            details={"reason": reason, "line": line_number, "text": line[:80]},
        )
        self.reason = reason
        self.line_number = line_number


class UnsortedInputError(AnalysisError):
    """Raised when a sorted-stream consumer sees keys out of order."""

    def __init__(self, previous: object, current: object, mode: str):
        super().__init__(
            "Input stream is not sorted by group key",
            details={"previous": repr(previous), "current": repr(current), "mode": mode},
        )
        self.previous = previous
        self.current = current
        self.mode = mode
