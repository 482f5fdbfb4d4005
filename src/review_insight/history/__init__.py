"""Commit history, diff parsing and the line-provenance ledger."""

from .diff_parser import parse_show_output
from .git_source import GitHistorySource, filter_changes, select_window
from .ledger import date_ledger
from .models import (
    ChangeKind,
    Commit,
    DiffHunk,
    FileChangeRecord,
    FileDiff,
    History,
    LineRecord,
    LineStatus,
)
from .provenance import LineProvenanceTracker, ProvenanceResult, track_lines

__all__ = [
    "ChangeKind",
    "Commit",
    "DiffHunk",
    "FileChangeRecord",
    "FileDiff",
    "History",
    "LineRecord",
    "LineStatus",
    "GitHistorySource",
    "LineProvenanceTracker",
    "ProvenanceResult",
    "date_ledger",
    "filter_changes",
    "parse_show_output",
    "select_window",
    "track_lines",
]
