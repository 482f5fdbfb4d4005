"""Data models for commit history, diffs and the line-provenance ledger."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ChangeKind(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    RENAMED = "renamed"

    @classmethod
    def from_status(cls, status: str) -> "ChangeKind":
        """Map a git name-status letter (A, D, M, R100, T, C…) to a kind."""
        letter = status[:1].upper()
        if letter == "A" or letter == "C":
            return cls.ADDED
        if letter == "D":
            return cls.REMOVED
        if letter == "R":
            return cls.RENAMED
        return cls.MODIFIED


class LineStatus(str, Enum):
    LIVE = "live"
    DIED = "died"


@dataclass(frozen=True)
class Commit:
    sha: str
    timestamp: int  # committer time, unix seconds
    parents: tuple[str, ...]
    committer: str  # "Name <email>"
    message: str = ""
    sequence: int = 0  # position in oldest-first first-parent order

    @property
    def first_parent(self) -> Optional[str]:
        return self.parents[0] if self.parents else None

    @property
    def subject(self) -> str:
        return self.message.split("\n", 1)[0].strip()


@dataclass(frozen=True)
class FileChangeRecord:
    merge_head: str  # mainline commit this change arrived under
    commit: str
    path: str
    kind: ChangeKind
    old_path: Optional[str] = None  # set for renames


@dataclass(frozen=True)
class DiffHunk:
    commit: str
    path: str
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    # None marks a line whose bytes could not be decoded
    removed: tuple[Optional[str], ...] = ()
    added: tuple[Optional[str], ...] = ()
    binary: bool = False

    @classmethod
    def binary_marker(cls, commit: str, path: str) -> "DiffHunk":
        return cls(commit=commit, path=path, old_start=0, old_count=0,
                   new_start=0, new_count=0, binary=True)


@dataclass(frozen=True)
class FileDiff:
    """Every hunk one commit made to one path, against one parent."""

    commit: str
    path: str
    hunks: tuple[DiffHunk, ...] = ()
    parent: Optional[str] = None  # parent the diff was taken against
    kind: ChangeKind = ChangeKind.MODIFIED
    old_path: Optional[str] = None

    @property
    def binary(self) -> bool:
        return any(h.binary for h in self.hunks)


@dataclass(frozen=True)
class LineRecord:
    path: str
    line_id: int  # ordinal of the line's birth within its lineage
    birth_commit: str
    death_commit: Optional[str]
    status: LineStatus
    birth_ts: Optional[int] = None
    death_ts: Optional[int] = None

    @property
    def lifetime(self) -> Optional[int]:
        """Seconds between birth and death, None while live or undated."""
        if self.status != LineStatus.DIED or self.birth_ts is None or self.death_ts is None:
            return None
        return self.death_ts - self.birth_ts

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "line_id": self.line_id,
            "birth_commit": self.birth_commit,
            "death_commit": self.death_commit,
            "status": self.status.value,
            "birth_ts": self.birth_ts,
            "death_ts": self.death_ts,
            "lifetime": self.lifetime,
        }


@dataclass
class History:
    """Everything read from the commit source for one analysis window."""

    commits: list[Commit]  # oldest first
    changes: list[FileChangeRecord]
    excluded_paths: set[str] = field(default_factory=set)

    @property
    def date_index(self) -> dict[str, int]:
        return {c.sha: c.timestamp for c in self.commits}

    @property
    def paths(self) -> set[str]:
        return {ch.path for ch in self.changes}
