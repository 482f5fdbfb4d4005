"""Parse `git show -U0` output into DiffHunk / FileDiff records.

The source runs one ``git show`` per batch of commits for a single path, with
``--format`` set to :data:`COMMIT_MARKER` followed by the commit and parent
shas. Everything between two markers belongs to that commit.
"""

from __future__ import annotations

import re
from typing import Optional

from ..exceptions import DiffParseError
from ..logging_config import get_logger
from .models import DiffHunk, FileDiff

logger = get_logger(__name__)

COMMIT_MARKER = "__commit__"
SHOW_FORMAT = f"{COMMIT_MARKER} %H %P"

_MARKER_RE = re.compile(rb"^" + COMMIT_MARKER.encode() + rb" ([0-9a-f]{40})((?: [0-9a-f]{40})*)\s*$")
_HUNK_RE = re.compile(rb"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
_BINARY_RE = re.compile(rb"^Binary files .* differ$")
_NO_NEWLINE = b"\\ No newline at end of file"


class _HunkBuilder:
    """Collects content lines until the header's counts are satisfied."""

    def __init__(self, commit: str, path: str, match: re.Match):
        self.commit = commit
        self.path = path
        self.old_start = int(match.group(1))
        self.old_count = int(match.group(2)) if match.group(2) is not None else 1
        self.new_start = int(match.group(3))
        self.new_count = int(match.group(4)) if match.group(4) is not None else 1
        self.removed: list[Optional[str]] = []
        self.added: list[Optional[str]] = []

    @property
    def complete(self) -> bool:
        return len(self.removed) == self.old_count and len(self.added) == self.new_count

    def build(self) -> DiffHunk:
        return DiffHunk(
            commit=self.commit,
            path=self.path,
            old_start=self.old_start,
            old_count=self.old_count,
            new_start=self.new_start,
            new_count=self.new_count,
            removed=tuple(self.removed),
            added=tuple(self.added),
        )


def decode_line(raw: bytes, commit: str, path: str) -> Optional[str]:
    """Decode one content line; undecodable bytes yield None with a warning."""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("Skipping undecodable line in %s at %s", path, commit[:10])
        return None


def parse_show_output(raw: bytes, path: str) -> list[FileDiff]:
    """Parse the output of one batched ``git show`` for ``path``.

    Args:
        raw: Undecoded stdout of ``git show --format=SHOW_FORMAT -U0 ...``
        path: The path the batch was restricted to

    Returns:
        One FileDiff per commit marker, in output order. Commits whose diff
        against the first parent is empty get a FileDiff with no hunks.

    Raises:
        DiffParseError: If content appears outside a hunk or a hunk is cut short
    """
    diffs: list[FileDiff] = []
    commit: Optional[str] = None
    parent: Optional[str] = None
    hunks: list[DiffHunk] = []
    current: Optional[_HunkBuilder] = None

    def flush_commit() -> None:
        if commit is None:
            return
        if current is not None and not current.complete:
            raise DiffParseError(f"hunk in {commit} ended early")
        diffs.append(FileDiff(commit=commit, path=path, hunks=tuple(hunks), parent=parent))

    lines = raw.split(b"\n")
    if lines and lines[-1] == b"":
        lines.pop()

    for lineno, line in enumerate(lines, start=1):
        if current is not None and not current.complete:
            if line.startswith(b"-") and len(current.removed) < current.old_count:
                current.removed.append(decode_line(line[1:], current.commit, path))
                continue
            if line.startswith(b"+") and len(current.added) < current.new_count:
                current.added.append(decode_line(line[1:], current.commit, path))
                continue
            if line == _NO_NEWLINE:
                continue
            raise DiffParseError(
                "unexpected line inside hunk", line_number=lineno,
                line=line.decode("utf-8", errors="replace"),
            )

        if current is not None:
            hunks.append(current.build())
            current = None

        marker = _MARKER_RE.match(line)
        if marker:
            flush_commit()
            commit = marker.group(1).decode()
            parents = marker.group(2).decode().split()
            parent = parents[0] if parents else None
            hunks = []
            continue

        if line == _NO_NEWLINE or not line.strip():
            continue

        if commit is None:
            raise DiffParseError(
                "diff output before commit marker", line_number=lineno,
                line=line.decode("utf-8", errors="replace"),
            )

        hunk_match = _HUNK_RE.match(line)
        if hunk_match:
            current = _HunkBuilder(commit, path, hunk_match)
            if current.complete:
                hunks.append(current.build())
                current = None
            continue

        if _BINARY_RE.match(line):
            hunks.append(DiffHunk.binary_marker(commit, path))
            continue

        # diff --git / index / --- / +++ / mode and similarity headers
        continue

    if current is not None and current.complete:
        hunks.append(current.build())
        current = None
    flush_commit()

    return diffs
