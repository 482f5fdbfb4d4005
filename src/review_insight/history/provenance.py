"""Replay first-parent diffs to give every line a birth and death commit.

Each file's history is replayed independently, except that renames couple the
old and new path: paths connected by renames form a *lineage* and are replayed
together on one worker. Lineages share no state, so they run concurrently.

Positions the replay has never observed (lines that predate the window, or
whose bytes could not be decoded) are held by ``None`` placeholders. They keep
later hunks aligned and are never emitted; removing one counts as an
untracked removal.
"""

from __future__ import annotations

from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from ..logging_config import get_logger
from .models import ChangeKind, Commit, DiffHunk, FileDiff, LineRecord, LineStatus

logger = get_logger(__name__)


@dataclass(frozen=True)
class _LiveLine:
    line_id: int
    birth_commit: str
    content: str


@dataclass
class ProvenanceResult:
    records: list[LineRecord]
    binaries: set[str] = field(default_factory=set)
    untracked_removals: int = 0
    skipped_diffs: int = 0

    @property
    def died(self) -> int:
        return sum(1 for r in self.records if r.status == LineStatus.DIED)

    @property
    def live(self) -> int:
        return sum(1 for r in self.records if r.status == LineStatus.LIVE)


class LineProvenanceTracker:
    """Replay the diffs of one lineage, oldest commit first.

    Args:
        first_parents: sha -> first parent sha. Diffs taken against any other
            parent are ignored, so content a merge brings in from a side
            branch is born once, at the merge, on the mainline.
    """

    def __init__(self, first_parents: Optional[Mapping[str, Optional[str]]] = None):
        self._first_parents = first_parents or {}
        self._live: dict[str, list[Optional[_LiveLine]]] = {}
        self._records: list[LineRecord] = []
        self._seen: set[tuple[str, str]] = set()
        self._next_id = 0
        self.binaries: set[str] = set()
        self.untracked_removals = 0
        self.skipped_diffs = 0

    def apply(self, diff: FileDiff) -> None:
        """Apply every hunk one commit made to one path."""
        key = (diff.commit, diff.path)
        if key in self._seen:
            logger.debug("Ignoring repeated diff for %s at %s", diff.path, diff.commit[:10])
            self.skipped_diffs += 1
            return

        expected_parent = self._first_parents.get(diff.commit)
        if diff.parent is not None and expected_parent is not None and diff.parent != expected_parent:
            logger.debug(
                "Ignoring diff of %s at %s against non-first parent %s",
                diff.path, diff.commit[:10], diff.parent[:10],
            )
            self.skipped_diffs += 1
            return
        self._seen.add(key)

        if diff.kind == ChangeKind.RENAMED and diff.old_path and diff.old_path != diff.path:
            self._rename(diff.old_path, diff.path)

        if diff.binary or diff.path in self.binaries:
            if diff.path not in self.binaries:
                logger.debug("Excluding binary file %s", diff.path)
            self.binaries.add(diff.path)
            self._live.pop(diff.path, None)
            return

        lines = self._live.setdefault(diff.path, [])
        offset = 0
        for hunk in diff.hunks:
            offset += self._apply_hunk(lines, hunk, offset)

        if diff.kind == ChangeKind.REMOVED:
            for line in lines:
                if line is not None:
                    self._emit_death(diff.path, line, diff.commit)
            self._live.pop(diff.path, None)

    def finish(self) -> ProvenanceResult:
        """Emit still-live lines and return the lineage's ledger."""
        for path in sorted(self._live):
            for line in self._live[path]:
                if line is None:
                    continue
                self._records.append(
                    LineRecord(
                        path=path,
                        line_id=line.line_id,
                        birth_commit=line.birth_commit,
                        death_commit=None,
                        status=LineStatus.LIVE,
                    )
                )
        self._live.clear()

        records = [r for r in self._records if r.path not in self.binaries]
        return ProvenanceResult(
            records=records,
            binaries=set(self.binaries),
            untracked_removals=self.untracked_removals,
            skipped_diffs=self.skipped_diffs,
        )

    def _rename(self, old_path: str, new_path: str) -> None:
        if old_path in self.binaries:
            self.binaries.add(new_path)
        moved = self._live.pop(old_path, None)
        if moved is None:
            return
        if self._live.get(new_path):
            logger.debug("Rename %s -> %s replaces tracked content", old_path, new_path)
        self._live[new_path] = moved

    def _apply_hunk(self, lines: list[Optional[_LiveLine]], hunk: DiffHunk, offset: int) -> int:
        """Apply one hunk in place; return its effect on later positions."""
        if hunk.old_count:
            start = hunk.old_start - 1 + offset
            _pad(lines, start + hunk.old_count)
            removed = lines[start:start + hunk.old_count]
            del lines[start:start + hunk.old_count]
            for line in removed:
                if line is None:
                    self.untracked_removals += 1
                    logger.debug(
                        "Untracked removal in %s at %s", hunk.path, hunk.commit[:10]
                    )
                else:
                    self._emit_death(hunk.path, line, hunk.commit)

        if hunk.new_count:
            insert_at = hunk.new_start - 1
            _pad(lines, insert_at)
            born: list[Optional[_LiveLine]] = []
            for content in hunk.added:
                if content is None:
                    born.append(None)
                    continue
                born.append(_LiveLine(self._next_id, hunk.commit, content))
                self._next_id += 1
            lines[insert_at:insert_at] = born

        return hunk.new_count - hunk.old_count

    def _emit_death(self, path: str, line: _LiveLine, commit: str) -> None:
        self._records.append(
            LineRecord(
                path=path,
                line_id=line.line_id,
                birth_commit=line.birth_commit,
                death_commit=commit,
                status=LineStatus.DIED,
            )
        )


def _pad(lines: list[Optional[_LiveLine]], length: int) -> None:
    """Extend with untracked placeholders up to ``length`` entries."""
    if len(lines) < length:
        lines.extend([None] * (length - len(lines)))


def group_lineages(diffs: Iterable[FileDiff]) -> list[list[FileDiff]]:
    """Partition diffs into rename-connected lineages (union-find on paths)."""
    parent: dict[str, str] = {}

    def find(path: str) -> str:
        parent.setdefault(path, path)
        while parent[path] != path:
            parent[path] = parent[parent[path]]
            path = parent[path]
        return path

    diffs = list(diffs)
    for diff in diffs:
        find(diff.path)
        if diff.old_path:
            a, b = find(diff.path), find(diff.old_path)
            if a != b:
                parent[max(a, b)] = min(a, b)

    groups: dict[str, list[FileDiff]] = defaultdict(list)
    for diff in diffs:
        groups[find(diff.path)].append(diff)
    return [groups[root] for root in sorted(groups)]


def replay_lineage(
    diffs: list[FileDiff],
    sequence: Mapping[str, int],
    first_parents: Mapping[str, Optional[str]],
) -> ProvenanceResult:
    """Replay one lineage in commit order; renames go first within a commit."""
    tracker = LineProvenanceTracker(first_parents)
    known = [d for d in diffs if d.commit in sequence]
    if len(known) != len(diffs):
        logger.warning(
            "Skipping %d diff(s) for commits outside the analysed history",
            len(diffs) - len(known),
        )
    known.sort(key=lambda d: (sequence[d.commit], d.kind != ChangeKind.RENAMED, d.path))
    for diff in known:
        tracker.apply(diff)
    result = tracker.finish()
    result.skipped_diffs += len(diffs) - len(known)
    return result


def track_lines(
    diffs: Iterable[FileDiff],
    commits: list[Commit],
    workers: Optional[int] = None,
) -> ProvenanceResult:
    """Replay every lineage concurrently and merge the ledgers.

    Args:
        diffs: First-parent file diffs in any order
        commits: Commits of the analysed history; ``sequence`` fixes replay order
        workers: Thread pool size (None = executor default)

    Returns:
        Combined result; records ordered by (path, line_id, status)
    """
    sequence = {c.sha: c.sequence for c in commits}
    first_parents = {c.sha: c.first_parent for c in commits}
    lineages = group_lineages(diffs)

    combined = ProvenanceResult(records=[])
    if not lineages:
        return combined

    with ThreadPoolExecutor(max_workers=workers) as executor:
        results = executor.map(
            lambda lineage: replay_lineage(lineage, sequence, first_parents), lineages
        )
        for result in results:
            combined.records.extend(result.records)
            combined.binaries.update(result.binaries)
            combined.untracked_removals += result.untracked_removals
            combined.skipped_diffs += result.skipped_diffs

    combined.records.sort(key=lambda r: (r.path, r.line_id, r.status.value))
    if combined.untracked_removals:
        logger.info(
            "%d removed line(s) predate the analysed window (untracked removals)",
            combined.untracked_removals,
        )
    logger.info(
        "Replayed %d lineage(s): %d died, %d live, %d binary path(s)",
        len(lineages), combined.died, combined.live, len(combined.binaries),
    )
    return combined
