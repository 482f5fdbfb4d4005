"""Read first-parent history and diffs from a git checkout via subprocess."""

from __future__ import annotations

import re
import subprocess
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from pathlib import Path
from typing import Iterable, Optional

from ..config import AnalysisConfig
from ..exceptions import DiffFetchError, DiffParseError, EmptySelectionError, InvalidPathError
from ..logging_config import get_logger
from .diff_parser import SHOW_FORMAT, parse_show_output
from .models import ChangeKind, Commit, FileChangeRecord, FileDiff, History

logger = get_logger(__name__)

_FIELD = "\x1f"
_RECORD = "\x1e"


class GitHistorySource:
    """Commit stream, file-change stream and diff source for one branch."""

    def __init__(self, repo_path: str, config: Optional[AnalysisConfig] = None):
        self.repo_path = str(Path(repo_path).resolve())
        self.config = config or AnalysisConfig()
        if not self._is_git_repo():
            raise InvalidPathError(Path(self.repo_path), "not a git repository")

    def _is_git_repo(self) -> bool:
        try:
            result = subprocess.run(
                ["git", "-C", self.repo_path, "rev-parse", "--git-dir"],
                capture_output=True,
                text=True,
                timeout=5,
            )
            return result.returncode == 0
        except (FileNotFoundError, subprocess.TimeoutExpired):
            return False

    def _git(self, *args: str) -> bytes:
        # paths come back unescaped and pathspecs match file names exactly
        cmd = [
            "git", "-C", self.repo_path, "-c", "core.quotePath=false",
            "--literal-pathspecs", *args,
        ]
        result = subprocess.run(
            cmd, capture_output=True, timeout=self.config.git_timeout_seconds
        )
        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise subprocess.CalledProcessError(result.returncode, cmd, stderr=stderr)
        return result.stdout

    # -- commit stream -----------------------------------------------------

    def read_commits(self) -> list[Commit]:
        """First-parent commits of the default branch, oldest first."""
        fmt = _FIELD.join(["%H", "%ct", "%P", "%cn <%ce>", "%B"]) + _RECORD
        raw = self._git(
            "log", "--first-parent", "--topo-order", "--reverse",
            f"--format={fmt}", self.config.default_branch,
        ).decode("utf-8", errors="replace")
        return parse_commit_log(raw)

    def read_file_changes(self) -> list[FileChangeRecord]:
        """Name-status of every first-parent commit, renames detected."""
        raw = self._git(
            "log", "-m", "--first-parent", "--topo-order", "--name-status", "-M",
            f"--format={_RECORD}%H", self.config.default_branch,
        ).decode("utf-8", errors="replace")
        return parse_name_status(raw)

    def read_history(self) -> History:
        """Commits in the window plus their filtered file changes.

        Raises:
            EmptySelectionError: If no commit or no file survives filtering
        """
        all_commits = self.read_commits()
        commits = select_window(all_commits, self.config.window_start, self.config.window_end)
        logger.info("Selected %d of %d first-parent commits", len(commits), len(all_commits))
        if not commits:
            raise EmptySelectionError("commit selection", len(all_commits), "no commits in window")

        in_window = {c.sha for c in commits}
        changes = [ch for ch in self.read_file_changes() if ch.commit in in_window]
        kept, excluded = filter_changes(changes, self.config.exclude_patterns)
        logger.info("Kept %d file changes, excluded %d path(s)", len(kept), len(excluded))
        return History(commits=commits, changes=kept, excluded_paths=excluded)

    # -- diff source -------------------------------------------------------

    def read_diffs(self, changes: Iterable[FileChangeRecord], commits: list[Commit]) -> list[FileDiff]:
        """Fetch first-parent diffs for every change on a bounded worker pool.

        Commits touching the same path are fetched together, at most
        ``diff_batch_size`` per ``git show``. Renames are fetched one at a
        time with rename detection so their hunks apply to the old content.
        A failed batch is logged and skipped.
        """
        sequence = {c.sha: c.sequence for c in commits}
        by_key: dict[tuple[str, str], FileChangeRecord] = {}
        per_path: dict[str, list[str]] = defaultdict(list)
        renames: list[FileChangeRecord] = []
        for change in changes:
            if (change.commit, change.path) in by_key:
                continue
            by_key[(change.commit, change.path)] = change
            if change.kind == ChangeKind.RENAMED:
                renames.append(change)
            else:
                per_path[change.path].append(change.commit)

        jobs: list[tuple[str, list[str], Optional[str]]] = []
        size = self.config.diff_batch_size
        for path in sorted(per_path):
            shas = sorted(per_path[path], key=lambda s: sequence.get(s, 0))
            for i in range(0, len(shas), size):
                jobs.append((path, shas[i:i + size], None))
        for change in renames:
            jobs.append((change.path, [change.commit], change.old_path))

        diffs: list[FileDiff] = []
        failed = 0
        answered: set[tuple[str, str]] = set()
        with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
            futures = {executor.submit(self._show, *job): job for job in jobs}
            for future in as_completed(futures):
                path, shas, _ = futures[future]
                try:
                    batch = future.result()
                except (DiffFetchError, DiffParseError) as e:
                    failed += 1
                    answered.update((sha, path) for sha in shas)
                    logger.warning("Skipping %d commit(s) for %s: %s", len(shas), path, e)
                    continue
                for diff in batch:
                    change = by_key.get((diff.commit, diff.path))
                    if change is None or (diff.commit, diff.path) in answered:
                        continue
                    answered.add((diff.commit, diff.path))
                    diffs.append(replace(diff, kind=change.kind, old_path=change.old_path))

        if failed:
            logger.warning("%d of %d diff batch(es) failed; ledger is incomplete", failed, len(jobs))
        missing = sorted(key for key in by_key if key not in answered)
        if missing:
            logger.warning(
                "No diff returned for %d change(s), first %s in %s; ledger is incomplete",
                len(missing), missing[0][1], missing[0][0][:10],
            )
        diffs.sort(key=lambda d: (d.path, sequence.get(d.commit, 0)))
        return diffs

    def _show(self, path: str, shas: list[str], old_path: Optional[str]) -> list[FileDiff]:
        rename_flag = "-M" if old_path else "--no-renames"
        paths = [old_path, path] if old_path else [path]
        try:
            raw = self._git(
                "show", rename_flag, "-m", "--first-parent", "-U0", "--no-color",
                f"--format={SHOW_FORMAT}", *shas, "--", *paths,
            )
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as e:
            raise DiffFetchError(path, shas, str(e))
        return parse_show_output(raw, path)


def parse_commit_log(raw: str) -> list[Commit]:
    """Parse ``%H %ct %P %cn <%ce> %B`` records (unit/record separated)."""
    commits: list[Commit] = []
    for chunk in raw.split(_RECORD):
        chunk = chunk.strip("\n")
        if not chunk:
            continue
        parts = chunk.split(_FIELD, 4)
        if len(parts) < 5:
            logger.warning("Skipping malformed commit record: %r", chunk[:80])
            continue
        sha, ts, parents, committer, message = parts
        try:
            timestamp = int(ts)
        except ValueError:
            logger.warning("Skipping commit %s with bad timestamp %r", sha, ts)
            continue
        commits.append(
            Commit(
                sha=sha.strip(),
                timestamp=timestamp,
                parents=tuple(parents.split()),
                committer=committer,
                message=message.strip(),
                sequence=len(commits),
            )
        )
    return commits


_ESCAPES = {"a": 7, "b": 8, "t": 9, "n": 10, "v": 11, "f": 12, "r": 13, '"': 34, "\\": 92}
_OCTAL_RE = re.compile(r"[0-7]{3}")


def unquote_path(path: str) -> str:
    """Undo git's C-style quoting of a path (``"we\\"ird.txt"``, ``"caf\\303\\251"``).

    Unquoted paths are returned unchanged. Octal escapes are raw bytes and
    are decoded together as UTF-8.
    """
    if len(path) < 2 or path[0] != '"' or path[-1] != '"':
        return path
    body = path[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != "\\":
            out += ch.encode("utf-8")
            i += 1
            continue
        escape = body[i + 1:i + 2]
        if escape in _ESCAPES:
            out.append(_ESCAPES[escape])
            i += 2
        elif _OCTAL_RE.fullmatch(body[i + 1:i + 4]):
            out.append(int(body[i + 1:i + 4], 8))
            i += 4
        else:
            out += b"\\"
            i += 1
    return out.decode("utf-8", errors="replace")


def parse_name_status(raw: str) -> list[FileChangeRecord]:
    """Parse ``--name-status`` output whose records start with ``\\x1e<sha>``."""
    changes: list[FileChangeRecord] = []
    for chunk in raw.split(_RECORD):
        lines = [line for line in chunk.split("\n") if line.strip()]
        if not lines:
            continue
        sha = lines[0].strip()
        for line in lines[1:]:
            fields = line.split("\t")
            if len(fields) < 2:
                continue
            fields = [fields[0], *(unquote_path(f) for f in fields[1:])]
            kind = ChangeKind.from_status(fields[0])
            if kind == ChangeKind.RENAMED and len(fields) >= 3:
                changes.append(FileChangeRecord(sha, sha, fields[2], kind, old_path=fields[1]))
            elif fields[0].upper().startswith("C") and len(fields) >= 3:
                changes.append(FileChangeRecord(sha, sha, fields[2], ChangeKind.ADDED))
            else:
                changes.append(FileChangeRecord(sha, sha, fields[1], kind))
    return changes


def select_window(
    commits: list[Commit], start: Optional[int], end: Optional[int]
) -> list[Commit]:
    """Commits with ``start <= timestamp < end``, renumbered oldest first."""
    selected = [
        c for c in commits
        if (start is None or c.timestamp >= start) and (end is None or c.timestamp < end)
    ]
    return [replace(c, sequence=i) for i, c in enumerate(selected)]


def filter_changes(
    changes: list[FileChangeRecord], exclude_patterns: list[str]
) -> tuple[list[FileChangeRecord], set[str]]:
    """Drop changes to excluded paths; a rename survives if either side does.

    Raises:
        EmptySelectionError: If no change survives
    """
    all_paths = {ch.path for ch in changes} | {ch.old_path for ch in changes if ch.old_path}
    if not changes:
        raise EmptySelectionError("file filtering", 0, "no file changes in window")
    if not exclude_patterns:
        return list(changes), set()

    regex = re.compile("|".join(f"(?:{p})" for p in exclude_patterns))

    def allowed(path: Optional[str]) -> bool:
        return bool(path) and regex.search(path) is None

    kept: list[FileChangeRecord] = []
    for change in changes:
        if allowed(change.path):
            if change.kind == ChangeKind.RENAMED and not allowed(change.old_path):
                # the old side was never tracked, so this is where the file starts
                change = replace(change, kind=ChangeKind.ADDED, old_path=None)
            kept.append(change)
        elif change.kind == ChangeKind.RENAMED and allowed(change.old_path):
            # renamed into an excluded location: the old path's lines end here
            kept.append(replace(change, kind=ChangeKind.REMOVED, path=change.old_path, old_path=None))

    excluded = {p for p in all_paths if not allowed(p)}
    if not kept:
        raise EmptySelectionError("file filtering", len(all_paths), "every path was excluded")
    return kept, excluded
