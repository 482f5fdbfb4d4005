"""Shared test fixtures for Review Insight tests."""

import shutil
import subprocess

import pytest

from review_insight.history.models import Commit, DiffHunk, FileDiff
from review_insight.review.models import PREvent, PRState, PullRequest


def _sha(n: int) -> str:
    return f"{n:040x}"


def _make_commit(n, ts, committer="Dev <dev@example.com>", message="", parents=None):
    if parents is None:
        parents = (_sha(n - 1),) if n > 1 else ()
    return Commit(
        sha=_sha(n),
        timestamp=ts,
        parents=tuple(parents),
        committer=committer,
        message=message,
        sequence=n - 1,
    )


def _hunk(commit, path, old_start, removed, new_start, added):
    return DiffHunk(
        commit=commit,
        path=path,
        old_start=old_start,
        old_count=len(removed),
        new_start=new_start,
        new_count=len(added),
        removed=tuple(removed),
        added=tuple(added),
    )


def _file_diff(commit, path, *hunks, **kwargs):
    return FileDiff(commit=commit, path=path, hunks=tuple(hunks), **kwargs)


@pytest.fixture
def sha():
    """n -> deterministic 40-hex commit id."""
    return _sha


@pytest.fixture
def make_commit():
    """Build commit n (sequence n-1) whose parent is commit n-1."""
    return _make_commit


@pytest.fixture
def hunk():
    """Build a -U0 hunk from removed/added line lists."""
    return _hunk


@pytest.fixture
def file_diff():
    return _file_diff


@pytest.fixture
def linear_commits():
    """Three single-parent commits one day apart."""
    return [_make_commit(i, 1_000_000 + i * 86_400) for i in (1, 2, 3)]


@pytest.fixture
def merged_pr():
    """PR 42, open for an hour at the start of 2021."""
    return PullRequest(
        number=42,
        state=PRState.MERGED,
        created_at=1_609_459_200,
        closed_at=1_609_462_800,
        merge_commit_sha=None,
        head_ref="feature",
        head_repo="acme/widgets",
        author="alice",
    )


@pytest.fixture
def review_events():
    """author, reviewer, reviewer, author on PR 42."""
    return [
        PREvent(42, "alice", "author", 100, "comment"),
        PREvent(42, "bob", "reviewer", 200, "review_comment"),
        PREvent(42, "bob", "reviewer", 260, "review_comment"),
        PREvent(42, "alice", "author", 400, "comment"),
    ]


def _git(repo, *args):
    subprocess.run(["git", "-C", str(repo), *args], check=True, capture_output=True)


@pytest.fixture
def git_repo(tmp_path, monkeypatch):
    """Repo on `master`: add two lines, rename the file, drop one line."""
    if shutil.which("git") is None:
        pytest.skip("git not found")
    for key, value in {
        "GIT_AUTHOR_NAME": "Dev",
        "GIT_AUTHOR_EMAIL": "dev@example.com",
        "GIT_COMMITTER_NAME": "Dev",
        "GIT_COMMITTER_EMAIL": "dev@example.com",
        "GIT_CONFIG_NOSYSTEM": "1",
        "HOME": str(tmp_path),
    }.items():
        monkeypatch.setenv(key, value)

    repo = tmp_path / "repo"
    repo.mkdir()
    _git(repo, "init", "-q")
    _git(repo, "symbolic-ref", "HEAD", "refs/heads/master")

    def commit(message, when):
        monkeypatch.setenv("GIT_AUTHOR_DATE", f"{when} +0000")
        monkeypatch.setenv("GIT_COMMITTER_DATE", f"{when} +0000")
        _git(repo, "add", "-A")
        _git(repo, "commit", "-q", "-m", message)

    (repo / "notes.txt").write_text("alpha\nbeta\n")
    commit("Add notes (#1)", 1_600_000_000)
    _git(repo, "mv", "notes.txt", "docs.txt")
    commit("Rename notes", 1_600_003_600)
    (repo / "docs.txt").write_text("beta\n")
    commit("Drop alpha", 1_600_007_200)
    return repo


