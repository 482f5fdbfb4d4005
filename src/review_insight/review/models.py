"""Data models for pull requests, review attribution and review turns."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


def parse_timestamp(value: Any) -> Optional[int]:
    """Unix seconds from an epoch number or an ISO-8601 string (``Z`` allowed)."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return int(value)
    text = str(value).strip()
    if text.lstrip("-").isdigit():
        return int(text)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


class PRState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    MERGED = "merged"


class AttributionSource(str, Enum):
    COMMIT_MESSAGE = "commit_message"
    AUTOLINK = "autolink"
    MERGE_COMMIT = "merge_commit"
    CASCADE = "cascade"


class ReviewLabel(str, Enum):
    REVIEWED = "reviewed"
    UNREVIEWED = "unreviewed"


class CommentClass(str, Enum):
    ZERO_COMMENT = "zero_comment"
    NONZERO_COMMENT = "nonzero_comment"


@dataclass(frozen=True)
class Window:
    """Half-open analysis window ``[start, end)``; None bounds are open."""

    start: Optional[int] = None
    end: Optional[int] = None

    def contains(self, ts: Optional[int]) -> bool:
        if ts is None:
            return False
        if self.start is not None and ts < self.start:
            return False
        if self.end is not None and ts >= self.end:
            return False
        return True


@dataclass(frozen=True)
class PullRequest:
    number: int
    state: PRState
    created_at: int
    closed_at: Optional[int] = None
    merge_commit_sha: Optional[str] = None
    head_ref: str = ""
    head_repo: str = ""
    author: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "PullRequest":
        """Build from a fetched PR record.

        GitHub reports merged PRs as ``state: closed`` with ``merged_at``
        set; those are normalised to MERGED.
        """
        state = PRState(str(data.get("state", "open")).lower())
        merged_at = parse_timestamp(data.get("merged_at"))
        if merged_at is not None:
            state = PRState.MERGED
        closed_at = parse_timestamp(data.get("closed_at")) or merged_at
        created_at = parse_timestamp(data.get("created_at"))
        if created_at is None:
            raise ValueError(f"PR {data.get('number')} has no created_at")
        return cls(
            number=int(data["number"]),
            state=state,
            created_at=created_at,
            closed_at=closed_at,
            merge_commit_sha=data.get("merge_commit_sha") or None,
            head_ref=data.get("head_ref") or "",
            head_repo=data.get("head_repo") or "",
            author=data.get("author") or None,
        )

    @property
    def latency(self) -> Optional[int]:
        """Seconds from opening to closing, None while open."""
        if self.closed_at is None:
            return None
        return max(0, self.closed_at - self.created_at)

    def in_window(self, window: Window) -> bool:
        return window.contains(self.created_at) or window.contains(self.closed_at)

    def is_self_merge(self, default_branch: str, repository: Optional[str]) -> bool:
        """True for a PR merging the repository's default branch into itself.

        A head repo that cannot be compared (no ``repository`` configured)
        is taken to be a fork; only a PR with no head repo at all is
        rejected then.
        """
        if self.head_ref != default_branch:
            return False
        if not self.head_repo:
            return True
        return repository is not None and self.head_repo == repository


@dataclass(frozen=True)
class ReviewAttribution:
    sha: str
    pr_number: int
    source: AttributionSource
    rule: str
    via: Optional[str] = None  # directly attributed sha a cascade entry copied


@dataclass(frozen=True)
class CommitLabel:
    sha: str
    label: ReviewLabel
    attribution: Optional[ReviewAttribution] = None
    comment_class: Optional[CommentClass] = None

    @property
    def group(self) -> str:
        """Finest label: zero_comment / nonzero_comment / reviewed / unreviewed."""
        if self.comment_class is not None:
            return self.comment_class.value
        return self.label.value

    def to_dict(self) -> dict:
        attribution = self.attribution
        return {
            "sha": self.sha,
            "label": self.label.value,
            "pr": attribution.pr_number if attribution else None,
            "source": attribution.source.value if attribution else None,
            "rule": attribution.rule if attribution else None,
            "via": attribution.via if attribution else None,
            "comments": self.comment_class.value if self.comment_class else None,
        }


@dataclass(frozen=True)
class PREvent:
    pr_number: int
    actor: str
    role: str
    timestamp: int
    kind: str

    @classmethod
    def from_dict(cls, data: dict) -> "PREvent":
        timestamp = parse_timestamp(data.get("timestamp"))
        if timestamp is None:
            raise ValueError(f"event on PR {data.get('pr')} has no timestamp")
        return cls(
            pr_number=int(data["pr"]),
            actor=str(data.get("actor") or ""),
            role=str(data.get("role") or ""),
            timestamp=timestamp,
            kind=str(data.get("kind") or "comment"),
        )


@dataclass(frozen=True)
class Ply:
    pr_number: int
    actor: str
    sequence: int
    timestamp: int  # first event of the run
    end_timestamp: int  # last event of the run
    event_count: int = 1


@dataclass(frozen=True)
class Session:
    """Every ply of one PR plus its engagement estimate."""

    pr_number: int
    plies: tuple[Ply, ...]
    engagement: float
    author: Optional[str] = None
    lifetime: Optional[int] = None

    @property
    def ply_count(self) -> int:
        return len(self.plies)

    @property
    def exchanges(self) -> int:
        """Actor changes; 0 when only one party ever acted."""
        return max(0, len(self.plies) - 1)

    @property
    def participants(self) -> set[str]:
        return {p.actor for p in self.plies}

    @property
    def has_third_party(self) -> bool:
        if self.author is None:
            return len(self.participants) > 1
        return any(actor != self.author for actor in self.participants)
