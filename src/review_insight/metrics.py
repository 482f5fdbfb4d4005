"""Named statistics computed from the ledger, attribution table and sessions.

Each function returns the ``data`` payload of one statistic record.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from .history.models import LineRecord, LineStatus
from .logging_config import get_logger
from .review.attribution import AttributionTable
from .review.models import CommitLabel, PullRequest, ReviewLabel, Session
from .stats import Distribution, KeyMode, merge_join, reduce_sorted, sort_samples

logger = get_logger(__name__)


@dataclass(frozen=True)
class LabelledLine:
    """A ledger record joined with the label of its birth commit."""

    record: LineRecord
    label: CommitLabel

    @property
    def groups(self) -> tuple[str, ...]:
        """Coarse label plus, for reviewed lines, the comment class."""
        if self.label.group != self.label.label.value:
            return (self.label.label.value, self.label.group)
        return (self.label.label.value,)


def label_lines(
    records: Iterable[LineRecord], table: AttributionTable
) -> tuple[list[LabelledLine], int]:
    """Join ledger records to the label of their birth commit.

    Returns:
        (labelled lines, count of records whose birth commit has no label)
    """
    ledger = sorted(records, key=lambda r: r.birth_commit)
    labels = sorted(table.labels, key=lambda l: l.sha)
    joined: list[LabelledLine] = []
    unlabelled = 0
    for record, label in merge_join(
        ledger, labels, lambda r: r.birth_commit, lambda l: l.sha, how="left"
    ):
        if label is None:
            unlabelled += 1
            continue
        joined.append(LabelledLine(record, label))
    if unlabelled:
        logger.warning("%d ledger record(s) born outside the labelled commits", unlabelled)
    return joined, unlabelled


def _summaries(
    samples: Iterable[tuple], mode: KeyMode, percentiles: Sequence[float]
) -> list[dict]:
    ordered = sort_samples(samples, mode)
    return [s.to_dict() for s in reduce_sorted(ordered, mode, tuple(percentiles))]


def commit_review_coverage(table: AttributionTable) -> dict:
    groups = Counter(label.group for label in table.labels)
    return {
        "window_commits": len(table.labels),
        "reviewed": len(table.reviewed),
        "unreviewed": len(table.unreviewed),
        "zero_comment": groups.get("zero_comment", 0),
        "nonzero_comment": groups.get("nonzero_comment", 0),
        "sources": table.source_counts(),
        "rejected_pull_requests": len(table.rejected),
    }


def _died_lifetimes(lines: Iterable[LabelledLine]) -> list[tuple[str, float]]:
    samples = []
    for line in lines:
        lifetime = line.record.lifetime
        if lifetime is None:
            continue
        for group in line.groups:
            samples.append((group, float(lifetime)))
    return samples


def line_lifetime(
    lines: Sequence[LabelledLine], mode: KeyMode, percentiles: Sequence[float]
) -> dict:
    return {"groups": _summaries(_died_lifetimes(lines), mode, percentiles)}


def line_lifetime_cdf(lines: Sequence[LabelledLine], thresholds: Sequence[float]) -> dict:
    by_group: dict[str, list[float]] = {}
    for group, lifetime in _died_lifetimes(lines):
        by_group.setdefault(group, []).append(lifetime)
    return {
        group: [p.to_dict() for p in Distribution.cdf(sorted(values), thresholds)]
        for group, values in sorted(by_group.items())
    }


def line_survival(lines: Sequence[LabelledLine]) -> dict:
    counts: dict[str, Counter] = {}
    for line in lines:
        for group in line.groups:
            counts.setdefault(group, Counter())[line.record.status.value] += 1
    result = {}
    for group, c in sorted(counts.items()):
        live, died = c[LineStatus.LIVE.value], c[LineStatus.DIED.value]
        total = live + died
        result[group] = {
            "live": live,
            "died": died,
            "surviving_fraction": live / total if total else 0.0,
        }
    return result


def review_latency(
    pull_requests: Iterable[PullRequest],
    thresholds: Sequence[float],
    mode: KeyMode,
    percentiles: Sequence[float],
) -> dict:
    samples = [
        (pr.state.value, float(pr.latency)) for pr in pull_requests if pr.latency is not None
    ]
    return {
        "groups": _summaries(samples, mode, percentiles),
        "cdf": [
            p.to_dict() for p in Distribution.cdf(sorted(v for _, v in samples), thresholds)
        ],
    }


def comments_per_pr(
    pull_requests: Iterable[PullRequest],
    comment_counts: Mapping[int, int],
    percentiles: Sequence[float],
) -> dict:
    samples = [("all", float(comment_counts.get(pr.number, 0))) for pr in pull_requests]
    groups = _summaries(samples, "lexical", percentiles)
    return {
        "summary": groups[0] if groups else None,
        "zero_comment_prs": sum(1 for _, v in samples if v == 0),
    }


def plies_per_pr(sessions: Sequence[Session], percentiles: Sequence[float]) -> dict:
    samples = [("all", float(s.ply_count)) for s in sessions]
    groups = _summaries(samples, "lexical", percentiles)
    return {
        "summary": groups[0] if groups else None,
        "zero_exchange_prs": sum(1 for s in sessions if s.exchanges == 0),
        "third_party_prs": sum(1 for s in sessions if s.has_third_party),
    }


def engagement_time(
    sessions: Sequence[Session], reply_latency: float, percentiles: Sequence[float]
) -> dict:
    samples = [("all", float(s.engagement)) for s in sessions]
    groups = _summaries(samples, "lexical", percentiles)
    return {
        "reply_latency": reply_latency,
        "summary": groups[0] if groups else None,
    }


def reviewed_file_overlap(lines: Iterable[LabelledLine]) -> dict:
    """Weighted Jaccard of where reviewed and unreviewed lines were born."""
    births: dict[str, Counter] = {
        ReviewLabel.REVIEWED.value: Counter(),
        ReviewLabel.UNREVIEWED.value: Counter(),
    }
    for line in lines:
        births[line.label.label.value][line.record.path] += 1
    reviewed = births[ReviewLabel.REVIEWED.value]
    unreviewed = births[ReviewLabel.UNREVIEWED.value]
    return {
        "weighted_jaccard": Distribution.weighted_jaccard(reviewed, unreviewed),
        "reviewed_paths": len(reviewed),
        "unreviewed_paths": len(unreviewed),
    }
