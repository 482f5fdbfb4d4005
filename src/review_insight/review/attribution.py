"""Label every window commit reviewed or unreviewed, with justification.

Direct evidence comes from the rule table (commit message, closing
annotations, recorded merge shas). Commits without direct evidence may
inherit an attribution from another commit with the same committer identity
and commit timestamp: rebases and cherry-picks of an already reviewed change.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field, replace
from typing import Iterable, Mapping, Optional, Sequence

from ..history.models import Commit
from ..logging_config import get_logger
from .models import (
    AttributionSource,
    CommentClass,
    CommitLabel,
    PullRequest,
    ReviewAttribution,
    ReviewLabel,
    Window,
)
from .rules import DEFAULT_RULES, Evidence, LinkRule

logger = get_logger(__name__)


@dataclass
class AttributionTable:
    """One label per window commit, in commit order."""

    labels: list[CommitLabel]
    rejected: dict[int, str] = field(default_factory=dict)  # PR -> reason

    @property
    def by_sha(self) -> dict[str, CommitLabel]:
        return {label.sha: label for label in self.labels}

    @property
    def reviewed(self) -> set[str]:
        return {l.sha for l in self.labels if l.label == ReviewLabel.REVIEWED}

    @property
    def unreviewed(self) -> set[str]:
        return {l.sha for l in self.labels if l.label == ReviewLabel.UNREVIEWED}

    def source_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {s.value: 0 for s in AttributionSource}
        for label in self.labels:
            if label.attribution is not None:
                counts[label.attribution.source.value] += 1
        return counts

    def with_comment_split(self, comment_counts: Mapping[int, int]) -> "AttributionTable":
        """New table whose reviewed commits carry zero/non-zero comment classes."""
        labels = []
        for label in self.labels:
            if label.attribution is None:
                labels.append(label)
                continue
            count = comment_counts.get(label.attribution.pr_number, 0)
            comment_class = CommentClass.ZERO_COMMENT if count == 0 else CommentClass.NONZERO_COMMENT
            labels.append(replace(label, comment_class=comment_class))
        return AttributionTable(labels=labels, rejected=dict(self.rejected))


class ReviewAttributionResolver:
    """Resolve commit -> PR attribution for one analysis window.

    Args:
        pull_requests: Every known PR (the resolver filters them itself)
        window: Analysis window; commits and PRs outside it are ignored
        default_branch: Branch whose self-merges need no review
        repository: "owner/name" used to recognise self-merges
        annotations: sha -> external link texts ("closes #12")
        rules: Ordered rule table
    """

    def __init__(
        self,
        pull_requests: Iterable[PullRequest],
        window: Window = Window(),
        default_branch: str = "master",
        repository: Optional[str] = None,
        annotations: Optional[Mapping[str, Sequence[str]]] = None,
        rules: Sequence[LinkRule] = DEFAULT_RULES,
    ):
        self.window = window
        self.default_branch = default_branch
        self.repository = repository
        self.rules = tuple(rules)
        self._annotations = annotations or {}
        self._prs: dict[int, PullRequest] = {pr.number: pr for pr in pull_requests}
        self._merge_shas: dict[str, int] = {
            pr.merge_commit_sha: pr.number
            for pr in sorted(self._prs.values(), key=lambda p: p.number)
            if pr.merge_commit_sha
        }
        self.rejected: dict[int, str] = {}

    def rejection(self, number: int) -> Optional[str]:
        """Why a PR cannot justify a review label, or None if it can."""
        pr = self._prs.get(number)
        if pr is None:
            return "unknown pull request"
        if not pr.in_window(self.window):
            return "outside analysis window"
        if pr.is_self_merge(self.default_branch, self.repository):
            return "self-merge of default branch"
        return None

    def direct(self, commit: Commit) -> Optional[ReviewAttribution]:
        """First accepted match of the rule table, or None."""
        evidence = Evidence(
            sha=commit.sha,
            message=commit.message,
            annotations=tuple(self._annotations.get(commit.sha, ())),
        )
        for rule in self.rules:
            for number in rule.candidates(evidence, self._merge_shas):
                reason = self.rejection(number)
                if reason is None:
                    return ReviewAttribution(commit.sha, number, rule.source, rule.name)
                if number not in self.rejected:
                    logger.debug("Rejected PR #%d for %s: %s", number, commit.sha[:10], reason)
                self.rejected.setdefault(number, reason)
        return None

    def resolve(self, commits: Iterable[Commit]) -> AttributionTable:
        """Label every window commit; reviewed and unreviewed partition the window."""
        window_commits = sorted(
            (c for c in commits if self.window.contains(c.timestamp)),
            key=lambda c: c.sequence,
        )

        attributions: dict[str, ReviewAttribution] = {}
        for commit in window_commits:
            found = self.direct(commit)
            if found is not None:
                attributions[commit.sha] = found
        direct_count = len(attributions)

        attributions.update(cascade(window_commits, attributions))

        labels = [
            CommitLabel(
                sha=c.sha,
                label=ReviewLabel.REVIEWED if c.sha in attributions else ReviewLabel.UNREVIEWED,
                attribution=attributions.get(c.sha),
            )
            for c in window_commits
        ]
        logger.info(
            "Attributed %d of %d commits (%d direct, %d cascaded)",
            len(attributions), len(window_commits), direct_count,
            len(attributions) - direct_count,
        )
        return AttributionTable(labels=labels, rejected=dict(self.rejected))


def cascade(
    commits: Sequence[Commit], direct: Mapping[str, ReviewAttribution]
) -> dict[str, ReviewAttribution]:
    """Attributions inherited within (committer, timestamp) classes.

    Only direct attributions are copied, so every cascade entry points at a
    non-cascade one; when a class holds several, the earliest commit wins.
    """
    classes: dict[tuple[str, int], list[Commit]] = defaultdict(list)
    for commit in commits:
        classes[(commit.committer, commit.timestamp)].append(commit)

    inherited: dict[str, ReviewAttribution] = {}
    for members in classes.values():
        donors = [
            direct[c.sha] for c in members
            if c.sha in direct and direct[c.sha].source != AttributionSource.CASCADE
        ]
        if not donors:
            continue
        donor = donors[0]
        for commit in members:
            if commit.sha in direct:
                continue
            inherited[commit.sha] = ReviewAttribution(
                sha=commit.sha,
                pr_number=donor.pr_number,
                source=AttributionSource.CASCADE,
                rule="same_committer_and_time",
                via=donor.sha,
            )
    return inherited
