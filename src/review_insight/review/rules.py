"""Ordered rule table linking commits to pull requests.

Rules are tried in table order; the resolver stops at the first rule that
yields an acceptable PR. Each rule is a plain object so it can be tested in
isolation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping, Protocol

from .models import AttributionSource

SOURCE_PRIORITY = {
    AttributionSource.COMMIT_MESSAGE: 1,
    AttributionSource.AUTOLINK: 2,
    AttributionSource.MERGE_COMMIT: 3,
}


@dataclass(frozen=True)
class Evidence:
    """What a rule may look at for one commit."""

    sha: str
    message: str
    annotations: tuple[str, ...] = ()

    @property
    def subject(self) -> str:
        return self.message.split("\n", 1)[0].strip()


class LinkRule(Protocol):
    name: str
    source: AttributionSource

    def candidates(self, evidence: Evidence, merge_shas: Mapping[str, int]) -> list[int]: ...


@dataclass(frozen=True)
class PatternRule:
    """Extract PR numbers from the first capturing group that matched.

    ``target`` selects the text searched: ``subject``, ``message`` or
    ``annotations``.
    """

    name: str
    source: AttributionSource
    target: str
    pattern: re.Pattern[str]

    def texts(self, evidence: Evidence) -> list[str]:
        if self.target == "subject":
            return [evidence.subject]
        if self.target == "message":
            return [evidence.message]
        if self.target == "annotations":
            return list(evidence.annotations)
        raise ValueError(f"unknown evidence field: {self.target!r}")

    def candidates(self, evidence: Evidence, merge_shas: Mapping[str, int]) -> list[int]:
        found: list[int] = []
        for text in self.texts(evidence):
            for match in self.pattern.finditer(text):
                number = next(g for g in match.groups() if g is not None)
                if int(number) not in found:
                    found.append(int(number))
        return found


@dataclass(frozen=True)
class MergeShaRule:
    """The commit is some PR's recorded merge commit."""

    name: str = "merge_commit_sha"
    source: AttributionSource = AttributionSource.MERGE_COMMIT

    def candidates(self, evidence: Evidence, merge_shas: Mapping[str, int]) -> list[int]:
        number = merge_shas.get(evidence.sha)
        return [number] if number is not None else []


_CLOSING = r"\b(?:close[sd]?|fix(?:e[sd])?|resolve[sd]?)\s*:?\s+#(\d+)\b"

DEFAULT_RULES: tuple[LinkRule, ...] = (
    PatternRule(
        "merge_pull_request",
        AttributionSource.COMMIT_MESSAGE,
        "subject",
        re.compile(r"^Merge pull request #(\d+)\b"),
    ),
    PatternRule(
        "trailing_reference",
        AttributionSource.COMMIT_MESSAGE,
        "subject",
        re.compile(r"\(#(\d+)\)\s*$"),
    ),
    PatternRule(
        "pull_request_reference",
        AttributionSource.COMMIT_MESSAGE,
        "subject",
        re.compile(r"\b(?:[Pp]ull [Rr]equest|PR) #(\d+)\b"),
    ),
    PatternRule(
        "closing_annotation",
        AttributionSource.AUTOLINK,
        "annotations",
        re.compile(_CLOSING, re.IGNORECASE),
    ),
    PatternRule(
        "closing_keyword",
        AttributionSource.AUTOLINK,
        "message",
        re.compile(_CLOSING, re.IGNORECASE),
    ),
    MergeShaRule(),
)


def is_priority_ordered(rules: tuple[LinkRule, ...]) -> bool:
    """True when no rule precedes one of a higher-priority source."""
    ranks = [SOURCE_PRIORITY[r.source] for r in rules]
    return ranks == sorted(ranks)
