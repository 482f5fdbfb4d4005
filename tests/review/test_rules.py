"""Tests for the commit -> PR rule table."""

import re

import pytest

from review_insight.review.models import AttributionSource
from review_insight.review.rules import (
    DEFAULT_RULES,
    Evidence,
    MergeShaRule,
    PatternRule,
    is_priority_ordered,
)

SHA = "f" * 40


def rule(name):
    return next(r for r in DEFAULT_RULES if r.name == name)


def candidates(name, message="", annotations=(), merge_shas=None):
    evidence = Evidence(SHA, message, tuple(annotations))
    return rule(name).candidates(evidence, merge_shas or {})


class TestDefaultRules:
    def test_table_is_priority_ordered(self):
        """Commit-message rules precede autolinks, which precede merge shas."""
        assert is_priority_ordered(DEFAULT_RULES)

    def test_out_of_order_table_is_detected(self):
        assert not is_priority_ordered((MergeShaRule(), rule("merge_pull_request")))

    def test_merge_pull_request_subject(self):
        assert candidates("merge_pull_request", "Merge pull request #12 from a/b\n\nBody") == [12]

    def test_merge_pull_request_only_in_subject(self):
        assert candidates("merge_pull_request", "Subject\n\nMerge pull request #12 from a/b") == []

    def test_trailing_reference(self):
        assert candidates("trailing_reference", "Fix widget (#42)") == [42]

    def test_trailing_reference_must_end_subject(self):
        assert candidates("trailing_reference", "Fix (#42) widget") == []

    def test_pull_request_reference_in_subject(self):
        assert candidates("pull_request_reference", "Land PR #9 onto release\n\nBody") == [9]

    def test_pull_request_mention_in_body_is_ignored(self):
        assert candidates("pull_request_reference", "Tweak\n\nFollow-up to PR #12") == []

    @pytest.mark.parametrize(
        "message,expected",
        [
            ("Fixes #3", [3]),
            ("closes #4 and resolves #5", [4, 5]),
            ("Resolved: #6", [6]),
            ("closes#7", []),
            ("prefixes #8", []),
        ],
    )
    def test_closing_keywords(self, message, expected):
        assert candidates("closing_keyword", message) == expected

    def test_closing_annotation_reads_annotations_only(self):
        assert candidates("closing_annotation", "Closes #1", annotations=["fixes #2"]) == [2]

    def test_repeated_numbers_are_deduplicated(self):
        assert candidates("closing_keyword", "Fixes #3. Really fixes #3.") == [3]

    def test_merge_sha_rule(self):
        assert candidates("merge_commit_sha", merge_shas={SHA: 77}) == [77]
        assert candidates("merge_commit_sha", merge_shas={"0" * 40: 77}) == []


class TestPatternRule:
    def test_unknown_target_raises(self):
        broken = PatternRule("broken", AttributionSource.AUTOLINK, "title", re.compile(r"#(\d+)"))
        with pytest.raises(ValueError):
            broken.candidates(Evidence(SHA, "#1"), {})
