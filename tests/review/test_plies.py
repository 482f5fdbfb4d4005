"""Tests for review_insight.review.plies."""

from dataclasses import replace

import pytest

from review_insight.review.models import PREvent
from review_insight.review.plies import (
    average_reply_latency,
    build_sessions,
    count_human_comments,
    extract_plies,
    is_bot,
    reply_gaps,
)


class TestExtractPlies:
    def test_alternating_actors(self, review_events):
        """author, reviewer, reviewer, author -> three plies."""
        plies = extract_plies(review_events)
        assert [p.actor for p in plies] == ["alice", "bob", "alice"]
        assert [p.sequence for p in plies] == [0, 1, 2]
        assert plies[1].event_count == 2
        assert (plies[1].timestamp, plies[1].end_timestamp) == (200, 260)

    def test_no_events(self):
        assert extract_plies([]) == []

    def test_single_actor_is_one_ply(self):
        events = [PREvent(1, "alice", "author", t, "comment") for t in (10, 20, 30)]
        (ply,) = extract_plies(events)
        assert ply.event_count == 3

    def test_reply_gaps_run_from_end_of_previous_ply(self, review_events):
        assert reply_gaps(extract_plies(review_events)) == [100, 140]


class TestReplyLatency:
    def test_mean_over_all_prs(self, review_events):
        other = [PREvent(7, "carol", "author", 0, "comment"), PREvent(7, "dave", "reviewer", 60, "review")]
        plies = {42: extract_plies(review_events), 7: extract_plies(other)}
        assert average_reply_latency(plies) == pytest.approx((100 + 140 + 60) / 3)

    def test_no_replies(self):
        assert average_reply_latency({1: []}) == 0.0


class TestBuildSessions:
    def test_engagement_uses_transitions(self, merged_pr, review_events):
        """Three plies cost two replies at the run's mean gap."""
        (session,), latency = build_sessions([merged_pr], review_events)
        assert session.ply_count == 3
        assert session.exchanges == 2
        assert latency == pytest.approx(120.0)
        assert session.engagement == pytest.approx(240.0)
        assert session.has_third_party
        assert session.lifetime == 3600

    def test_author_only_pr_still_reported(self, merged_pr):
        events = [PREvent(42, "alice", "author", 10, "comment")]
        (session,), _ = build_sessions([merged_pr], events, reply_latency=500.0)
        assert session.exchanges == 0
        assert session.engagement == 0.0
        assert not session.has_third_party

    def test_pr_without_events_still_reported(self, merged_pr):
        (session,), latency = build_sessions([merged_pr], [])
        assert session.plies == ()
        assert latency == 0.0

    def test_unordered_events_are_sorted(self, merged_pr, review_events):
        (session,), _ = build_sessions([merged_pr], list(reversed(review_events)))
        assert [p.actor for p in session.plies] == ["alice", "bob", "alice"]

    def test_excluded_events_do_not_split_plies(self, merged_pr):
        events = [
            PREvent(42, "alice", "author", 10, "comment"),
            PREvent(42, "ci[bot]", "bot", 20, "comment"),
            PREvent(42, "alice", "author", 30, "comment"),
        ]
        (session,), _ = build_sessions(
            [merged_pr], events, exclude_event=lambda e: is_bot(e.actor, role=e.role)
        )
        assert session.ply_count == 1

    def test_sequence_restarts_for_each_pr(self, merged_pr, review_events):
        other = replace(merged_pr, number=43)
        events = review_events + [
            PREvent(43, "carol", "author", 150, "comment"),
            PREvent(43, "dave", "reviewer", 250, "review"),
        ]
        first, second = build_sessions([other, merged_pr], events)[0]
        assert [p.sequence for p in first.plies] == [0, 1, 2]
        assert [p.sequence for p in second.plies] == [0, 1]
        assert {p.pr_number for p in second.plies} == {43}

    def test_events_for_unknown_prs_are_ignored(self, merged_pr, review_events):
        stray = [PREvent(99, "eve", "reviewer", 5, "comment")]
        sessions, _ = build_sessions([merged_pr], review_events + stray)
        assert [s.pr_number for s in sessions] == [42]


class TestHumanComments:
    def test_counts_comment_kinds_only(self, review_events):
        events = review_events + [PREvent(42, "alice", "author", 500, "commit")]
        assert count_human_comments(events) == {42: 4}

    def test_bots_are_not_human(self):
        events = [
            PREvent(1, "dependabot[bot]", "", 1, "comment"),
            PREvent(1, "ci", "bot", 2, "comment"),
            PREvent(1, "helper", "reviewer", 3, "comment"),
            PREvent(1, "bob", "reviewer", 4, "comment"),
        ]
        assert count_human_comments(events, bot_actors=["helper"]) == {1: 1}

    def test_pr_without_comments_is_absent(self):
        assert count_human_comments([PREvent(1, "bob", "reviewer", 1, "approved")]) == {}
