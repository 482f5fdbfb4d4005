"""Review attribution and review-turn extraction."""

from .attribution import AttributionTable, ReviewAttributionResolver, cascade
from .models import (
    AttributionSource,
    CommentClass,
    CommitLabel,
    PREvent,
    Ply,
    PRState,
    PullRequest,
    ReviewAttribution,
    ReviewLabel,
    Session,
    Window,
    parse_timestamp,
)
from .plies import (
    average_reply_latency,
    build_sessions,
    count_human_comments,
    extract_plies,
)
from .rules import DEFAULT_RULES, Evidence, MergeShaRule, PatternRule

__all__ = [
    "AttributionSource",
    "AttributionTable",
    "CommentClass",
    "CommitLabel",
    "DEFAULT_RULES",
    "Evidence",
    "MergeShaRule",
    "PatternRule",
    "PREvent",
    "Ply",
    "PRState",
    "PullRequest",
    "ReviewAttribution",
    "ReviewAttributionResolver",
    "ReviewLabel",
    "Session",
    "Window",
    "average_reply_latency",
    "build_sessions",
    "cascade",
    "count_human_comments",
    "extract_plies",
    "parse_timestamp",
]
