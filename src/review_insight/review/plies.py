"""Turn PR event timelines into review turns (plies) and engagement estimates.

Active review time cannot be read off the timeline, which is mostly waiting.
Instead every ply after the first is charged a flat cost: the mean gap
between consecutive replies over all PRs in the run.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Callable, Iterable, Mapping, Optional, Sequence

import numpy as np

from ..logging_config import get_logger
from .models import PREvent, Ply, PullRequest, Session

logger = get_logger(__name__)


def is_bot(actor: str, bot_actors: Iterable[str] = (), role: str = "") -> bool:
    return role == "bot" or actor.endswith("[bot]") or actor in set(bot_actors)


def group_events(events: Iterable[PREvent]) -> dict[int, list[PREvent]]:
    """Events per PR in chronological order; ties keep arrival order."""
    grouped: dict[int, list[PREvent]] = defaultdict(list)
    for event in events:
        grouped[event.pr_number].append(event)
    for timeline in grouped.values():
        timeline.sort(key=lambda e: e.timestamp)
    return dict(grouped)


def extract_plies(events: Sequence[PREvent]) -> list[Ply]:
    """Split one PR's chronological events into maximal same-actor runs."""
    plies: list[Ply] = []
    for event in events:
        if plies and plies[-1].actor == event.actor:
            last = plies[-1]
            plies[-1] = Ply(
                pr_number=last.pr_number,
                actor=last.actor,
                sequence=last.sequence,
                timestamp=last.timestamp,
                end_timestamp=event.timestamp,
                event_count=last.event_count + 1,
            )
            continue
        plies.append(
            Ply(
                pr_number=event.pr_number,
                actor=event.actor,
                sequence=len(plies),
                timestamp=event.timestamp,
                end_timestamp=event.timestamp,
            )
        )
    return plies


def reply_gaps(plies: Sequence[Ply]) -> list[int]:
    """Seconds from the end of each ply to the start of the next."""
    return [max(0, b.timestamp - a.end_timestamp) for a, b in zip(plies, plies[1:])]


def average_reply_latency(plies_by_pr: Mapping[int, Sequence[Ply]]) -> float:
    """Mean consecutive-reply gap across every PR; 0.0 with no replies."""
    gaps = [gap for plies in plies_by_pr.values() for gap in reply_gaps(plies)]
    if not gaps:
        return 0.0
    return float(np.mean(gaps))


def engagement_estimate(plies: Sequence[Ply], reply_latency: float) -> float:
    """Flat per-reply cost for every ply after the first."""
    return max(0, len(plies) - 1) * reply_latency


def count_human_comments(
    events: Iterable[PREvent],
    comment_kinds: Iterable[str] = ("comment", "review_comment", "review"),
    bot_actors: Iterable[str] = (),
) -> dict[int, int]:
    """Comments per PR, ignoring bots and non-comment events."""
    kinds = set(comment_kinds)
    bots = set(bot_actors)
    counts: dict[int, int] = defaultdict(int)
    for event in events:
        if event.kind in kinds and not is_bot(event.actor, bots, event.role):
            counts[event.pr_number] += 1
    return dict(counts)


def build_sessions(
    pull_requests: Iterable[PullRequest],
    events: Iterable[PREvent],
    exclude_event: Optional[Callable[[PREvent], bool]] = None,
    reply_latency: Optional[float] = None,
) -> tuple[list[Session], float]:
    """One session per PR, including PRs that never saw a second actor.

    Args:
        pull_requests: PRs to report on; each yields exactly one session
        events: Event stream for any PRs (others are ignored)
        exclude_event: Predicate dropping events (e.g. bots) before ply extraction
        reply_latency: Override for the per-ply cost; computed from the
            events when None

    Returns:
        (sessions ordered by PR number, reply latency constant used)
    """
    prs = {pr.number: pr for pr in pull_requests}
    kept = (e for e in events if e.pr_number in prs and not (exclude_event and exclude_event(e)))
    timelines = group_events(kept)
    plies_by_pr = {number: extract_plies(timelines.get(number, [])) for number in prs}

    if reply_latency is None:
        reply_latency = average_reply_latency(plies_by_pr)
    logger.info("Average reply latency: %.0fs over %d PR(s)", reply_latency, len(prs))

    sessions = []
    for number in sorted(prs):
        pr = prs[number]
        plies = plies_by_pr[number]
        sessions.append(
            Session(
                pr_number=number,
                plies=tuple(plies),
                engagement=engagement_estimate(plies, reply_latency),
                author=pr.author,
                lifetime=pr.latency,
            )
        )
    return sessions, reply_latency
