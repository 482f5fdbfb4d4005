"""End-to-end analysis: history -> ledger -> attribution -> sessions -> statistics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Protocol, Sequence

from . import metrics
from .config import AnalysisConfig
from .history import History, LineRecord, date_ledger, track_lines
from .history.models import Commit, FileChangeRecord, FileDiff
from .logging_config import get_logger, log_stage
from .review import (
    AttributionTable,
    PREvent,
    PullRequest,
    ReviewAttributionResolver,
    Session,
    Window,
    build_sessions,
    count_human_comments,
)
from .review.plies import is_bot
from .storage import stat_record

logger = get_logger(__name__)


class HistorySource(Protocol):
    def read_history(self) -> History: ...

    def read_diffs(
        self, changes: Iterable[FileChangeRecord], commits: list[Commit]
    ) -> list[FileDiff]: ...


@dataclass
class LedgerResult:
    history: History
    records: list[LineRecord]
    binaries: set[str] = field(default_factory=set)
    untracked_removals: int = 0


@dataclass
class PipelineResult:
    ledger: LedgerResult
    attribution: AttributionTable
    sessions: list[Session]
    reply_latency: float
    stats: list[dict]


class ReviewPipeline:
    """Run every stage with one configuration, logging stage and counts.

    Fatal stage errors (empty selection, missing commit dates) propagate
    to the caller unchanged.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or AnalysisConfig()

    @property
    def window(self) -> Window:
        return Window(self.config.window_start, self.config.window_end)

    def build_ledger(self, source: HistorySource) -> LedgerResult:
        log_stage(logger, "reading history")
        history = source.read_history()

        log_stage(logger, "extracting diffs", file_changes=len(history.changes))
        diffs = source.read_diffs(history.changes, history.commits)

        log_stage(logger, "replaying lines", diffs=len(diffs))
        result = track_lines(diffs, history.commits, self.config.workers)

        log_stage(logger, "dating ledger", records=len(result.records))
        records = date_ledger(result.records, history.date_index)
        logger.info(
            "Ledger: %d live, %d died, %d binary path(s)",
            result.live, result.died, len(result.binaries),
        )
        return LedgerResult(
            history=history,
            records=records,
            binaries=result.binaries,
            untracked_removals=result.untracked_removals,
        )

    def _is_bot(self, event: PREvent) -> bool:
        return is_bot(event.actor, self.config.bot_actors, event.role)

    def attribute(
        self,
        commits: Sequence[Commit],
        pull_requests: Sequence[PullRequest],
        events: Sequence[PREvent],
        annotations: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> AttributionTable:
        log_stage(
            logger, "attributing reviews", commits=len(commits), pull_requests=len(pull_requests)
        )
        resolver = ReviewAttributionResolver(
            pull_requests,
            window=self.window,
            default_branch=self.config.default_branch,
            repository=self.config.repository,
            annotations=annotations,
        )
        table = resolver.resolve(commits)
        counts = count_human_comments(events, self.config.comment_kinds, self.config.bot_actors)
        return table.with_comment_split(counts)

    def statistics(
        self,
        ledger: LedgerResult,
        table: AttributionTable,
        pull_requests: Sequence[PullRequest],
        events: Sequence[PREvent],
        sessions: Sequence[Session],
        reply_latency: float,
    ) -> list[dict]:
        cfg = self.config
        log_stage(logger, "computing statistics", ledger_records=len(ledger.records))
        lines, _ = metrics.label_lines(ledger.records, table)
        window_prs = [pr for pr in pull_requests if pr.in_window(self.window)]
        comments = count_human_comments(events, cfg.comment_kinds, cfg.bot_actors)
        thresholds = cfg.lifetime_thresholds

        return [
            stat_record("commit_review_coverage", metrics.commit_review_coverage(table)),
            stat_record(
                "line_lifetime", metrics.line_lifetime(lines, cfg.key_mode, cfg.percentiles)
            ),
            stat_record("line_lifetime_cdf", metrics.line_lifetime_cdf(lines, thresholds)),
            stat_record("line_survival", metrics.line_survival(lines)),
            stat_record(
                "review_latency",
                metrics.review_latency(window_prs, thresholds, cfg.key_mode, cfg.percentiles),
            ),
            stat_record(
                "comments_per_pr", metrics.comments_per_pr(window_prs, comments, cfg.percentiles)
            ),
            stat_record("plies_per_pr", metrics.plies_per_pr(sessions, cfg.percentiles)),
            stat_record(
                "engagement_time",
                metrics.engagement_time(sessions, reply_latency, cfg.percentiles),
            ),
            stat_record("reviewed_file_overlap", metrics.reviewed_file_overlap(lines)),
        ]

    def run(
        self,
        source: HistorySource,
        pull_requests: Sequence[PullRequest],
        events: Sequence[PREvent],
        annotations: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> PipelineResult:
        ledger = self.build_ledger(source)
        table = self.attribute(ledger.history.commits, pull_requests, events, annotations)

        window_prs = [pr for pr in pull_requests if pr.in_window(self.window)]
        log_stage(logger, "extracting plies", pull_requests=len(window_prs), events=len(events))
        sessions, reply_latency = build_sessions(window_prs, events, exclude_event=self._is_bot)

        stats = self.statistics(ledger, table, pull_requests, events, sessions, reply_latency)
        return PipelineResult(
            ledger=ledger,
            attribution=table,
            sessions=sessions,
            reply_latency=reply_latency,
            stats=stats,
        )
