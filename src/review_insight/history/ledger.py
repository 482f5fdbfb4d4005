"""Attach commit timestamps to the provenance ledger."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Mapping

from ..exceptions import MissingCommitDateError
from ..logging_config import get_logger
from .models import LineRecord

logger = get_logger(__name__)


def date_ledger(records: Iterable[LineRecord], date_index: Mapping[str, int]) -> list[LineRecord]:
    """Return the ledger with ``birth_ts``/``death_ts`` filled in.

    Every birth and death commit must be in ``date_index``; lifetimes cannot
    be computed otherwise, so a miss aborts the run.

    A death commit whose committer time precedes the birth commit (clock skew,
    rebased history) is clamped to the birth time, giving a zero lifetime.

    Raises:
        MissingCommitDateError: If a referenced commit has no timestamp
    """
    dated: list[LineRecord] = []
    skewed = 0
    for index, record in enumerate(records):
        birth_ts = date_index.get(record.birth_commit)
        if birth_ts is None:
            raise MissingCommitDateError(record.birth_commit, "birth", index)

        death_ts = None
        if record.death_commit is not None:
            death_ts = date_index.get(record.death_commit)
            if death_ts is None:
                raise MissingCommitDateError(record.death_commit, "death", index)
            if death_ts < birth_ts:
                skewed += 1
                death_ts = birth_ts

        dated.append(replace(record, birth_ts=birth_ts, death_ts=death_ts))

    if skewed:
        logger.warning(
            "%d line(s) died in a commit dated before their birth commit; lifetimes clamped to 0",
            skewed,
        )
    return dated
