"""JSON-lines input and output, gzip-compressed when the path ends in ``.gz``."""

from __future__ import annotations

import gzip
import json
from collections import defaultdict
from pathlib import Path
from typing import IO, Any, Iterable, Iterator

from ..exceptions import InvalidPathError
from ..logging_config import get_logger
from ..review.models import PREvent, PullRequest

logger = get_logger(__name__)


def _open(path: Path, mode: str) -> IO[str]:
    if path.suffix == ".gz":
        return gzip.open(path, mode + "t", encoding="utf-8")
    return open(path, mode, encoding="utf-8")


def read_jsonl(path: str | Path) -> Iterator[dict]:
    """Yield one dict per non-blank line.

    Malformed lines are logged and skipped.

    Raises:
        InvalidPathError: If the file does not exist
    """
    path = Path(path)
    if not path.is_file():
        raise InvalidPathError(path, "file not found")
    with _open(path, "r") as fh:
        for number, line in enumerate(fh, 1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning("%s:%d: skipping malformed record: %s", path, number, e)
                continue
            if not isinstance(record, dict):
                logger.warning("%s:%d: skipping non-object record", path, number)
                continue
            yield record


def write_jsonl(path: str | Path, records: Iterable[dict]) -> int:
    """Write records one per line, creating parent directories; returns the count."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with _open(path, "w") as fh:
        for record in records:
            fh.write(json.dumps(record, sort_keys=True, default=_default))
            fh.write("\n")
            count += 1
    logger.debug("Wrote %d record(s) to %s", count, path)
    return count


def _default(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    if isinstance(value, tuple):
        return list(value)
    if hasattr(value, "value"):
        return value.value
    raise TypeError(f"not JSON serializable: {type(value).__name__}")


def read_pull_requests(path: str | Path) -> list[PullRequest]:
    """PR metadata records; records missing required fields are skipped."""
    prs: list[PullRequest] = []
    for record in read_jsonl(path):
        try:
            prs.append(PullRequest.from_dict(record))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning("Skipping PR record %r: %s", record.get("number"), e)
    logger.info("Loaded %d pull request(s) from %s", len(prs), path)
    return prs


def read_events(path: str | Path) -> list[PREvent]:
    events: list[PREvent] = []
    for record in read_jsonl(path):
        try:
            events.append(PREvent.from_dict(record))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning("Skipping event record on PR %r: %s", record.get("pr"), e)
    logger.info("Loaded %d PR event(s) from %s", len(events), path)
    return events


def read_annotations(path: str | Path) -> dict[str, list[str]]:
    """sha -> annotation texts, in file order."""
    annotations: dict[str, list[str]] = defaultdict(list)
    for record in read_jsonl(path):
        sha, text = record.get("sha"), record.get("text")
        if not sha or text is None:
            logger.warning("Skipping annotation without sha or text")
            continue
        annotations[str(sha)].append(str(text))
    return dict(annotations)


def stat_record(name: str, data: dict) -> dict:
    return {"stat": name, "data": data}
