"""Record readers and writers."""

from .records import (
    read_annotations,
    read_events,
    read_jsonl,
    read_pull_requests,
    stat_record,
    write_jsonl,
)

__all__ = [
    "read_annotations",
    "read_events",
    "read_jsonl",
    "read_pull_requests",
    "stat_record",
    "write_jsonl",
]
