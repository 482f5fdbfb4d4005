"""Relational joins over typed records: sorted merge-join and hash-join.

Both yield ``(left, right)`` pairs in left order, right matches in right
order, and ``(left, None)`` for unmatched left records when ``how="left"``.
Given inputs sorted by key they produce identical output.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, Iterable, Iterator, Optional, TypeVar

from ..exceptions import UnsortedInputError
from .keys import KeyMode, sort_key

L = TypeVar("L")
R = TypeVar("R")

_END = object()


def _check_how(how: str) -> None:
    if how not in ("inner", "left"):
        raise ValueError(f"unsupported join type: {how!r}")


def merge_join(
    left: Iterable[L],
    right: Iterable[R],
    left_key: Callable[[L], Any],
    right_key: Callable[[R], Any],
    how: str = "inner",
    mode: KeyMode = "lexical",
) -> Iterator[tuple[L, Optional[R]]]:
    """Join two streams already sorted by key under ``mode``.

    Only the right-hand records sharing the current key are buffered.

    Raises:
        UnsortedInputError: If either side is out of order
    """
    _check_how(how)
    right_it = iter(right)
    pending: Any = next(right_it, _END)
    last_right: Optional[tuple] = None
    last_left: Optional[tuple] = None
    group_key: Optional[tuple] = None
    group: list[R] = []

    for record in left:
        key = sort_key(left_key(record), mode)
        if last_left is not None and key < last_left:
            raise UnsortedInputError(last_left, key, mode)
        last_left = key

        if key != group_key:
            group_key, group = key, []
            while pending is not _END:
                pending_key = sort_key(right_key(pending), mode)
                if last_right is not None and pending_key < last_right:
                    raise UnsortedInputError(last_right, pending_key, mode)
                if pending_key > key:
                    break
                last_right = pending_key
                if pending_key == key:
                    group.append(pending)
                pending = next(right_it, _END)

        if group:
            for match in group:
                yield record, match
        elif how == "left":
            yield record, None


def hash_join(
    left: Iterable[L],
    right: Iterable[R],
    left_key: Callable[[L], Any],
    right_key: Callable[[R], Any],
    how: str = "inner",
) -> Iterator[tuple[L, Optional[R]]]:
    """Join without ordering requirements by indexing the right side."""
    _check_how(how)
    index: dict[Any, list[R]] = defaultdict(list)
    for record in right:
        index[right_key(record)].append(record)

    for record in left:
        matches = index.get(left_key(record))
        if matches:
            for match in matches:
                yield record, match
        elif how == "left":
            yield record, None
