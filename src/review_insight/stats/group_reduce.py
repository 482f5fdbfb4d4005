"""Streaming group-reduce over (group-key, value) samples.

``reduce_sorted`` needs its input sorted by :func:`sort_key` under the same
mode and holds one accumulator at a time. ``reduce_unsorted`` hashes instead
and returns identical summaries in the same order, at the cost of holding
every group in memory.
"""

from __future__ import annotations

from typing import Any, Iterable, Iterator

from ..exceptions import UnsortedInputError
from .accumulator import GroupAccumulator, GroupSummary
from .keys import KeyMode, as_key, sort_key

Sample = tuple[Any, float]


def sort_samples(samples: Iterable[Sample], mode: KeyMode = "lexical") -> list[Sample]:
    """Stable global sort of samples by group key."""
    return sorted(samples, key=lambda s: sort_key(s[0], mode))


def reduce_sorted(
    samples: Iterable[Sample],
    mode: KeyMode = "lexical",
    percentiles: tuple[float, ...] = (50.0,),
) -> Iterator[GroupSummary]:
    """Emit one summary per contiguous group, on each key transition.

    Raises:
        UnsortedInputError: If a key sorts before its predecessor
    """
    acc: GroupAccumulator | None = None
    previous: tuple | None = None

    for key, value in samples:
        key = as_key(key)
        if acc is not None and key == acc.key:
            acc = acc.add(value)
            continue

        current = sort_key(key, mode)
        if acc is not None:
            if previous is not None and current < previous:
                raise UnsortedInputError(acc.key, key, mode)
            yield acc.summary(percentiles)

        acc = GroupAccumulator(key).add(value)
        previous = current

    if acc is not None:
        yield acc.summary(percentiles)


def reduce_unsorted(
    samples: Iterable[Sample],
    mode: KeyMode = "lexical",
    percentiles: tuple[float, ...] = (50.0,),
) -> list[GroupSummary]:
    """Hash-based equivalent of :func:`reduce_sorted` for unsorted input."""
    groups: dict[tuple, GroupAccumulator] = {}
    for key, value in samples:
        key = as_key(key)
        acc = groups.get(key)
        if acc is None:
            acc = groups[key] = GroupAccumulator(key)
        groups[key] = acc.add(value)

    ordered = sorted(groups, key=lambda k: sort_key(k, mode))
    return [groups[k].summary(percentiles) for k in ordered]
