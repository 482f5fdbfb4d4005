"""Streaming group-reduce, joins and distribution utilities."""

from .accumulator import GroupAccumulator, GroupSummary
from .distribution import CDFPoint, Distribution
from .group_reduce import reduce_sorted, reduce_unsorted, sort_samples
from .joins import hash_join, merge_join
from .keys import KeyMode, natural_key, sort_key

__all__ = [
    "CDFPoint",
    "Distribution",
    "GroupAccumulator",
    "GroupSummary",
    "KeyMode",
    "hash_join",
    "merge_join",
    "natural_key",
    "reduce_sorted",
    "reduce_unsorted",
    "sort_key",
    "sort_samples",
]
