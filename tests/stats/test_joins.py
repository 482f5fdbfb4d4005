"""Tests for merge-join and hash-join."""

import pytest

from review_insight.exceptions import UnsortedInputError
from review_insight.stats.joins import hash_join, merge_join

LEFT = [("a", 1), ("b", 2), ("b", 3), ("d", 4)]
RIGHT = [("a", "x"), ("b", "y"), ("b", "z"), ("c", "w")]


def first(record):
    return record[0]


class TestMergeJoin:
    def test_inner(self):
        pairs = list(merge_join(LEFT, RIGHT, first, first))
        assert [(l[1], r[1]) for l, r in pairs] == [
            (1, "x"), (2, "y"), (2, "z"), (3, "y"), (3, "z"),
        ]

    def test_left_keeps_unmatched(self):
        pairs = list(merge_join(LEFT, RIGHT, first, first, how="left"))
        assert pairs[-1] == (("d", 4), None)

    def test_unsorted_left_raises(self):
        with pytest.raises(UnsortedInputError):
            list(merge_join([("b", 1), ("a", 2)], RIGHT, first, first))

    def test_unsorted_right_raises(self):
        with pytest.raises(UnsortedInputError):
            list(merge_join(LEFT, [("b", 1), ("a", 2)], first, first))

    def test_unsupported_join_type(self):
        with pytest.raises(ValueError):
            list(merge_join(LEFT, RIGHT, first, first, how="outer"))


class TestHashJoin:
    @pytest.mark.parametrize("how", ["inner", "left"])
    def test_matches_merge_join_on_sorted_input(self, how):
        assert list(hash_join(LEFT, RIGHT, first, first, how=how)) == list(
            merge_join(LEFT, RIGHT, first, first, how=how)
        )

    def test_unsorted_input(self):
        pairs = list(hash_join([("b", 1), ("a", 2)], RIGHT, first, first))
        assert [(l[1], r[1]) for l, r in pairs] == [(1, "y"), (1, "z"), (2, "x")]
