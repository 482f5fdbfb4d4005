"""Property-based tests for the distribution and group-reduce utilities."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from review_insight.stats.distribution import Distribution
from review_insight.stats.group_reduce import reduce_sorted, reduce_unsorted, sort_samples

weights = st.dictionaries(
    st.sampled_from(["a", "b", "c", "d", "e"]),
    st.floats(min_value=0.0, max_value=1e6, allow_nan=False, allow_infinity=False),
    max_size=5,
)
durations = st.lists(st.integers(min_value=0, max_value=10**9), max_size=50)
thresholds = st.lists(st.integers(min_value=0, max_value=10**9), max_size=10)
samples = st.lists(
    st.tuples(
        st.sampled_from(["file1", "file2", "file10", "reviewed", "unreviewed"]),
        st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False),
    ),
    max_size=60,
)


class TestWeightedJaccardProperties:
    @given(weights, weights)
    @settings(max_examples=200)
    def test_bounded_and_symmetric(self, a, b):
        forward = Distribution.weighted_jaccard(a, b)
        assert 0.0 <= forward <= 1.0
        assert forward == pytest.approx(Distribution.weighted_jaccard(b, a))

    @given(weights)
    def test_identical_sets(self, a):
        assert Distribution.weighted_jaccard(a, a) == pytest.approx(1.0)


class TestCDFProperties:
    @given(durations, thresholds)
    @settings(max_examples=200)
    def test_monotone_and_complete(self, values, cuts):
        points = Distribution.cdf(sorted(values), sorted(cuts))
        if not values:
            assert points == []
            return
        fractions = [p.fraction for p in points]
        assert fractions == sorted(fractions)
        assert all(0.0 <= f <= 1.0 for f in fractions)
        assert fractions[-1] == 1.0


class TestGroupReduceProperties:
    @given(samples, st.sampled_from(["lexical", "numeric"]))
    @settings(max_examples=200)
    def test_sorted_and_hashed_reductions_agree(self, data, mode):
        streamed = list(reduce_sorted(sort_samples(data, mode), mode))
        assert streamed == reduce_unsorted(data, mode)
        assert sum(s.count for s in streamed) == len(data)
        assert len({s.key for s in streamed}) == len(streamed)
