"""Cumulative distributions and weighted set overlap."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np


@dataclass(frozen=True)
class CDFPoint:
    threshold: float
    fraction: float

    def to_dict(self) -> dict:
        return {"threshold": self.threshold, "fraction": self.fraction}


class Distribution:
    """Distribution utilities shared by every reported metric."""

    @staticmethod
    def cdf(sorted_values: Sequence[float], thresholds: Sequence[float]) -> list[CDFPoint]:
        """
        Fraction of samples at or below each threshold.

        F(t) = |{x : x <= t}| / n

        When the thresholds stop short of the largest sample, a terminal point
        at that sample is appended so the final fraction is always 1.0.

        Args:
            sorted_values: Samples in ascending order
            thresholds: Ascending thresholds

        Returns:
            CDF points, non-decreasing; empty if there are no samples

        Raises:
            ValueError: If samples or thresholds are not ascending
        """
        values = np.asarray(sorted_values, dtype=float)
        cuts = np.asarray(thresholds, dtype=float)
        if values.size == 0:
            return []
        if values.size > 1 and np.any(np.diff(values) < 0):
            raise ValueError("sorted_values must be in ascending order")
        if cuts.size > 1 and np.any(np.diff(cuts) < 0):
            raise ValueError("thresholds must be in ascending order")

        counts = np.searchsorted(values, cuts, side="right")
        n = values.size
        points = [CDFPoint(float(t), float(c) / n) for t, c in zip(cuts, counts)]

        largest = float(values[-1])
        if not points or points[-1].threshold < largest:
            points.append(CDFPoint(largest, 1.0))
        return points

    @staticmethod
    def normalize(weights: Mapping[str, float]) -> dict[str, float]:
        """Scale weights to sum to 1.0; an all-zero set normalises to empty.

        Raises:
            ValueError: If any weight is negative
        """
        positive = _positive(weights)
        total = sum(positive.values())
        if total == 0:
            return {}
        return {k: w / total for k, w in positive.items()}

    @staticmethod
    def weighted_jaccard(
        a: Mapping[str, float], b: Mapping[str, float], normalize: bool = True
    ) -> float:
        """
        Weighted Jaccard similarity of two fractional-membership sets.

        J(A, B) = sum_k min(a_k, b_k) / sum_k max(a_k, b_k)

        Each set is normalised to total weight 1.0 first so sets of unequal
        cardinality remain comparable. Two empty sets are identical (1.0).

        Returns:
            Similarity in [0, 1]
        """
        if normalize:
            a = Distribution.normalize(a)
            b = Distribution.normalize(b)
        else:
            a = _positive(a)
            b = _positive(b)

        if not a and not b:
            return 1.0

        keys = set(a) | set(b)
        intersection = sum(min(a.get(k, 0.0), b.get(k, 0.0)) for k in keys)
        union = sum(max(a.get(k, 0.0), b.get(k, 0.0)) for k in keys)
        if union == 0:
            return 1.0
        return min(1.0, max(0.0, intersection / union))


def _positive(weights: Mapping[str, float]) -> dict[str, float]:
    for key, weight in weights.items():
        if weight < 0:
            raise ValueError(f"negative weight for {key!r}: {weight}")
    return {k: float(w) for k, w in weights.items() if w > 0}
