"""Per-group accumulator threaded through each reduction step."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np


def percentile_label(pct: float) -> str:
    return f"p{pct:g}"


@dataclass(frozen=True)
class GroupSummary:
    key: tuple
    count: int
    total: float
    mean: float
    stdev: float
    minimum: float
    maximum: float
    percentiles: dict[str, float] = field(default_factory=dict)

    @property
    def median(self) -> float:
        return self.percentiles["p50"]

    def to_dict(self) -> dict:
        data = {
            "key": list(self.key),
            "count": self.count,
            "sum": self.total,
            "mean": self.mean,
            "stdev": self.stdev,
            "min": self.minimum,
            "max": self.maximum,
        }
        data.update(self.percentiles)
        return data


@dataclass
class GroupAccumulator:
    """Running count, sum, sum of squares, extremes and values of one group.

    Values are kept so percentiles are exact; memory is bounded by the
    largest single group because only one accumulator is alive at a time.
    """

    key: tuple
    count: int = 0
    total: float = 0.0
    total_sq: float = 0.0
    minimum: float = math.inf
    maximum: float = -math.inf
    values: list[float] = field(default_factory=list)

    def add(self, value: float) -> "GroupAccumulator":
        value = float(value)
        self.count += 1
        self.total += value
        self.total_sq += value * value
        self.minimum = min(self.minimum, value)
        self.maximum = max(self.maximum, value)
        self.values.append(value)
        return self

    def summary(self, percentiles: tuple[float, ...] = (50.0,)) -> GroupSummary:
        """Close the group. Population standard deviation; median always reported."""
        if self.count == 0:
            raise ValueError(f"empty group {self.key!r}")
        mean = self.total / self.count
        variance = max(0.0, self.total_sq / self.count - mean * mean)
        pcts = sorted(set(percentiles) | {50.0})
        values = np.percentile(np.asarray(self.values, dtype=float), pcts)
        return GroupSummary(
            key=self.key,
            count=self.count,
            total=self.total,
            mean=mean,
            stdev=math.sqrt(variance),
            minimum=self.minimum,
            maximum=self.maximum,
            percentiles={percentile_label(p): float(v) for p, v in zip(pcts, values)},
        )
