"""Ordinary least squares over a time-normalised window."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence


@dataclass(frozen=True)
class LinearFit:
    """Slope and intercept of a fitted line ``y = intercept + slope * x``."""

    slope: float
    intercept: float

    def predict(self, x: float) -> float:
        return self.intercept + self.slope * x


def normalize_times(timestamps: Sequence[datetime]) -> list[float]:
    """Elapsed seconds of each timestamp since the first one."""

    if not timestamps:
        return []
    origin = timestamps[0]
    return [(ts - origin).total_seconds() for ts in timestamps]


def fit_line(xs: Sequence[float], ys: Sequence[float]) -> Optional[LinearFit]:
    """Fit a least-squares line, or return ``None`` when the slope is undefined.

    ``None`` covers fewer than two points and degenerate windows whose
    x values have no spread (every reading at the same instant).
    """
    n = len(xs)
    if n < 2 or n != len(ys):
        return None

    sum_x = sum(xs)
    sum_y = sum(ys)
    sum_xy = sum(x * y for x, y in zip(xs, ys))
    sum_x2 = sum(x * x for x in xs)

    denominator = n * sum_x2 - sum_x * sum_x
    if denominator == 0:
        return None

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n
    if not (math.isfinite(slope) and math.isfinite(intercept)):
        return None
    return LinearFit(slope=slope, intercept=intercept)
