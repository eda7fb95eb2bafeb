"""Numeric helpers shared by the pipeline stages.

All helpers are total: empty inputs yield 0.0 instead of raising or
returning NaN, so nothing undefined can reach a persisted result.
"""

import math
from collections.abc import Sequence


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0.0 for an empty sequence."""
    if not values:
        return 0.0
    return sum(values) / len(values)


def sample_std_dev(values: Sequence[float]) -> float:
    """Sample standard deviation (n - 1); 0.0 for fewer than two values."""
    if len(values) < 2:
        return 0.0
    avg = mean(values)
    variance = sum((v - avg) ** 2 for v in values) / (len(values) - 1)
    return math.sqrt(variance)


def percentile(sorted_values: Sequence[float], pct: float) -> float:
    """Linear-interpolated percentile of an ascending sequence.

    Args:
        sorted_values: Values sorted ascending.
        pct: Percentile in range 0-100.

    Returns:
        Interpolated value, or 0.0 for an empty sequence.
    """
    if not sorted_values:
        return 0.0
    index = (pct / 100.0) * (len(sorted_values) - 1)
    lower = math.floor(index)
    upper = math.ceil(index)
    if lower == upper:
        return float(sorted_values[lower])
    fraction = index - lower
    return sorted_values[lower] * (1 - fraction) + sorted_values[upper] * fraction


def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    return max(lower, min(upper, value))


def round2(value: float) -> float:
    return round(value, 2)
