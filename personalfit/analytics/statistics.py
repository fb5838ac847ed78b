"""
Statistical Utilities

Small, total functions used by the correlation and adherence analytics.
None of them raise for well-typed input: degenerate input (empty series,
mismatched lengths, zero variance) yields a defined default instead.
"""

import logging
import math
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Pearson correlation coefficient between two equal-length series.

    r = (n*Sxy - Sx*Sy) / sqrt((n*Sxx - Sx^2) * (n*Syy - Sy^2))

    Args:
        x: First variable values
        y: Second variable values (same length as x)

    Returns:
        r in [-1, 1]; 0.0 when the series are empty, differ in length,
        or either one is constant

    Example:
        >>> pearson_correlation([1, 0, 1, 0], [7.5, 6.0, 8.0, 5.5])
        0.97...
    """
    n = len(x)
    if n == 0 or n != len(y):
        return 0.0

    sum_x = sum(x)
    sum_y = sum(y)
    sum_xy = sum(xi * yi for xi, yi in zip(x, y))
    sum_x2 = sum(xi * xi for xi in x)
    sum_y2 = sum(yi * yi for yi in y)

    numerator = n * sum_xy - sum_x * sum_y
    variance_product = (n * sum_x2 - sum_x ** 2) * (n * sum_y2 - sum_y ** 2)
    if variance_product <= 0:
        return 0.0

    denominator = math.sqrt(variance_product)
    if denominator == 0:
        return 0.0

    # Clamp floating point drift
    return max(-1.0, min(1.0, numerator / denominator))


def calculate_average(values: Sequence[float]) -> float:
    """Arithmetic mean, 0.0 for an empty series"""
    if not values:
        return 0.0
    return sum(values) / len(values)


def percent_change(new: float, baseline: float) -> Optional[float]:
    """
    Relative change from `baseline` to `new` in percent.

    Returns None when the baseline is 0 (change is undefined).
    """
    if baseline == 0:
        return None
    return (new - baseline) / abs(baseline) * 100


def percentage(part: int, total: int) -> int:
    """round(100 * part / total), half up; 0 when total is 0"""
    if total <= 0:
        return 0
    return int(100 * part / total + 0.5)
