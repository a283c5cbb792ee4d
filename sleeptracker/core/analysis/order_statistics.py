# sleeptracker/core/analysis/order_statistics.py
"""
Timezone-agnostic numeric helpers for irregular daily samples.

Clock values are minutes since local midnight. Circular helpers treat them
as points on a 24-hour clock so that 23:55 and 00:05 are 10 minutes apart.
"""

from typing import Optional, Sequence

import numpy as np

from sleeptracker.utils.constants import MINUTES_PER_DAY


def percentile_linear(values: Sequence[float], p: float) -> Optional[float]:
    """
    Linearly interpolated percentile.

    Args:
        values: Sample values (not modified)
        p: Percentile as a fraction, clamped to [0, 1]

    Returns:
        Value at rank p * (n - 1), or None for an empty input
    """
    if len(values) == 0:
        return None
    ordered = np.sort(np.asarray(values, dtype=np.float64))
    rank = min(max(p, 0.0), 1.0) * (len(ordered) - 1)
    lower = int(np.floor(rank))
    upper = int(np.ceil(rank))
    if lower == upper:
        return float(ordered[lower])
    weight = rank - lower
    return float(ordered[lower] * (1.0 - weight) + ordered[upper] * weight)


def median(values: Sequence[float]) -> Optional[float]:
    return percentile_linear(values, 0.5)


def median_selection(values: Sequence[float]) -> Optional[float]:
    """Median via partial selection; same result as median(), even lengths averaged"""
    n = len(values)
    if n == 0:
        return None
    arr = np.array(values, dtype=np.float64)
    mid = n // 2
    if n % 2 == 1:
        return float(np.partition(arr, mid)[mid])
    part = np.partition(arr, [mid - 1, mid])
    return float((part[mid - 1] + part[mid]) / 2.0)


def std_dev(values: Sequence[float]) -> Optional[float]:
    """Population standard deviation; None for fewer than two values"""
    if len(values) < 2:
        return None
    return float(np.std(np.asarray(values, dtype=np.float64), ddof=0))


def pct(part: int, total: int) -> Optional[float]:
    if total == 0:
        return None
    return part * 100.0 / total


def normalize_minutes(minutes: float) -> float:
    """Wrap a minute offset into [0, 1440)"""
    return ((minutes % MINUTES_PER_DAY) + MINUTES_PER_DAY) % MINUTES_PER_DAY


def circular_minutes_diff(a: float, b: float) -> float:
    """Shortest distance between two clock times, in [0, 720]"""
    diff = (a - b) % MINUTES_PER_DAY
    return min(diff, MINUTES_PER_DAY - diff)


def circular_signed_minutes_delta(later: float, earlier: float) -> float:
    """Signed shortest-path delta from earlier to later, in [-720, 720)"""
    half = MINUTES_PER_DAY / 2.0
    return ((later - earlier + half) % MINUTES_PER_DAY) - half


def within_clock_minute_band(value: float, center: float, threshold_min: float) -> bool:
    return circular_minutes_diff(value, center) <= threshold_min


def circular_abs_diff(a: Optional[float], b: Optional[float]) -> Optional[float]:
    """circular_minutes_diff when both sides are known"""
    if a is None or b is None:
        return None
    return circular_minutes_diff(a, b)
