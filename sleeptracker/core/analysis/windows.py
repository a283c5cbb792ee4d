# sleeptracker/core/analysis/windows.py
"""
Rolling window bounds and coverage statistics.

A "current" window ends on the as-of date; the "prior" window is the
immediately preceding, non-overlapping window of the same length.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Sequence, Tuple

from sleeptracker.core.analysis.day_samples import DaySample
from sleeptracker.core.errors import InvalidInput
from sleeptracker.core.models.data_models import PersonalizationWindow
from sleeptracker.utils.constants import MAX_WINDOW_DAYS, MIN_WINDOW_DAYS


@dataclass(frozen=True)
class WindowBounds:
    window_days: int
    current_from: date
    current_to: date
    prior_from: date
    prior_to: date


def validate_window_days(window_days: int) -> int:
    if not (MIN_WINDOW_DAYS <= window_days <= MAX_WINDOW_DAYS):
        raise InvalidInput("window_days must be between 1 and 365")
    return window_days


def compute_window_bounds(as_of: date, window_days: int) -> WindowBounds:
    """
    Compute current and prior window bounds for an as-of date.

    Args:
        as_of: Inclusive end of the current window
        window_days: Window length in days, 1..365

    Returns:
        WindowBounds with both windows inclusive on each end

    Raises:
        InvalidInput: for an out-of-range length or calendar underflow
    """
    validate_window_days(window_days)
    span = timedelta(days=window_days - 1)
    try:
        current_from = as_of - span
        prior_to = current_from - timedelta(days=1)
        prior_from = prior_to - span
    except OverflowError:
        raise InvalidInput("invalid date range")

    return WindowBounds(
        window_days=window_days,
        current_from=current_from,
        current_to=as_of,
        prior_from=prior_from,
        prior_to=prior_to,
    )


def window_stats(from_date: date, to_date: date, samples: Sequence[DaySample],
                 window_days: int) -> PersonalizationWindow:
    """Coverage of one window: distinct logged wake dates and the missing share"""
    logged_days = len({s.wake_date for s in samples})
    missing_days = max(0, window_days - logged_days)
    return PersonalizationWindow(
        from_date=from_date,
        to_date=to_date,
        logged_days=logged_days,
        missing_days=missing_days,
        missing_days_pct=missing_days * 100.0 / window_days,
    )


def split_samples(samples: Sequence[DaySample], bounds: WindowBounds) -> Tuple[List[DaySample], List[DaySample]]:
    """Partition samples into (current, prior) by wake date; others are dropped"""
    current = [s for s in samples if bounds.current_from <= s.wake_date <= bounds.current_to]
    prior = [s for s in samples if bounds.prior_from <= s.wake_date <= bounds.prior_to]
    return current, prior
