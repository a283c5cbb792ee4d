# sleeptracker/core/analysis/day_samples.py
"""
Normalization of daily sleep rows into DaySample values.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterable, List, Mapping, Optional, Union

import pandas as pd

from sleeptracker.core.analysis.order_statistics import normalize_minutes
from sleeptracker.utils.constants import MINUTES_PER_DAY


@dataclass(frozen=True)
class DaySample:
    """A single wake date's sleep expressed in clock minutes"""

    wake_date: date
    bed_clock_min: float
    wake_clock_min: float
    bed_relative_min: float  # negative when the session crossed midnight
    wake_relative_min: float
    midpoint_clock_min: float
    duration_min: float
    quality: Optional[float]
    weekend: bool


def minutes_of_day(t: time) -> int:
    return t.hour * 60 + t.minute


def build_day_sample(row: Mapping) -> DaySample:
    """
    Map one daily row to a DaySample.

    Args:
        row: Mapping with wake_date, bed_time, wake_time, duration_min and
            an optional quality

    Returns:
        DaySample for the row
    """
    bed_time = row['bed_time']
    wake_time = row['wake_time']
    duration = float(row['duration_min'])

    bed_clock = float(minutes_of_day(bed_time))
    wake_clock = float(minutes_of_day(wake_time))
    crosses_midnight = bed_time > wake_time

    quality = row.get('quality')
    if quality is not None and pd.isna(quality):
        quality = None

    wake_date = row['wake_date']
    if isinstance(wake_date, datetime):
        wake_date = wake_date.date()
    return DaySample(
        wake_date=wake_date,
        bed_clock_min=bed_clock,
        wake_clock_min=wake_clock,
        bed_relative_min=bed_clock - MINUTES_PER_DAY if crosses_midnight else bed_clock,
        wake_relative_min=wake_clock,
        midpoint_clock_min=normalize_minutes(wake_clock - duration / 2.0),
        duration_min=duration,
        quality=float(quality) if quality is not None else None,
        weekend=wake_date.isoweekday() >= 6,
    )


def build_day_samples(rows: Union[pd.DataFrame, Iterable[Mapping]]) -> List[DaySample]:
    """Map all rows and return the samples ordered by wake date"""
    if isinstance(rows, pd.DataFrame):
        rows = rows.to_dict('records')
    samples = [build_day_sample(row) for row in rows]
    return sorted(samples, key=lambda s: s.wake_date)
