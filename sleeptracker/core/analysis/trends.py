# sleeptracker/core/analysis/trends.py
"""
Trend aggregation over daily sleep rows: per-day bars and day/week summaries.
"""

import logging
from datetime import date, datetime
from typing import List

import pandas as pd

from sleeptracker.core.analysis.order_statistics import median_selection
from sleeptracker.core.errors import InvalidInput
from sleeptracker.core.models.data_models import (
    DurationBucket,
    LatencyBucket,
    QualityBucket,
    SleepBar,
    SummaryResponse,
)
from sleeptracker.utils.constants import SUMMARY_BUCKETS

logger = logging.getLogger(__name__)


def _optional_int(value):
    if value is None or pd.isna(value):
        return None
    return int(value)


def bucket_key(wake_date: date, bucket: str) -> str:
    """Day buckets are ISO dates; week buckets are ISO weeks formatted YYYY-Www"""
    if isinstance(wake_date, datetime):
        wake_date = wake_date.date()
    if bucket == 'day':
        return wake_date.isoformat()
    iso_year, iso_week, _ = wake_date.isocalendar()
    return f"{iso_year:04d}-W{iso_week:02d}"


def sleep_bars(rows: pd.DataFrame) -> List[SleepBar]:
    """
    Convert daily rows into bar data points ordered by wake date.

    Args:
        rows: Daily projection with wake_date, bed_time, wake_time, quality
            and duration_min columns

    Returns:
        List of SleepBar
    """
    if rows is None or len(rows) == 0:
        return []

    bars = []
    for row in rows.sort_values('wake_date').to_dict('records'):
        bars.append(SleepBar(
            date=row['wake_date'],
            bed_time=row['bed_time'],
            wake_time=row['wake_time'],
            quality=_optional_int(row.get('quality')),
            duration_min=_optional_int(row.get('duration_min')),
        ))
    return bars


def summarize(rows: pd.DataFrame, bucket: str = 'day') -> SummaryResponse:
    """
    Aggregate duration, quality and latency per day or ISO week.

    Args:
        rows: Daily projection with wake_date, duration_min, quality and
            latency_min columns
        bucket: 'day' or 'week'

    Returns:
        SummaryResponse with buckets in ascending key order
    """
    if bucket not in SUMMARY_BUCKETS:
        raise InvalidInput("bucket must be day or week")
    if rows is None or len(rows) == 0:
        return SummaryResponse()

    df = rows.copy()
    df['bucket'] = df['wake_date'].apply(lambda d: bucket_key(d, bucket))

    duration_buckets = []
    quality_buckets = []
    latency_buckets = []
    for key, group in df.groupby('bucket', sort=True):
        durations = group['duration_min'].dropna()
        if len(durations) > 0:
            duration_buckets.append(DurationBucket(
                bucket=key,
                avg_min=float(durations.mean()),
                min_min=int(durations.min()),
                max_min=int(durations.max()),
            ))

        qualities = group['quality'].dropna()
        if len(qualities) > 0:
            quality_buckets.append(QualityBucket(bucket=key, avg=float(qualities.mean())))

        latency_median = median_selection(group['latency_min'].dropna().tolist())
        if latency_median is not None:
            latency_buckets.append(LatencyBucket(bucket=key, median=latency_median))

    logger.debug(f"Summarized {len(df)} daily rows into {len(duration_buckets)} {bucket} buckets")
    return SummaryResponse(
        duration_by_bucket=duration_buckets,
        quality_by_bucket=quality_buckets,
        latency_by_bucket=latency_buckets,
    )
