# sleeptracker/core/analysis/time_resolver.py
"""
DST-aware time handling for sleep sessions.

Sleep sessions are keyed by the calendar date of waking ("wake-date"
semantics): when the bed time is later in the day than the wake time the
session started on the previous calendar day. Local wall-clock times are
resolved to absolute instants in the user's timezone before durations are
computed, so a night that crosses a DST transition gets its real length.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sleeptracker.core.errors import InvalidInput
from sleeptracker.utils.constants import FALLBACK_TIMEZONE, INT32_MAX, MAX_DST_GAP_MINUTES

logger = logging.getLogger(__name__)


def resolve_timezone(name, fallback=False) -> ZoneInfo:
    """
    Look up an IANA timezone by name.

    Args:
        name: Zone name such as "America/New_York"
        fallback: When True, unknown names resolve to the fallback zone
            instead of raising

    Returns:
        ZoneInfo for the zone
    """
    try:
        return ZoneInfo(str(name).strip())
    except (ZoneInfoNotFoundError, ValueError):
        if fallback:
            logger.warning(f"Unknown timezone {name!r}, falling back to {FALLBACK_TIMEZONE}")
            return ZoneInfo(FALLBACK_TIMEZONE)
        raise InvalidInput("invalid timezone")


def local_candidates(tz: ZoneInfo, naive: datetime) -> List[datetime]:
    """Return every UTC instant whose wall-clock time in tz equals naive, earliest first"""
    candidates = []
    for fold in (0, 1):
        instant = naive.replace(tzinfo=tz, fold=fold).astimezone(timezone.utc)
        # A time inside a spring-forward gap does not survive the round trip
        if instant.astimezone(tz).replace(tzinfo=None) != naive:
            continue
        if instant not in candidates:
            candidates.append(instant)
    return sorted(candidates)


def sleep_window_bounds(wake_date: date, bed_time: time, wake_time: time) -> Tuple[datetime, datetime]:
    """
    Naive local (bed, wake) datetimes of a session under wake-date semantics.

    Raises:
        InvalidInput: if the bed date would fall before the first calendar day
    """
    if bed_time > wake_time:
        try:
            bed_date = wake_date - timedelta(days=1)
        except OverflowError:
            raise InvalidInput("invalid date (underflow)")
    else:
        bed_date = wake_date
    return datetime.combine(bed_date, bed_time), datetime.combine(wake_date, wake_time)


class TimeResolver:
    """Resolves local bed/wake times to instants and computes durations"""

    def __init__(self, default_tz=FALLBACK_TIMEZONE):
        self.default_tz = resolve_timezone(default_tz, fallback=True)

    def resolve_local(self, tz: ZoneInfo, naive: datetime) -> datetime:
        """
        Resolve a local naive datetime in tz to a UTC instant.

        - Unambiguous: the single matching instant.
        - Ambiguous (fall back): the earliest instant.
        - Non-existent (spring forward gap): advance minute by minute, up to
          MAX_DST_GAP_MINUTES, until the wall time exists.

        If no valid wall time is found the naive value is read as UTC and a
        warning is logged.
        """
        current = naive
        for _ in range(MAX_DST_GAP_MINUTES):
            candidates = local_candidates(tz, current)
            if candidates:
                return candidates[0]
            current += timedelta(minutes=1)

        logger.warning(
            f"resolve_local fallback: projecting naive datetime as UTC; tz={tz.key}, ndt={naive.isoformat()}"
        )
        return naive.replace(tzinfo=timezone.utc)

    def compute_duration_min(self, wake_date: date, bed_time: time, wake_time: time,
                             tz: Optional[ZoneInfo] = None) -> int:
        """
        Compute the sleep duration in minutes using wake-date semantics.

        Args:
            wake_date: Calendar date of waking
            bed_time: Local time of going to bed
            wake_time: Local time of waking
            tz: Timezone of the wall-clock times (defaults to the configured zone)

        Returns:
            Duration in whole minutes

        Raises:
            InvalidInput: if the duration is not positive, exceeds the 32-bit
                range, or the bed date underflows the calendar
        """
        tz = tz or self.default_tz
        bed_naive, wake_naive = sleep_window_bounds(wake_date, bed_time, wake_time)

        bed_instant = self.resolve_local(tz, bed_naive)
        wake_instant = self.resolve_local(tz, wake_naive)
        minutes = _whole_minutes(wake_instant - bed_instant)

        if minutes <= 0:
            # Same wall time on both ends of a repeated hour: the wake side
            # is the second occurrence
            wake_options = local_candidates(tz, wake_naive)
            if len(wake_options) > 1:
                minutes = _whole_minutes(wake_options[-1] - bed_instant)

        if minutes <= 0:
            raise InvalidInput("Duration must be positive")
        if minutes > INT32_MAX:
            raise InvalidInput("Duration too large")
        return minutes


def _whole_minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)
