# sleeptracker/utils/data_validation.py

import logging
from datetime import date, datetime
from typing import Optional, Tuple

from sleeptracker.core.errors import InvalidInput
from sleeptracker.utils.constants import (
    DEFAULT_RECENT_DAYS,
    MAX_RANGE_DAYS,
    MAX_RECENT_DAYS,
    SUMMARY_BUCKETS,
    TREND_RANGE_ORDER_MESSAGE,
)

logger = logging.getLogger(__name__)


class RequestValidator:
    """Validation of query parameters shared by the read endpoints"""

    @staticmethod
    def parse_date_field(value: str, field: str) -> date:
        """
        Parse a YYYY-MM-DD query value.

        Args:
            value: Raw query string value
            field: Parameter name used in the error message

        Returns:
            Parsed date
        """
        try:
            return datetime.strptime(str(value).strip(), '%Y-%m-%d').date()
        except ValueError:
            raise InvalidInput(f"invalid {field} date")

    @staticmethod
    def validate_range_span(from_date: date, to_date: date, max_days: Optional[int] = MAX_RANGE_DAYS,
                            order_message: str = TREND_RANGE_ORDER_MESSAGE):
        """
        Check that a date range is ordered and not too long.

        Args:
            from_date: Inclusive start
            to_date: Inclusive end; the span counts both ends
            max_days: Longest allowed span, or None to only check ordering
            order_message: Error message for a reversed range
        """
        if to_date < from_date:
            raise InvalidInput(order_message)
        if max_days is not None and (to_date - from_date).days + 1 > max_days:
            raise InvalidInput(f"range must be <= {max_days} days")

    @classmethod
    def parse_and_validate_date_range(cls, from_value: str, to_value: str, max_days: Optional[int] = None,
                                      order_message: str = TREND_RANGE_ORDER_MESSAGE) -> Tuple[date, date]:
        """Parse from/to and check ordering, and the span when max_days is given"""
        from_date = cls.parse_date_field(from_value, 'from')
        to_date = cls.parse_date_field(to_value, 'to')
        cls.validate_range_span(from_date, to_date, max_days, order_message)
        return from_date, to_date

    @staticmethod
    def validate_bucket(bucket: Optional[str]) -> str:
        bucket = bucket or 'day'
        if bucket not in SUMMARY_BUCKETS:
            raise InvalidInput("bucket must be day or week")
        return bucket

    @staticmethod
    def clamp_recent_days(days: Optional[int]) -> int:
        """Recent-list length clamped to 1..31 (default 7)"""
        if days is None:
            return DEFAULT_RECENT_DAYS
        return max(1, min(MAX_RECENT_DAYS, days))
