# sleeptracker/core/services/trends_service.py
import logging
from datetime import date, datetime, time, timezone
from typing import List, Optional

from sleeptracker.core.analysis.day_samples import DaySample, build_day_samples
from sleeptracker.core.analysis.personalization import evaluate_metrics
from sleeptracker.core.analysis.trends import sleep_bars, summarize
from sleeptracker.core.analysis.windows import WindowBounds, compute_window_bounds, split_samples, window_stats
from sleeptracker.core.errors import InvalidInput, UpstreamReadFailure
from sleeptracker.core.models.data_models import (
    FrictionBacklogResponse,
    FrictionTelemetryInput,
    PersonalizationResponse,
    RecommendationStatus,
    SleepBar,
    SummaryResponse,
)
from sleeptracker.core.recommendation.friction_backlog import FrictionBacklogRanker
from sleeptracker.core.recommendation.recommendation_engine import SleepRecommendationEngine
from sleeptracker.core.repositories.data_repository import STORAGE_ERRORS
from sleeptracker.utils.constants import DEFAULT_WINDOW_DAYS, MAX_RANGE_DAYS
from sleeptracker.utils.data_validation import RequestValidator

logger = logging.getLogger(__name__)

END_OF_DAY = time(23, 59, 59)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def build_personalization_response(samples: List[DaySample], bounds: WindowBounds,
                                   engine: Optional[SleepRecommendationEngine] = None) -> PersonalizationResponse:
    """
    Run the personalization engine over samples already fetched for both windows.

    Args:
        samples: Day samples covering prior_from..current_to
        bounds: Current and prior window bounds
        engine: Recommendation engine (defaults to the standard rule set)

    Returns:
        PersonalizationResponse
    """
    engine = engine or SleepRecommendationEngine()
    current, prior = split_samples(samples, bounds)
    current_window = window_stats(bounds.current_from, bounds.current_to, current, bounds.window_days)
    prior_window = window_stats(bounds.prior_from, bounds.prior_to, prior, bounds.window_days)

    metrics = evaluate_metrics(current, prior, current_window)
    recommendations = engine.generate_recommendations(metrics)

    return PersonalizationResponse(
        as_of=bounds.current_to,
        window_days=bounds.window_days,
        current_window=current_window,
        prior_window=prior_window,
        metrics=metrics,
        recommendations=recommendations,
    )


class TrendsService:
    """Trend charts, personalization and friction backlog over stored records"""

    def __init__(self, repository, recommendation_engine=None, backlog_ranker=None, max_range_days=MAX_RANGE_DAYS):
        self.repository = repository
        self.recommendation_engine = recommendation_engine or SleepRecommendationEngine()
        self.backlog_ranker = backlog_ranker or FrictionBacklogRanker()
        self.max_range_days = max_range_days

    def _call(self, operation, *args):
        try:
            return operation(*args)
        except STORAGE_ERRORS as e:
            logger.error(f"Record store failure in {operation.__name__}: {e}")
            raise UpstreamReadFailure(f"failed to read records: {e}")

    async def sleep_bars(self, from_date: date, to_date: date) -> List[SleepBar]:
        RequestValidator.validate_range_span(from_date, to_date, self.max_range_days)
        return sleep_bars(self._call(self.repository.fetch_daily_rows, from_date, to_date))

    async def summary(self, from_date: date, to_date: date, bucket: Optional[str] = None) -> SummaryResponse:
        RequestValidator.validate_range_span(from_date, to_date, self.max_range_days)
        bucket = RequestValidator.validate_bucket(bucket)
        return summarize(self._call(self.repository.fetch_daily_rows, from_date, to_date), bucket)

    async def personalization(self, window_days: int = DEFAULT_WINDOW_DAYS,
                              as_of: Optional[date] = None) -> PersonalizationResponse:
        """
        Evaluate personalization metrics and recommendations.

        Args:
            window_days: Length of each window, 1..365
            as_of: Inclusive end of the current window (defaults to today in UTC)

        Returns:
            PersonalizationResponse
        """
        bounds = compute_window_bounds(as_of or utc_today(), window_days)
        rows = self._call(self.repository.fetch_daily_rows, bounds.prior_from, bounds.current_to)
        samples = build_day_samples(rows)

        response = build_personalization_response(samples, bounds, self.recommendation_engine)
        recommended = sum(1 for r in response.recommendations if r.status == RecommendationStatus.RECOMMENDED)
        logger.info(
            f"Personalization as of {bounds.current_to} ({window_days}d): "
            f"{len(samples)} samples, {recommended} recommended actions"
        )
        return response

    async def create_friction_telemetry(self, event: FrictionTelemetryInput) -> int:
        """Validate and append one friction event stamped with the current UTC time"""
        if event.form_time_ms < 0:
            raise InvalidInput("form_time_ms must be >= 0")
        if event.retry_count < 0:
            raise InvalidInput("retry_count must be >= 0")

        error_kind = (event.error_kind or '').strip().lower() or None
        normalized = event.model_copy(update={'error_kind': error_kind})
        recorded_at = datetime.now(timezone.utc).replace(tzinfo=None)
        return self._call(self.repository.insert_friction_telemetry, normalized, recorded_at)

    async def friction_backlog(self, window_days: int = DEFAULT_WINDOW_DAYS,
                               as_of: Optional[date] = None) -> FrictionBacklogResponse:
        bounds = compute_window_bounds(as_of or utc_today(), window_days)
        current_events = self._call(
            self.repository.fetch_friction_events,
            datetime.combine(bounds.current_from, time.min),
            datetime.combine(bounds.current_to, END_OF_DAY),
        )
        prior_events = self._call(
            self.repository.fetch_friction_events,
            datetime.combine(bounds.prior_from, time.min),
            datetime.combine(bounds.prior_to, END_OF_DAY),
        )
        return self.backlog_ranker.build_backlog(current_events, prior_events, bounds)
