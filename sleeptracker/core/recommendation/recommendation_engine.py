# sleeptracker/core/recommendation/recommendation_engine.py

import logging
from typing import List

from sleeptracker.core.analysis.personalization import duration_trigger
from sleeptracker.core.models.data_models import (
    ActionRecommendation,
    Confidence,
    PersonalizationMetrics,
    RecommendationStatus,
)
from sleeptracker.utils.constants import (
    ACTION_DAY_TYPE_PREFILL,
    ACTION_DURATION_WARNING,
    ACTION_QUALITY_FACTORS,
    ACTION_REGULARITY,
    ACTION_SOCIAL_JETLAG,
    DAY_TYPE_MIN_WEEKDAY_SAMPLES,
    DAY_TYPE_MIN_WEEKEND_SAMPLES,
    QUALITY_MIN_DISTINCT_VALUES,
    QUALITY_MIN_TAGGED_SAMPLES,
    RATIONALES,
    SUPPRESSION_REASONS,
)

logger = logging.getLogger(__name__)


class SleepRecommendationEngine:
    """Maps personalization metrics to the fixed set of action recommendations"""

    def __init__(self, rationales=None, suppression_reasons=None):
        self.rationales = rationales or RATIONALES
        self.reasons = suppression_reasons or SUPPRESSION_REASONS

    def generate_recommendations(self, metrics: PersonalizationMetrics) -> List[ActionRecommendation]:
        """
        Build one recommendation per action key, in a fixed order.

        Args:
            metrics: Evaluated personalization metrics

        Returns:
            List of five ActionRecommendation entries
        """
        recommendations = [
            self._duration_warning(metrics),
            self._day_type_prefill(metrics),
            self._social_jetlag(metrics),
            self._regularity(metrics),
            self._quality_factors(metrics),
        ]
        recommended = [r.action_key for r in recommendations if r.status == RecommendationStatus.RECOMMENDED]
        logger.debug(f"Recommended actions: {recommended or 'none'}")
        return recommendations

    def _build(self, action_key, recommended, confidence, reasons) -> ActionRecommendation:
        return ActionRecommendation(
            action_key=action_key,
            status=RecommendationStatus.RECOMMENDED if recommended else RecommendationStatus.SUPPRESSED,
            confidence=confidence,
            rationale=self.rationales[action_key],
            suppression_reasons=[] if recommended else reasons,
        )

    def _duration_warning(self, metrics):
        metric = metrics.duration_baseline
        trigger = duration_trigger(metric)

        reasons = []
        if not metric.eligible:
            reasons.append(self.reasons['duration_baseline'])
        if not trigger:
            reasons.append(self.reasons['duration_trigger'])
        # Travel/shift periods cannot be inferred, so this guardrail is always reported
        reasons.append(self.reasons['duration_disruption_guardrail'])

        recommended = metric.eligible and trigger
        confidence = Confidence.MEDIUM if recommended else Confidence.LOW
        return self._build(ACTION_DURATION_WARNING, recommended, confidence, reasons)

    def _day_type_prefill(self, metrics):
        metric = metrics.day_type_timing_baseline

        reasons = []
        if (metric.weekday_sample_days < DAY_TYPE_MIN_WEEKDAY_SAMPLES
                or metric.weekend_sample_days < DAY_TYPE_MIN_WEEKEND_SAMPLES):
            reasons.append(self.reasons['day_type_samples'])
        if not metric.midpoint_stable_across_windows:
            reasons.append(self.reasons['day_type_unstable'])
        if metric.recent_14_day_diverges_from_baseline:
            reasons.append(self.reasons['day_type_diverges'])

        recommended = metric.eligible and not metric.recent_14_day_diverges_from_baseline
        confidence = Confidence.MEDIUM if metric.eligible else Confidence.LOW
        return self._build(ACTION_DAY_TYPE_PREFILL, recommended, confidence, reasons)

    def _social_jetlag(self, metrics):
        metric = metrics.social_jetlag

        reasons = []
        # Eligibility needs the weekend floor in both windows
        if not metric.eligible:
            reasons.append(self.reasons['social_weekend_samples'])
        if not metric.sustained_two_windows:
            reasons.append(self.reasons['social_not_sustained'])

        recommended = metric.eligible and metric.sustained_two_windows
        confidence = Confidence.HIGH if recommended else Confidence.LOW
        return self._build(ACTION_SOCIAL_JETLAG, recommended, confidence, reasons)

    def _regularity(self, metrics):
        metric = metrics.schedule_variability

        reasons = []
        if not metric.sustained_two_windows:
            reasons.append(self.reasons['variability_not_sustained'])
        if metric.high_data_gap:
            reasons.append(self.reasons['variability_data_gap'])

        sustained = metric.eligible and metric.sustained_two_windows
        recommended = sustained and not metric.high_data_gap
        confidence = Confidence.MEDIUM if sustained else Confidence.LOW
        return self._build(ACTION_REGULARITY, recommended, confidence, reasons)

    def _quality_factors(self, metrics):
        metric = metrics.quality_factor_ranking

        reasons = []
        if metric.sessions_with_quality < QUALITY_MIN_TAGGED_SAMPLES:
            reasons.append(self.reasons['quality_samples'])
        if metric.distinct_quality_values < QUALITY_MIN_DISTINCT_VALUES:
            reasons.append(self.reasons['quality_distinct_values'])
        if not metric.stable_across_adjacent_windows:
            reasons.append(self.reasons['quality_unstable'])

        recommended = metric.eligible
        confidence = Confidence.MEDIUM if recommended else Confidence.LOW
        return self._build(ACTION_QUALITY_FACTORS, recommended, confidence, reasons)


def build_recommendations(metrics: PersonalizationMetrics) -> List[ActionRecommendation]:
    return SleepRecommendationEngine().generate_recommendations(metrics)
