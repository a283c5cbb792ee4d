"""Tests for sleeptracker.core.recommendation.recommendation_engine -- rule outcomes."""

from datetime import date, timedelta

import pytest

from sleeptracker.core.analysis.personalization import evaluate_metrics
from sleeptracker.core.analysis.windows import window_stats
from sleeptracker.core.models.data_models import (
    Confidence,
    DayTypeTimingBaselineMetric,
    DurationBaselineMetric,
    PersonalizationMetrics,
    QualityFactorRankingMetric,
    RecommendationStatus,
    ScheduleVariabilityMetric,
    SocialJetlagMetric,
)
from sleeptracker.core.recommendation.recommendation_engine import (
    SleepRecommendationEngine,
    build_recommendations,
)
from sleeptracker.utils.constants import RATIONALES, SUPPRESSION_REASONS

ACTION_ORDER = [
    'personal_duration_warning_tuning',
    'day_type_default_prefill',
    'social_jetlag_schedule_shift_insight',
    'regularity_insight_priority',
    'quality_aligned_factor_explanation',
]


def make_metrics(**overrides) -> PersonalizationMetrics:
    """Metrics where nothing is recommended, with per-rule overrides."""
    values = dict(
        duration_baseline=DurationBaselineMetric(eligible=False, sample_days=0),
        day_type_timing_baseline=DayTypeTimingBaselineMetric(
            eligible=False, weekday_sample_days=0, weekend_sample_days=0,
            midpoint_stable_across_windows=False, recent_14_day_diverges_from_baseline=False,
        ),
        social_jetlag=SocialJetlagMetric(eligible=False, weekend_sample_days=0, sustained_two_windows=False),
        schedule_variability=ScheduleVariabilityMetric(
            eligible=False, sustained_two_windows=False, high_data_gap=False,
        ),
        quality_factor_ranking=QualityFactorRankingMetric(
            eligible=False, sessions_with_quality=0, distinct_quality_values=0,
            stable_across_adjacent_windows=False,
        ),
    )
    values.update(overrides)
    return PersonalizationMetrics(**values)


def by_key(recommendations):
    return {r.action_key: r for r in recommendations}


@pytest.fixture
def engine():
    return SleepRecommendationEngine()


class TestEmptyHistory:
    @pytest.fixture
    def recommendations(self):
        start = date(2025, 6, 1)
        window = window_stats(start, start + timedelta(days=27), [], 28)
        return build_recommendations(evaluate_metrics([], [], window))

    def test_fixed_order(self, recommendations):
        assert [r.action_key for r in recommendations] == ACTION_ORDER

    def test_everything_suppressed_with_reasons(self, recommendations):
        for rec in recommendations:
            assert rec.status == RecommendationStatus.SUPPRESSED
            assert rec.confidence == Confidence.LOW
            assert rec.suppression_reasons
            assert rec.rationale == RATIONALES[rec.action_key]

    def test_duration_reasons(self, recommendations):
        reasons = by_key(recommendations)['personal_duration_warning_tuning'].suppression_reasons
        assert reasons == [
            'needs at least 60 baseline sessions in prior window',
            'recent out-of-range incidence is below 5% trigger',
            SUPPRESSION_REASONS['duration_disruption_guardrail'],
        ]

    def test_regularity_reports_data_gap(self, recommendations):
        reasons = by_key(recommendations)['regularity_insight_priority'].suppression_reasons
        assert SUPPRESSION_REASONS['variability_not_sustained'] in reasons
        assert SUPPRESSION_REASONS['variability_data_gap'] in reasons


class TestRecommended:
    def test_duration_warning(self, engine):
        metrics = make_metrics(duration_baseline=DurationBaselineMetric(
            eligible=True, sample_days=60, recent_out_of_range_incidence_pct=10.0,
        ))
        rec = by_key(engine.generate_recommendations(metrics))['personal_duration_warning_tuning']
        assert rec.status == RecommendationStatus.RECOMMENDED
        assert rec.confidence == Confidence.MEDIUM
        assert rec.suppression_reasons == []

    def test_social_jetlag_is_high_confidence(self, engine):
        metrics = make_metrics(social_jetlag=SocialJetlagMetric(
            eligible=True, weekend_sample_days=4, current_delta_min=60.0,
            prior_delta_min=45.0, sustained_two_windows=True,
        ))
        rec = by_key(engine.generate_recommendations(metrics))['social_jetlag_schedule_shift_insight']
        assert rec.status == RecommendationStatus.RECOMMENDED
        assert rec.confidence == Confidence.HIGH

    def test_day_type_divergence_keeps_medium_confidence(self, engine):
        metrics = make_metrics(day_type_timing_baseline=DayTypeTimingBaselineMetric(
            eligible=True, weekday_sample_days=10, weekend_sample_days=4,
            midpoint_stable_across_windows=True, recent_14_day_diverges_from_baseline=True,
        ))
        rec = by_key(engine.generate_recommendations(metrics))['day_type_default_prefill']
        assert rec.status == RecommendationStatus.SUPPRESSED
        assert rec.confidence == Confidence.MEDIUM
        assert rec.suppression_reasons == [SUPPRESSION_REASONS['day_type_diverges']]

    def test_regularity_blocked_by_data_gap(self, engine):
        metrics = make_metrics(schedule_variability=ScheduleVariabilityMetric(
            eligible=True, current_variability_min=75.0, prior_variability_min=80.0,
            sustained_two_windows=True, high_data_gap=True,
        ))
        rec = by_key(engine.generate_recommendations(metrics))['regularity_insight_priority']
        assert rec.status == RecommendationStatus.SUPPRESSED
        assert rec.confidence == Confidence.MEDIUM
        assert rec.suppression_reasons == [SUPPRESSION_REASONS['variability_data_gap']]

    def test_quality_factors(self, engine):
        metrics = make_metrics(quality_factor_ranking=QualityFactorRankingMetric(
            eligible=True, sessions_with_quality=45, distinct_quality_values=4,
            stable_across_adjacent_windows=True,
        ))
        rec = by_key(engine.generate_recommendations(metrics))['quality_aligned_factor_explanation']
        assert rec.status == RecommendationStatus.RECOMMENDED
        assert rec.suppression_reasons == []


def test_social_jetlag_small_weekend_sample_reason(engine):
    rec = by_key(engine.generate_recommendations(make_metrics()))['social_jetlag_schedule_shift_insight']
    assert rec.suppression_reasons == [
        'weekend sample too small (<4 sessions)',
        'social jetlag delta is not >=30 min for two consecutive windows',
    ]
