# sleeptracker/core/analysis/personalization.py
"""
Rolling-window personalization metrics.

Each metric compares the current window's DaySamples with the prior
window's and reports whether there is enough evidence to act on it:

    duration_baseline         -- personal duration tails from the prior window
    day_type_timing_baseline  -- weekday/weekend usual bed and wake times
    social_jetlag             -- weekend vs weekday mid-sleep shift
    schedule_variability      -- dispersion of bed/wake times
    quality_factor_ranking    -- behaviours associated with better quality

All clock comparisons are circular so that 23:55 and 00:05 count as close.
"""

from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sleeptracker.core.analysis.day_samples import DaySample
from sleeptracker.core.analysis.order_statistics import (
    circular_abs_diff,
    circular_signed_minutes_delta,
    median,
    pct,
    percentile_linear,
    std_dev,
    within_clock_minute_band,
)
from sleeptracker.core.models.data_models import (
    DayTypeTimingBaselineMetric,
    DurationBaselineMetric,
    PersonalizationMetrics,
    PersonalizationWindow,
    QualityFactorRankingMetric,
    RankedQualityFactor,
    ScheduleVariabilityMetric,
    SocialJetlagMetric,
)
from sleeptracker.utils.constants import (
    DAY_TYPE_DIVERGENCE_MIN,
    DAY_TYPE_MIDPOINT_STABILITY_MIN,
    DAY_TYPE_MIN_WEEKDAY_SAMPLES,
    DAY_TYPE_MIN_WEEKEND_SAMPLES,
    DAY_TYPE_RECENT_SAMPLES,
    DURATION_BASELINE_MIN_PRIOR_SAMPLES,
    DURATION_OUT_OF_RANGE_TRIGGER_PCT,
    QUALITY_FACTORS,
    QUALITY_MIDPOINT_BAND_MIN,
    QUALITY_MIN_DISTINCT_VALUES,
    QUALITY_MIN_SPLIT_SIZE,
    QUALITY_MIN_TAGGED_SAMPLES,
    QUALITY_TOP_FACTORS,
    QUALITY_WEEKEND_BAND_MIN,
    SOCIAL_JETLAG_MIN_WEEKEND_SAMPLES,
    SOCIAL_JETLAG_SUSTAINED_MIN,
    VARIABILITY_MAX_MISSING_PCT,
    VARIABILITY_SUSTAINED_MIN,
)


# ---------------------------------------------------------------------------
# Sample selectors
# ---------------------------------------------------------------------------

def _weekday(samples: Sequence[DaySample]) -> List[DaySample]:
    return [s for s in samples if not s.weekend]


def _weekend(samples: Sequence[DaySample]) -> List[DaySample]:
    return [s for s in samples if s.weekend]


def _midpoints(samples: Sequence[DaySample]) -> List[float]:
    return [s.midpoint_clock_min for s in samples]


def _durations(samples: Sequence[DaySample]) -> List[float]:
    return [s.duration_min for s in samples]


# ---------------------------------------------------------------------------
# Duration baseline
# ---------------------------------------------------------------------------

def duration_baseline(current: Sequence[DaySample], prior: Sequence[DaySample]) -> DurationBaselineMetric:
    """
    Personal duration tails from the prior window, applied to the current one.

    Eligible with at least 60 prior-window samples. The out-of-range
    incidence is the share of current durations outside [p10, p90].
    """
    prior_durations = _durations(prior)
    current_durations = _durations(current)

    p10 = percentile_linear(prior_durations, 0.10)
    p50 = percentile_linear(prior_durations, 0.50)
    p90 = percentile_linear(prior_durations, 0.90)
    p25 = percentile_linear(prior_durations, 0.25)
    p75 = percentile_linear(prior_durations, 0.75)
    iqr = p75 - p25 if p25 is not None and p75 is not None else None

    out_of_range = 0
    if p10 is not None and p90 is not None:
        out_of_range = sum(1 for v in current_durations if v < p10 or v > p90)

    return DurationBaselineMetric(
        eligible=len(prior_durations) >= DURATION_BASELINE_MIN_PRIOR_SAMPLES,
        sample_days=len(prior_durations),
        p10_min=p10,
        p50_min=p50,
        p90_min=p90,
        iqr_min=iqr,
        recent_out_of_range_incidence_pct=pct(out_of_range, len(current_durations)),
    )


def duration_trigger(metric: DurationBaselineMetric) -> bool:
    incidence = metric.recent_out_of_range_incidence_pct or 0.0
    return metric.eligible and incidence >= DURATION_OUT_OF_RANGE_TRIGGER_PCT


# ---------------------------------------------------------------------------
# Day-type timing baseline
# ---------------------------------------------------------------------------

def day_type_timing_baseline(current: Sequence[DaySample], prior: Sequence[DaySample]) -> DayTypeTimingBaselineMetric:
    """
    Weekday/weekend usual bed and wake times for the current window.

    Eligible with >= 8 weekday and >= 4 weekend samples and midpoint medians
    that moved by at most 30 minutes (per day type) since the prior window.
    Separately flags when the latest 14 samples drift more than 90 minutes
    from the prior window's day-type midpoint.
    """
    current_weekday = _weekday(current)
    current_weekend = _weekend(current)

    prior_weekday_mid = median(_midpoints(_weekday(prior)))
    prior_weekend_mid = median(_midpoints(_weekend(prior)))

    weekday_shift = circular_abs_diff(median(_midpoints(current_weekday)), prior_weekday_mid)
    weekend_shift = circular_abs_diff(median(_midpoints(current_weekend)), prior_weekend_mid)
    stable = (
        weekday_shift is not None and weekday_shift <= DAY_TYPE_MIDPOINT_STABILITY_MIN
        and weekend_shift is not None and weekend_shift <= DAY_TYPE_MIDPOINT_STABILITY_MIN
    )

    recent = sorted(current, key=lambda s: s.wake_date)[-DAY_TYPE_RECENT_SAMPLES:]
    recent_weekday_gap = circular_abs_diff(median(_midpoints(_weekday(recent))), prior_weekday_mid)
    recent_weekend_gap = circular_abs_diff(median(_midpoints(_weekend(recent))), prior_weekend_mid)
    diverges = (
        (recent_weekday_gap is not None and recent_weekday_gap > DAY_TYPE_DIVERGENCE_MIN)
        or (recent_weekend_gap is not None and recent_weekend_gap > DAY_TYPE_DIVERGENCE_MIN)
    )

    enough_samples = (
        len(current_weekday) >= DAY_TYPE_MIN_WEEKDAY_SAMPLES
        and len(current_weekend) >= DAY_TYPE_MIN_WEEKEND_SAMPLES
    )

    return DayTypeTimingBaselineMetric(
        eligible=enough_samples and stable,
        weekday_sample_days=len(current_weekday),
        weekend_sample_days=len(current_weekend),
        weekday_bed_median_min=median([s.bed_clock_min for s in current_weekday]),
        weekday_wake_median_min=median([s.wake_clock_min for s in current_weekday]),
        weekend_bed_median_min=median([s.bed_clock_min for s in current_weekend]),
        weekend_wake_median_min=median([s.wake_clock_min for s in current_weekend]),
        midpoint_stable_across_windows=stable,
        recent_14_day_diverges_from_baseline=diverges,
    )


# ---------------------------------------------------------------------------
# Social jetlag
# ---------------------------------------------------------------------------

def social_jetlag_delta(samples: Sequence[DaySample]) -> Tuple[Optional[float], int]:
    """Signed weekend-minus-weekday midpoint median shift, and the weekend sample count"""
    weekday_mid = median(_midpoints(_weekday(samples)))
    weekend = _weekend(samples)
    weekend_mid = median(_midpoints(weekend))

    delta = None
    if weekday_mid is not None and weekend_mid is not None:
        delta = circular_signed_minutes_delta(weekend_mid, weekday_mid)
    return delta, len(weekend)


def social_jetlag(current: Sequence[DaySample], prior: Sequence[DaySample]) -> SocialJetlagMetric:
    current_delta, current_weekend_n = social_jetlag_delta(current)
    prior_delta, prior_weekend_n = social_jetlag_delta(prior)

    sustained = (
        current_delta is not None and abs(current_delta) >= SOCIAL_JETLAG_SUSTAINED_MIN
        and prior_delta is not None and abs(prior_delta) >= SOCIAL_JETLAG_SUSTAINED_MIN
    )

    return SocialJetlagMetric(
        eligible=(
            current_weekend_n >= SOCIAL_JETLAG_MIN_WEEKEND_SAMPLES
            and prior_weekend_n >= SOCIAL_JETLAG_MIN_WEEKEND_SAMPLES
        ),
        weekend_sample_days=current_weekend_n,
        current_delta_min=current_delta,
        prior_delta_min=prior_delta,
        sustained_two_windows=sustained,
    )


# ---------------------------------------------------------------------------
# Schedule variability
# ---------------------------------------------------------------------------

def window_variability(samples: Sequence[DaySample]) -> Optional[float]:
    """Mean of the bed and wake relative-minute standard deviations"""
    bed_sd = std_dev([s.bed_relative_min for s in samples])
    wake_sd = std_dev([s.wake_relative_min for s in samples])
    if bed_sd is None or wake_sd is None:
        return None
    return (bed_sd + wake_sd) / 2.0


def schedule_variability(current: Sequence[DaySample], prior: Sequence[DaySample],
                         current_window: PersonalizationWindow) -> ScheduleVariabilityMetric:
    current_var = window_variability(current)
    prior_var = window_variability(prior)

    sustained = (
        current_var is not None and current_var >= VARIABILITY_SUSTAINED_MIN
        and prior_var is not None and prior_var >= VARIABILITY_SUSTAINED_MIN
    )

    return ScheduleVariabilityMetric(
        eligible=current_var is not None and prior_var is not None,
        current_variability_min=current_var,
        prior_variability_min=prior_var,
        sustained_two_windows=sustained,
        high_data_gap=current_window.missing_days_pct > VARIABILITY_MAX_MISSING_PCT,
    )


# ---------------------------------------------------------------------------
# Quality factor ranking
# ---------------------------------------------------------------------------

def _factor_tests(samples: Sequence[DaySample]) -> Dict[str, Callable[[DaySample], bool]]:
    """Favorable-side predicates, calibrated on the window's own samples"""
    mid_median = median(_midpoints(samples))
    durations = _durations(samples)
    p10 = percentile_linear(durations, 0.10)
    p90 = percentile_linear(durations, 0.90)

    def duration_in_personal_range(s):
        return p10 is not None and p90 is not None and p10 <= s.duration_min <= p90

    def consistent_mid_sleep_timing(s):
        return mid_median is not None and within_clock_minute_band(
            s.midpoint_clock_min, mid_median, QUALITY_MIDPOINT_BAND_MIN)

    def weekday_schedule_alignment(s):
        if not s.weekend:
            return True
        return mid_median is not None and within_clock_minute_band(
            s.midpoint_clock_min, mid_median, QUALITY_WEEKEND_BAND_MIN)

    return {
        'duration_in_personal_range': duration_in_personal_range,
        'consistent_mid_sleep_timing': consistent_mid_sleep_timing,
        'weekday_schedule_alignment': weekday_schedule_alignment,
    }


def factor_effect(samples: Sequence[DaySample], factor: str) -> Optional[float]:
    """
    Mean quality on favorable nights minus mean quality on unfavorable ones.

    Returns None unless both sides have at least 5 quality-tagged samples.
    """
    is_favorable = _factor_tests(samples)[factor]
    favorable = []
    unfavorable = []
    for s in samples:
        if s.quality is None:
            continue
        if is_favorable(s):
            favorable.append(s.quality)
        else:
            unfavorable.append(s.quality)

    if len(favorable) < QUALITY_MIN_SPLIT_SIZE or len(unfavorable) < QUALITY_MIN_SPLIT_SIZE:
        return None
    return sum(favorable) / len(favorable) - sum(unfavorable) / len(unfavorable)


def _sign(value: float) -> float:
    # Same convention as float signum: zero counts as positive
    return -1.0 if value < 0 else 1.0


def quality_factor_ranking(current: Sequence[DaySample], prior: Sequence[DaySample]) -> QualityFactorRankingMetric:
    tagged = [s for s in current if s.quality is not None]
    distinct_values = {int(s.quality) for s in tagged}

    ranked = []
    stable = True
    for factor in QUALITY_FACTORS:
        current_effect = factor_effect(current, factor)
        prior_effect = factor_effect(prior, factor)
        if current_effect is None or prior_effect is None:
            stable = False
            continue
        if _sign(current_effect) != _sign(prior_effect):
            stable = False
        ranked.append(RankedQualityFactor(factor=factor, effect=current_effect))

    ranked.sort(key=lambda f: abs(f.effect), reverse=True)

    base_eligible = (
        len(tagged) >= QUALITY_MIN_TAGGED_SAMPLES
        and len(distinct_values) >= QUALITY_MIN_DISTINCT_VALUES
    )
    return QualityFactorRankingMetric(
        eligible=base_eligible and stable,
        sessions_with_quality=len(tagged),
        distinct_quality_values=len(distinct_values),
        stable_across_adjacent_windows=stable,
        ranked_factors=ranked[:QUALITY_TOP_FACTORS],
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def evaluate_metrics(current: Sequence[DaySample], prior: Sequence[DaySample],
                     current_window: PersonalizationWindow) -> PersonalizationMetrics:
    """
    Evaluate all five personalization metrics.

    Args:
        current: Samples in the current window
        prior: Samples in the prior window
        current_window: Coverage of the current window (for the data-gap guardrail)

    Returns:
        PersonalizationMetrics with one record per rule
    """
    return PersonalizationMetrics(
        duration_baseline=duration_baseline(current, prior),
        day_type_timing_baseline=day_type_timing_baseline(current, prior),
        social_jetlag=social_jetlag(current, prior),
        schedule_variability=schedule_variability(current, prior, current_window),
        quality_factor_ranking=quality_factor_ranking(current, prior),
    )
