"""
Constants used throughout the Sleep Tracker.
This includes rule thresholds, fixed action keys, recommendation texts and
other default values.
"""

# Time handling
FALLBACK_TIMEZONE = 'Asia/Tokyo'
MAX_DST_GAP_MINUTES = 3 * 60
INT32_MAX = 2**31 - 1
MINUTES_PER_DAY = 24 * 60

# Request limits
MIN_WINDOW_DAYS = 1
MAX_WINDOW_DAYS = 365
DEFAULT_WINDOW_DAYS = 28
MAX_RANGE_DAYS = 62
RECORD_RANGE_ORDER_MESSAGE = 'from must be <= to'
TREND_RANGE_ORDER_MESSAGE = 'to must be >= from'
DEFAULT_RECENT_DAYS = 7
MAX_RECENT_DAYS = 31
SUMMARY_BUCKETS = ('day', 'week')

# Record validation
QUALITY_RANGE = (1, 5)
LATENCY_RANGE = (0, 180)
AWAKENINGS_RANGE = (0, 10)
NOTE_MAX_LENGTH = 1000
INTENSITY_LEVELS = ['none', 'light', 'hard']

# Personalization rule thresholds
DURATION_BASELINE_MIN_PRIOR_SAMPLES = 60
DURATION_OUT_OF_RANGE_TRIGGER_PCT = 5.0

DAY_TYPE_MIN_WEEKDAY_SAMPLES = 8
DAY_TYPE_MIN_WEEKEND_SAMPLES = 4
DAY_TYPE_MIDPOINT_STABILITY_MIN = 30.0
DAY_TYPE_RECENT_SAMPLES = 14
DAY_TYPE_DIVERGENCE_MIN = 90.0

SOCIAL_JETLAG_MIN_WEEKEND_SAMPLES = 4
SOCIAL_JETLAG_SUSTAINED_MIN = 30.0

VARIABILITY_SUSTAINED_MIN = 60.0
VARIABILITY_MAX_MISSING_PCT = 30.0

QUALITY_MIN_TAGGED_SAMPLES = 40
QUALITY_MIN_DISTINCT_VALUES = 3
QUALITY_MIN_SPLIT_SIZE = 5
QUALITY_MIDPOINT_BAND_MIN = 60.0
QUALITY_WEEKEND_BAND_MIN = 90.0
QUALITY_TOP_FACTORS = 3

QUALITY_FACTORS = [
    'duration_in_personal_range',
    'consistent_mid_sleep_timing',
    'weekday_schedule_alignment',
]

# Recommendation action keys, in response order
ACTION_DURATION_WARNING = 'personal_duration_warning_tuning'
ACTION_DAY_TYPE_PREFILL = 'day_type_default_prefill'
ACTION_SOCIAL_JETLAG = 'social_jetlag_schedule_shift_insight'
ACTION_REGULARITY = 'regularity_insight_priority'
ACTION_QUALITY_FACTORS = 'quality_aligned_factor_explanation'

RATIONALES = {
    ACTION_DURATION_WARNING: 'Replace static unusual-duration warning with personal duration tails',
    ACTION_DAY_TYPE_PREFILL: 'Offer weekday/weekend usual-time defaults when day-type baselines are stable',
    ACTION_SOCIAL_JETLAG: 'Show weekend-vs-weekday midpoint shift insight when phase shift persists',
    ACTION_REGULARITY: 'Prioritize regularity insight when timing dispersion is persistently high',
    ACTION_QUALITY_FACTORS: 'Surface top associated factors for higher-quality nights using directional language',
}

SUPPRESSION_REASONS = {
    'duration_baseline': 'needs at least 60 baseline sessions in prior window',
    'duration_trigger': 'recent out-of-range incidence is below 5% trigger',
    'duration_disruption_guardrail': (
        'schedule disruption guardrail unavailable from current data (travel/shift period not inferred)'
    ),
    'day_type_samples': 'requires >=8 weekday and >=4 weekend sessions in current window',
    'day_type_unstable': 'day-type midpoint medians are not stable across adjacent windows',
    'day_type_diverges': 'recent 14-day pattern strongly diverges from baseline',
    'social_weekend_samples': 'weekend sample too small (<4 sessions)',
    'social_not_sustained': 'social jetlag delta is not >=30 min for two consecutive windows',
    'variability_not_sustained': 'schedule variability is not >=60 minutes across two windows',
    'variability_data_gap': 'data gaps exceed 30% of current window',
    'quality_samples': 'requires at least 40 sessions with quality',
    'quality_distinct_values': 'requires at least 3 distinct quality values',
    'quality_unstable': 'factor effects are not stable across adjacent windows',
}

# Friction backlog thresholds
FRICTION_MIN_SUBMITS = 30
FRICTION_HIGH_MIN_OCCURRENCES = 12
FRICTION_MEDIUM_MIN_OCCURRENCES = 4
FRICTION_RETRY_WEIGHT = 0.75
FRICTION_FAILURE_WEIGHT = 1.5
FRICTION_ROLLBACK_CONDITION = (
    'Downgrade if pattern no longer persists for two windows or confidence falls below medium'
)
