# sleeptracker/core/models/data_models.py

from datetime import date, time
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sleeptracker.utils.constants import (
    AWAKENINGS_RANGE,
    INTENSITY_LEVELS,
    LATENCY_RANGE,
    NOTE_MAX_LENGTH,
    QUALITY_RANGE,
)


# Enum types for better validation
class Intensity(str, Enum):
    NONE = "none"
    LIGHT = "light"
    HARD = "hard"


class RecommendationStatus(str, Enum):
    RECOMMENDED = "recommended"
    SUPPRESSED = "suppressed"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    def at_least_medium(self):
        return self in (Confidence.HIGH, Confidence.MEDIUM)


# Sleep Record Models
class SleepInput(BaseModel):
    date: date  # wake date
    bed_time: time
    wake_time: time
    latency_min: int = Field(..., ge=LATENCY_RANGE[0], le=LATENCY_RANGE[1])
    awakenings: int = Field(..., ge=AWAKENINGS_RANGE[0], le=AWAKENINGS_RANGE[1])
    quality: int

    @field_validator('quality')
    @classmethod
    def validate_quality(cls, v):
        if v < QUALITY_RANGE[0] or v > QUALITY_RANGE[1]:
            raise ValueError('quality must be between 1 and 5')
        return v


class SleepSession(BaseModel):
    id: int
    date: date
    bed_time: time
    wake_time: time
    latency_min: int
    awakenings: int
    quality: int


class SleepListItem(BaseModel):
    """One row of the daily projection (sessions collapsed per wake date)"""
    id: int
    date: date
    bed_time: time
    wake_time: time
    latency_min: int
    awakenings: int
    quality: Optional[int] = None
    duration_min: Optional[int] = None
    session_count: int = 1


class CreatedResponse(BaseModel):
    id: int


# Exercise and Note Models
class ExerciseInput(BaseModel):
    date: date
    intensity: Intensity
    start_time: Optional[time] = None
    duration_min: Optional[int] = Field(None, ge=0)

    @field_validator('intensity', mode='before')
    @classmethod
    def validate_intensity(cls, v):
        if isinstance(v, str) and v not in INTENSITY_LEVELS:
            raise ValueError(f'Invalid intensity. Must be one of: {", ".join(INTENSITY_LEVELS)}')
        return v


class DateIntensity(BaseModel):
    date: date
    intensity: Intensity


class NoteInput(BaseModel):
    date: date
    body: Optional[str] = Field(None, max_length=NOTE_MAX_LENGTH)


class TimezoneSetting(BaseModel):
    timezone: str


# Friction Telemetry Models
class FrictionTelemetryInput(BaseModel):
    form_time_ms: int
    error_kind: Optional[str] = None
    retry_count: int = 0
    immediate_edit: bool = False
    follow_up_failure: bool = False


class FrictionWindowAggregate(BaseModel):
    submit_count: int = 0
    median_form_time_ms: float = 0.0
    avg_form_time_ms: float = 0.0
    error_count: int = 0
    retries_total: int = 0
    retries_avg: float = 0.0
    immediate_edit_count: int = 0
    follow_up_failure_count: int = 0
    error_rate: float = 0.0
    immediate_edit_rate: float = 0.0
    follow_up_failure_rate: float = 0.0


class FrictionErrorKindAggregate(BaseModel):
    error_kind: str
    occurrences: int
    retries_total: int
    avg_form_time_ms: float
    immediate_edit_count: int
    follow_up_failure_count: int


# Trend Models
class SleepBar(BaseModel):
    date: date  # wake date
    bed_time: time
    wake_time: time
    quality: Optional[int] = None
    duration_min: Optional[int] = None


class DurationBucket(BaseModel):
    bucket: str
    avg_min: float
    min_min: int
    max_min: int


class QualityBucket(BaseModel):
    bucket: str
    avg: float


class LatencyBucket(BaseModel):
    bucket: str
    median: float


class SummaryResponse(BaseModel):
    duration_by_bucket: List[DurationBucket] = []
    quality_by_bucket: List[QualityBucket] = []
    latency_by_bucket: List[LatencyBucket] = []


# Personalization Models
class PersonalizationWindow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_date: date = Field(..., alias='from')
    to_date: date = Field(..., alias='to')
    logged_days: int
    missing_days: int
    missing_days_pct: float


class DurationBaselineMetric(BaseModel):
    eligible: bool
    sample_days: int
    p10_min: Optional[float] = None
    p50_min: Optional[float] = None
    p90_min: Optional[float] = None
    iqr_min: Optional[float] = None
    recent_out_of_range_incidence_pct: Optional[float] = None


class DayTypeTimingBaselineMetric(BaseModel):
    eligible: bool
    weekday_sample_days: int
    weekend_sample_days: int
    weekday_bed_median_min: Optional[float] = None
    weekday_wake_median_min: Optional[float] = None
    weekend_bed_median_min: Optional[float] = None
    weekend_wake_median_min: Optional[float] = None
    midpoint_stable_across_windows: bool
    recent_14_day_diverges_from_baseline: bool


class SocialJetlagMetric(BaseModel):
    eligible: bool
    weekend_sample_days: int
    current_delta_min: Optional[float] = None
    prior_delta_min: Optional[float] = None
    sustained_two_windows: bool


class ScheduleVariabilityMetric(BaseModel):
    eligible: bool
    current_variability_min: Optional[float] = None
    prior_variability_min: Optional[float] = None
    sustained_two_windows: bool
    high_data_gap: bool


class RankedQualityFactor(BaseModel):
    factor: str
    effect: float


class QualityFactorRankingMetric(BaseModel):
    eligible: bool
    sessions_with_quality: int
    distinct_quality_values: int
    stable_across_adjacent_windows: bool
    ranked_factors: List[RankedQualityFactor] = []


class PersonalizationMetrics(BaseModel):
    duration_baseline: DurationBaselineMetric
    day_type_timing_baseline: DayTypeTimingBaselineMetric
    social_jetlag: SocialJetlagMetric
    schedule_variability: ScheduleVariabilityMetric
    quality_factor_ranking: QualityFactorRankingMetric


class ActionRecommendation(BaseModel):
    action_key: str
    status: RecommendationStatus
    confidence: Confidence
    rationale: str
    suppression_reasons: List[str] = []


class PersonalizationResponse(BaseModel):
    as_of: date
    window_days: int
    current_window: PersonalizationWindow
    prior_window: PersonalizationWindow
    metrics: PersonalizationMetrics
    recommendations: List[ActionRecommendation]


# Friction Backlog Models
class FrictionProposalEvidence(BaseModel):
    current_occurrences: int
    prior_occurrences: int
    current_submit_count: int
    prior_submit_count: int
    current_avg_form_time_ms: float
    prior_avg_form_time_ms: float
    current_retry_avg: float
    prior_retry_avg: float
    current_follow_up_failure_rate: float
    prior_follow_up_failure_rate: float


class FrictionBacklogProposal(BaseModel):
    rank: int = 0
    action_key: str
    observed_evidence: FrictionProposalEvidence
    expected_benefit: str
    estimated_minutes_saved_per_week: float = Field(..., ge=0.0)
    confidence: Confidence
    persistence_two_windows: bool
    rollback_condition: str
    auto_promoted: bool


class FrictionBacklogWindow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_date: date = Field(..., alias='from')
    to_date: date = Field(..., alias='to')
    submit_count: int


class FrictionBacklogResponse(BaseModel):
    as_of: date
    window_days: int
    minimum_sample_met: bool
    current_window: FrictionBacklogWindow
    prior_window: FrictionBacklogWindow
    proposals: List[FrictionBacklogProposal] = []
