# sleeptracker/core/recommendation/friction_backlog.py
"""
Friction telemetry backlog ranking.

Aggregates per-submit friction events over the current and prior rolling
windows, then turns every error kind seen in the current window into a
remediation proposal scored by estimated minutes saved per week.
"""

import logging
from typing import Dict, List

import pandas as pd

from sleeptracker.core.analysis.windows import WindowBounds
from sleeptracker.core.models.data_models import (
    Confidence,
    FrictionBacklogProposal,
    FrictionBacklogResponse,
    FrictionBacklogWindow,
    FrictionErrorKindAggregate,
    FrictionProposalEvidence,
    FrictionWindowAggregate,
)
from sleeptracker.utils.constants import (
    FRICTION_FAILURE_WEIGHT,
    FRICTION_HIGH_MIN_OCCURRENCES,
    FRICTION_MEDIUM_MIN_OCCURRENCES,
    FRICTION_MIN_SUBMITS,
    FRICTION_RETRY_WEIGHT,
    FRICTION_ROLLBACK_CONDITION,
)

logger = logging.getLogger(__name__)


def aggregate_friction_window(events: pd.DataFrame) -> FrictionWindowAggregate:
    """
    Summarize all submits in one window.

    Args:
        events: Friction events as returned by DataRepository.fetch_friction_events

    Returns:
        FrictionWindowAggregate; all zeros for an empty window
    """
    if events is None or len(events) == 0:
        return FrictionWindowAggregate()

    submit_count = len(events)
    error_count = int(events['error_kind'].notna().sum())
    retries_total = int(events['retry_count'].sum())
    immediate_edits = int(events['immediate_edit'].astype(bool).sum())
    follow_up_failures = int(events['follow_up_failure'].astype(bool).sum())

    return FrictionWindowAggregate(
        submit_count=submit_count,
        median_form_time_ms=float(events['form_time_ms'].median()),
        avg_form_time_ms=float(events['form_time_ms'].mean()),
        error_count=error_count,
        retries_total=retries_total,
        retries_avg=retries_total / submit_count,
        immediate_edit_count=immediate_edits,
        follow_up_failure_count=follow_up_failures,
        error_rate=error_count / submit_count,
        immediate_edit_rate=immediate_edits / submit_count,
        follow_up_failure_rate=follow_up_failures / submit_count,
    )


def aggregate_error_kinds(events: pd.DataFrame) -> List[FrictionErrorKindAggregate]:
    """Per-error-kind aggregates, ordered by error kind; events without a kind are skipped"""
    if events is None or len(events) == 0:
        return []

    with_kind = events[events['error_kind'].notna()].copy()
    if len(with_kind) == 0:
        return []

    with_kind['immediate_edit'] = with_kind['immediate_edit'].astype(bool).astype(int)
    with_kind['follow_up_failure'] = with_kind['follow_up_failure'].astype(bool).astype(int)

    grouped = with_kind.groupby('error_kind', sort=True).agg(
        occurrences=('form_time_ms', 'size'),
        retries_total=('retry_count', 'sum'),
        avg_form_time_ms=('form_time_ms', 'mean'),
        immediate_edit_count=('immediate_edit', 'sum'),
        follow_up_failure_count=('follow_up_failure', 'sum'),
    ).reset_index()

    result = []
    for _, row in grouped.iterrows():
        result.append(FrictionErrorKindAggregate(
            error_kind=str(row['error_kind']),
            occurrences=int(row['occurrences']),
            retries_total=int(row['retries_total']),
            avg_form_time_ms=float(row['avg_form_time_ms']),
            immediate_edit_count=int(row['immediate_edit_count']),
            follow_up_failure_count=int(row['follow_up_failure_count']),
        ))
    return result


def _per_occurrence(total: int, occurrences: int) -> float:
    return total / occurrences if occurrences > 0 else 0.0


class FrictionBacklogRanker:
    """Scores and ranks friction remediation proposals across two windows"""

    def __init__(self, min_submits=FRICTION_MIN_SUBMITS):
        self.min_submits = min_submits

    def confidence(self, minimum_sample_met, persistent, current_occurrences, prior_occurrences):
        """High/medium need the sample floor, persistence and an occurrence floor in both windows"""
        if not (minimum_sample_met and persistent):
            return Confidence.LOW
        floor = min(current_occurrences, prior_occurrences)
        if floor >= FRICTION_HIGH_MIN_OCCURRENCES:
            return Confidence.HIGH
        if floor >= FRICTION_MEDIUM_MIN_OCCURRENCES:
            return Confidence.MEDIUM
        return Confidence.LOW

    def build_proposal(self, current: FrictionErrorKindAggregate, prior_by_kind: Dict[str, FrictionErrorKindAggregate],
                       current_agg: FrictionWindowAggregate, prior_agg: FrictionWindowAggregate,
                       window_days: int) -> FrictionBacklogProposal:
        prior = prior_by_kind.get(current.error_kind)
        prior_occurrences = prior.occurrences if prior else 0
        persistent = current.occurrences > 0 and prior_occurrences > 0

        current_retry_avg = _per_occurrence(current.retries_total, current.occurrences)
        current_failure_rate = _per_occurrence(current.follow_up_failure_count, current.occurrences)
        prior_form_ms = prior.avg_form_time_ms if prior else 0.0
        prior_retry_avg = _per_occurrence(prior.retries_total, prior.occurrences) if prior else 0.0
        prior_failure_rate = _per_occurrence(prior.follow_up_failure_count, prior.occurrences) if prior else 0.0

        delta_form_minutes = max(current.avg_form_time_ms - prior_form_ms, 0.0) / 60_000.0
        delta_retry = max(current_retry_avg - prior_retry_avg, 0.0)
        delta_failure_rate = max(current_failure_rate - prior_failure_rate, 0.0)
        events_per_week = current.occurrences * 7.0 / window_days
        minutes_saved = max(
            events_per_week * (
                delta_form_minutes
                + delta_retry * FRICTION_RETRY_WEIGHT
                + delta_failure_rate * FRICTION_FAILURE_WEIGHT
            ),
            0.0,
        )

        minimum_sample_met = current_agg.submit_count >= self.min_submits
        confidence = self.confidence(minimum_sample_met, persistent, current.occurrences, prior_occurrences)

        return FrictionBacklogProposal(
            action_key=f"friction_reduction_{current.error_kind.replace(' ', '_')}",
            observed_evidence=FrictionProposalEvidence(
                current_occurrences=current.occurrences,
                prior_occurrences=prior_occurrences,
                current_submit_count=current_agg.submit_count,
                prior_submit_count=prior_agg.submit_count,
                current_avg_form_time_ms=current.avg_form_time_ms,
                prior_avg_form_time_ms=prior_form_ms,
                current_retry_avg=current_retry_avg,
                prior_retry_avg=prior_retry_avg,
                current_follow_up_failure_rate=current_failure_rate,
                prior_follow_up_failure_rate=prior_failure_rate,
            ),
            expected_benefit=(
                f"Reduce repeated '{current.error_kind}' friction by lowering retries and form time variance"
            ),
            estimated_minutes_saved_per_week=minutes_saved,
            confidence=confidence,
            persistence_two_windows=persistent,
            rollback_condition=FRICTION_ROLLBACK_CONDITION,
            auto_promoted=confidence.at_least_medium() and persistent,
        )

    def rank(self, proposals: List[FrictionBacklogProposal]) -> List[FrictionBacklogProposal]:
        """Sort by estimated benefit (descending, stable) and assign 1-based ranks"""
        ordered = sorted(proposals, key=lambda p: p.estimated_minutes_saved_per_week, reverse=True)
        return [p.model_copy(update={'rank': i + 1}) for i, p in enumerate(ordered)]

    def build_backlog(self, current_events: pd.DataFrame, prior_events: pd.DataFrame,
                      bounds: WindowBounds) -> FrictionBacklogResponse:
        """
        Build the ranked backlog for a pair of windows.

        Args:
            current_events: Events recorded in the current window
            prior_events: Events recorded in the prior window
            bounds: Window bounds used to select the events

        Returns:
            FrictionBacklogResponse with ranked proposals
        """
        current_agg = aggregate_friction_window(current_events)
        prior_agg = aggregate_friction_window(prior_events)
        prior_by_kind = {agg.error_kind: agg for agg in aggregate_error_kinds(prior_events)}

        proposals = [
            self.build_proposal(kind, prior_by_kind, current_agg, prior_agg, bounds.window_days)
            for kind in aggregate_error_kinds(current_events)
        ]
        ranked = self.rank(proposals)
        logger.info(
            f"Friction backlog as of {bounds.current_to}: {len(ranked)} proposals, "
            f"{current_agg.submit_count} submits in current window"
        )

        return FrictionBacklogResponse(
            as_of=bounds.current_to,
            window_days=bounds.window_days,
            minimum_sample_met=current_agg.submit_count >= self.min_submits,
            current_window=FrictionBacklogWindow(
                from_date=bounds.current_from,
                to_date=bounds.current_to,
                submit_count=current_agg.submit_count,
            ),
            prior_window=FrictionBacklogWindow(
                from_date=bounds.prior_from,
                to_date=bounds.prior_to,
                submit_count=prior_agg.submit_count,
            ),
            proposals=ranked,
        )
