"""Tests for sleeptracker.core.analysis.order_statistics -- percentiles and clock arithmetic."""

import pytest

from sleeptracker.core.analysis.order_statistics import (
    circular_abs_diff,
    circular_minutes_diff,
    circular_signed_minutes_delta,
    median,
    median_selection,
    normalize_minutes,
    pct,
    percentile_linear,
    std_dev,
    within_clock_minute_band,
)


class TestPercentileLinear:
    def test_interpolates_between_ranks(self):
        assert percentile_linear([10, 20, 30, 40, 50], 0.10) == pytest.approx(14.0)

    def test_unsorted_input(self):
        assert percentile_linear([40, 10, 30, 20], 0.5) == pytest.approx(25.0)

    def test_input_not_modified(self):
        values = [3, 1, 2]
        percentile_linear(values, 0.5)
        assert values == [3, 1, 2]

    def test_p_is_clamped(self):
        assert percentile_linear([1, 2, 3], 1.7) == 3.0
        assert percentile_linear([1, 2, 3], -0.2) == 1.0

    def test_non_decreasing_in_p(self):
        values = [480, 395, 512, 430, 430, 601, 377, 455]
        results = [percentile_linear(values, p / 20) for p in range(-2, 23)]
        assert all(a <= b for a, b in zip(results, results[1:]))
        assert results[0] == min(values)
        assert results[-1] == max(values)

    def test_single_value(self):
        assert percentile_linear([42], 0.9) == 42.0

    def test_empty(self):
        assert percentile_linear([], 0.5) is None


class TestMedian:
    @pytest.mark.parametrize("values", [
        [5],
        [10, 20],
        [7, 1, 3],
        [4, 4, 1, 9, 2, 8],
    ])
    def test_selection_matches_sort(self, values):
        assert median_selection(values) == pytest.approx(median(values))

    def test_even_length_is_averaged(self):
        assert median_selection([10, 30, 20, 40]) == 25.0

    def test_empty(self):
        assert median([]) is None
        assert median_selection([]) is None


class TestStdDev:
    def test_population_std(self):
        assert std_dev([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.0)

    def test_needs_two_values(self):
        assert std_dev([5]) is None
        assert std_dev([]) is None


class TestPct:
    def test_share(self):
        assert pct(1, 4) == 25.0

    def test_zero_total(self):
        assert pct(0, 0) is None


class TestCircular:
    def test_normalize_negative(self):
        assert normalize_minutes(-30) == 1410

    def test_normalize_wraps_full_day(self):
        assert normalize_minutes(1440 + 15) == 15

    def test_diff_across_midnight(self):
        assert circular_minutes_diff(1435, 5) == 10
        assert circular_minutes_diff(5, 1435) == 10

    def test_diff_is_at_most_half_day(self):
        assert circular_minutes_diff(0, 720) == 720
        assert circular_minutes_diff(0, 900) == 540

    def test_signed_delta_across_midnight(self):
        assert circular_signed_minutes_delta(5, 1435) == 10
        assert circular_signed_minutes_delta(1435, 5) == -10

    def test_signed_delta_half_day_is_negative(self):
        assert circular_signed_minutes_delta(720, 0) == -720

    def test_band(self):
        assert within_clock_minute_band(1430, 20, 30)
        assert not within_clock_minute_band(1400, 20, 30)

    def test_abs_diff_with_missing_side(self):
        assert circular_abs_diff(None, 10) is None
        assert circular_abs_diff(1435, 5) == 10
