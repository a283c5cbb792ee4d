"""
Analysis module for sleep data insights.

This module contains functions for resolving sleep times, summarizing
daily records and evaluating rolling-window personalization metrics.
"""

from sleeptracker.core.analysis.day_samples import DaySample, build_day_samples
from sleeptracker.core.analysis.personalization import evaluate_metrics
from sleeptracker.core.analysis.time_resolver import TimeResolver
from sleeptracker.core.analysis.trends import sleep_bars, summarize
from sleeptracker.core.analysis.windows import WindowBounds, compute_window_bounds

__all__ = ['DaySample', 'build_day_samples', 'evaluate_metrics', 'TimeResolver',
           'sleep_bars', 'summarize', 'WindowBounds', 'compute_window_bounds']
