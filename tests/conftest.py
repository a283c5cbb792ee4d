"""Shared fixtures and helpers for the sleeptracker test suite."""

from datetime import date, time, timedelta

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from sleeptracker.api.main import create_app
from sleeptracker.config import AppSettings
from sleeptracker.core.analysis.day_samples import DaySample
from sleeptracker.core.repositories.data_repository import DataRepository
from sleeptracker.core.models.data_models import SleepInput


# ---------------------------------------------------------------------------
# Sample-building helpers
# ---------------------------------------------------------------------------


def make_sample(
    wake_date: date,
    midpoint: float,
    duration: float = 480.0,
    quality=None,
    bed_relative: float = -60.0,
    wake_clock: float = 420.0,
) -> DaySample:
    """Build a DaySample with an explicit midpoint; weekend follows the date."""
    return DaySample(
        wake_date=wake_date,
        bed_clock_min=bed_relative % 1440,
        wake_clock_min=wake_clock,
        bed_relative_min=bed_relative,
        wake_relative_min=wake_clock,
        midpoint_clock_min=midpoint,
        duration_min=duration,
        quality=quality,
        weekend=wake_date.isoweekday() >= 6,
    )


def date_span(start: date, days: int):
    return [start + timedelta(days=i) for i in range(days)]


def make_daily_rows(entries) -> pd.DataFrame:
    """Daily projection rows from (wake_date, bed_time, wake_time, duration, quality, latency) tuples."""
    return pd.DataFrame(
        [
            {
                'wake_date': d,
                'bed_time': bed,
                'wake_time': wake,
                'duration_min': duration,
                'quality': quality,
                'latency_min': latency,
            }
            for d, bed, wake, duration, quality, latency in entries
        ],
        columns=['wake_date', 'bed_time', 'wake_time', 'duration_min', 'quality', 'latency_min'],
    )


def make_events(entries) -> pd.DataFrame:
    """Friction events from (form_time_ms, error_kind, retry_count, immediate_edit, follow_up_failure) tuples."""
    return pd.DataFrame(
        [
            {
                'id': i + 1,
                'recorded_at': pd.Timestamp('2025-06-20 12:00:00'),
                'form_time_ms': form_ms,
                'error_kind': kind,
                'retry_count': retries,
                'immediate_edit': edit,
                'follow_up_failure': failure,
            }
            for i, (form_ms, kind, retries, edit, failure) in enumerate(entries)
        ],
        columns=['id', 'recorded_at', 'form_time_ms', 'error_kind', 'retry_count',
                 'immediate_edit', 'follow_up_failure'],
    )


def sleep_input(wake_date=date(2025, 6, 2), bed=time(23, 0), wake=time(7, 0),
                latency=10, awakenings=1, quality=4) -> SleepInput:
    return SleepInput(date=wake_date, bed_time=bed, wake_time=wake,
                      latency_min=latency, awakenings=awakenings, quality=quality)


def sleep_payload(wake_date="2025-06-02", bed="23:00:00", wake="07:00:00",
                  latency=10, awakenings=1, quality=4) -> dict:
    return {
        "date": wake_date,
        "bed_time": bed,
        "wake_time": wake,
        "latency_min": latency,
        "awakenings": awakenings,
        "quality": quality,
    }


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def repository(tmp_path):
    return DataRepository(str(tmp_path / "data"))


@pytest.fixture
def settings(tmp_path):
    return AppSettings(data_dir=str(tmp_path / "api-data"), default_timezone="Asia/Tokyo")


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    return TestClient(app)
