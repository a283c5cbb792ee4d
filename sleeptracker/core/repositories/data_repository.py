# sleeptracker/core/repositories/data_repository.py
import logging
import os
import threading
from datetime import date, datetime
from typing import List, Optional

import pandas as pd

from sleeptracker.core.analysis.time_resolver import sleep_window_bounds
from sleeptracker.core.models.data_models import (
    DateIntensity,
    ExerciseInput,
    FrictionTelemetryInput,
    NoteInput,
    SleepInput,
    SleepListItem,
    SleepSession,
)
from sleeptracker.utils.constants import INTENSITY_LEVELS

logger = logging.getLogger(__name__)

SLEEP_COLUMNS = ['id', 'date', 'bed_time', 'wake_time', 'latency_min', 'awakenings', 'quality', 'duration_min']
EXERCISE_COLUMNS = ['id', 'date', 'intensity', 'start_time', 'duration_min']
NOTE_COLUMNS = ['id', 'date', 'body']
FRICTION_COLUMNS = ['id', 'recorded_at', 'form_time_ms', 'error_kind', 'retry_count',
                    'immediate_edit', 'follow_up_failure']
SETTINGS_COLUMNS = ['key', 'value']

DAILY_COLUMNS = ['id', 'wake_date', 'bed_time', 'wake_time', 'latency_min', 'awakenings',
                 'quality', 'duration_min', 'session_count']

# Failures surfaced as UpstreamReadFailure by the services
STORAGE_ERRORS = (OSError, pd.errors.ParserError, pd.errors.EmptyDataError)

TIME_FORMAT = '%H:%M:%S'
TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'
USER_TIMEZONE_KEY = 'user_timezone'


def _format_time(t):
    return t.strftime(TIME_FORMAT) if t is not None else None


class DataRepository:
    """CSV-backed data access layer for sleep records, exercise, notes and telemetry"""

    def __init__(self, data_dir='data/sleeptracker'):
        self.data_dir = data_dir
        self._lock = threading.Lock()
        os.makedirs(data_dir, exist_ok=True)

    # ------------------------------------------------------------------
    # Table helpers
    # ------------------------------------------------------------------

    def _path(self, name):
        return os.path.join(self.data_dir, f"{name}.csv")

    def _read_table(self, name, columns):
        """Read a table as strings; a missing file is an empty table"""
        path = self._path(name)
        if not os.path.exists(path):
            return pd.DataFrame(columns=columns)
        return pd.read_csv(path, dtype=str, keep_default_na=False, na_values=[''])

    def _write_table(self, name, df):
        df.to_csv(self._path(name), index=False)

    @staticmethod
    def _append(df, row):
        if len(df) == 0:
            return pd.DataFrame([row], columns=df.columns)
        return pd.concat([df, pd.DataFrame([row], columns=df.columns)], ignore_index=True)

    @staticmethod
    def _next_id(df):
        if len(df) == 0:
            return 1
        return int(df['id'].astype(int).max()) + 1

    # ------------------------------------------------------------------
    # Sleep sessions
    # ------------------------------------------------------------------

    def get_sleep_sessions(self) -> pd.DataFrame:
        """All stored sessions with typed columns"""
        df = self._read_table('sleep_sessions', SLEEP_COLUMNS)
        if len(df) == 0:
            return pd.DataFrame(columns=SLEEP_COLUMNS)

        df['id'] = df['id'].astype(int)
        df['date'] = pd.to_datetime(df['date'], format='%Y-%m-%d').dt.date
        df['bed_time'] = pd.to_datetime(df['bed_time'], format=TIME_FORMAT).dt.time
        df['wake_time'] = pd.to_datetime(df['wake_time'], format=TIME_FORMAT).dt.time
        for column in ('latency_min', 'awakenings', 'quality', 'duration_min'):
            df[column] = df[column].astype(int)
        return df

    def _session_row(self, session_id, sleep_input: SleepInput, duration_min):
        return {
            'id': session_id,
            'date': sleep_input.date.isoformat(),
            'bed_time': _format_time(sleep_input.bed_time),
            'wake_time': _format_time(sleep_input.wake_time),
            'latency_min': sleep_input.latency_min,
            'awakenings': sleep_input.awakenings,
            'quality': sleep_input.quality,
            'duration_min': duration_min,
        }

    def insert_sleep(self, sleep_input: SleepInput, duration_min: int) -> int:
        """Insert a session with its precomputed duration and return the new id"""
        with self._lock:
            df = self._read_table('sleep_sessions', SLEEP_COLUMNS)
            session_id = self._next_id(df)
            df = self._append(df, self._session_row(session_id, sleep_input, duration_min))
            self._write_table('sleep_sessions', df)

        logger.info(f"Inserted sleep session {session_id} for {sleep_input.date}")
        return session_id

    def update_sleep(self, session_id: int, sleep_input: SleepInput, duration_min: int) -> bool:
        """Replace a session; returns False when the id does not exist"""
        with self._lock:
            df = self._read_table('sleep_sessions', SLEEP_COLUMNS)
            mask = df['id'].astype(int) == session_id
            if not mask.any():
                return False
            row = self._session_row(session_id, sleep_input, duration_min)
            for key, value in row.items():
                df.loc[mask, key] = str(value)
            self._write_table('sleep_sessions', df)

        logger.info(f"Updated sleep session {session_id}")
        return True

    def delete_sleep(self, session_id: int) -> bool:
        with self._lock:
            df = self._read_table('sleep_sessions', SLEEP_COLUMNS)
            mask = df['id'].astype(int) == session_id
            if not mask.any():
                return False
            self._write_table('sleep_sessions', df[~mask])

        logger.info(f"Deleted sleep session {session_id}")
        return True

    @staticmethod
    def _to_session(row) -> SleepSession:
        return SleepSession(
            id=int(row['id']),
            date=row['date'],
            bed_time=row['bed_time'],
            wake_time=row['wake_time'],
            latency_min=int(row['latency_min']),
            awakenings=int(row['awakenings']),
            quality=int(row['quality']),
        )

    def find_sleep_by_id(self, session_id: int) -> Optional[SleepSession]:
        df = self.get_sleep_sessions()
        match = df[df['id'] == session_id]
        if len(match) == 0:
            return None
        return self._to_session(match.iloc[0])

    def find_sleep_by_date(self, wake_date: date) -> List[SleepSession]:
        """Sessions for a wake date ordered by wake time"""
        df = self.get_sleep_sessions()
        match = df[df['date'] == wake_date]
        if len(match) == 0:
            return []
        match = match.sort_values('wake_time')
        return [self._to_session(row) for _, row in match.iterrows()]

    @staticmethod
    def _with_bounds(df):
        bounds = [sleep_window_bounds(d, b, w) for d, b, w in zip(df['date'], df['bed_time'], df['wake_time'])]
        df = df.copy()
        df['bed_dt'] = pd.to_datetime([b for b, _ in bounds])
        df['wake_dt'] = pd.to_datetime([w for _, w in bounds])
        return df

    def has_sleep_overlap(self, bed_dt: datetime, wake_dt: datetime, exclude_id: Optional[int] = None) -> bool:
        """
        Check whether a window overlaps any stored session.

        Overlap is inclusive: a session ending exactly when another starts
        counts as overlapping.
        """
        df = self.get_sleep_sessions()
        if exclude_id is not None:
            df = df[df['id'] != exclude_id]
        if len(df) == 0:
            return False

        df = self._with_bounds(df)
        overlapping = (df['bed_dt'] <= pd.Timestamp(wake_dt)) & (df['wake_dt'] >= pd.Timestamp(bed_dt))
        return bool(overlapping.any())

    # ------------------------------------------------------------------
    # Daily projection
    # ------------------------------------------------------------------

    def get_daily_sleep(self) -> pd.DataFrame:
        """
        Collapse sessions into one row per wake date.

        Earliest bed and latest wake datetimes give the bed/wake times; latency
        and quality are truncated averages; awakenings and durations are summed.

        Returns:
            DataFrame with DAILY_COLUMNS ordered by wake_date
        """
        df = self.get_sleep_sessions()
        if len(df) == 0:
            return pd.DataFrame(columns=DAILY_COLUMNS)

        df = self._with_bounds(df)
        daily = df.groupby('date', sort=True).agg(
            id=('id', 'min'),
            bed_dt=('bed_dt', 'min'),
            wake_dt=('wake_dt', 'max'),
            latency_min=('latency_min', 'mean'),
            awakenings=('awakenings', 'sum'),
            quality=('quality', 'mean'),
            duration_min=('duration_min', 'sum'),
            session_count=('id', 'size'),
        ).reset_index().rename(columns={'date': 'wake_date'})

        daily['bed_time'] = daily['bed_dt'].dt.time
        daily['wake_time'] = daily['wake_dt'].dt.time
        daily['latency_min'] = daily['latency_min'].astype(int)
        daily['quality'] = daily['quality'].astype(int)
        return daily[DAILY_COLUMNS]

    def fetch_daily_rows(self, from_date: date, to_date: date) -> pd.DataFrame:
        """Daily rows with from_date <= wake_date <= to_date, ordered by wake_date"""
        daily = self.get_daily_sleep()
        if len(daily) == 0:
            return daily
        mask = (daily['wake_date'] >= from_date) & (daily['wake_date'] <= to_date)
        return daily[mask].reset_index(drop=True)

    @staticmethod
    def _to_list_items(daily) -> List[SleepListItem]:
        return [
            SleepListItem(
                id=int(row['id']),
                date=row['wake_date'],
                bed_time=row['bed_time'],
                wake_time=row['wake_time'],
                latency_min=int(row['latency_min']),
                awakenings=int(row['awakenings']),
                quality=int(row['quality']),
                duration_min=int(row['duration_min']),
                session_count=int(row['session_count']),
            )
            for row in daily.to_dict('records')
        ]

    def list_recent_sleep(self, days: int) -> List[SleepListItem]:
        """The latest `days` daily rows, newest first"""
        daily = self.get_daily_sleep()
        if len(daily) == 0:
            return []
        return self._to_list_items(daily.sort_values('wake_date', ascending=False).head(days))

    def list_sleep_range(self, from_date: date, to_date: date) -> List[SleepListItem]:
        return self._to_list_items(self.fetch_daily_rows(from_date, to_date))

    # ------------------------------------------------------------------
    # Exercise and notes
    # ------------------------------------------------------------------

    def insert_exercise(self, exercise: ExerciseInput) -> int:
        """
        Insert an exercise event.

        An event without start time and duration is the daily intensity marker
        and is upserted by date.
        """
        with self._lock:
            df = self._read_table('exercise_events', EXERCISE_COLUMNS)
            day = exercise.date.isoformat()
            intensity = exercise.intensity.value

            if exercise.start_time is None and exercise.duration_min is None and len(df) > 0:
                marker = (df['date'] == day) & df['start_time'].isna() & df['duration_min'].isna()
                if marker.any():
                    event_id = int(df.loc[marker, 'id'].iloc[0])
                    df.loc[df['id'].astype(int) == event_id, 'intensity'] = intensity
                    self._write_table('exercise_events', df)
                    logger.info(f"Updated daily intensity for {day} to {intensity}")
                    return event_id

            event_id = self._next_id(df)
            df = self._append(df, {
                'id': event_id,
                'date': day,
                'intensity': intensity,
                'start_time': _format_time(exercise.start_time),
                'duration_min': exercise.duration_min,
            })
            self._write_table('exercise_events', df)

        logger.info(f"Inserted exercise event {event_id} for {day}")
        return event_id

    def list_exercise_intensity(self, from_date: date, to_date: date) -> List[DateIntensity]:
        """Highest intensity per date in [from_date, to_date], ordered by date"""
        df = self._read_table('exercise_events', EXERCISE_COLUMNS)
        if len(df) == 0:
            return []

        df['date'] = pd.to_datetime(df['date'], format='%Y-%m-%d').dt.date
        df = df[(df['date'] >= from_date) & (df['date'] <= to_date)].copy()
        if len(df) == 0:
            return []

        # Unknown labels rank as "none"
        df['level'] = df['intensity'].map({name: i for i, name in enumerate(INTENSITY_LEVELS)}).fillna(0)
        per_date = df.groupby('date', sort=True)['level'].max()
        return [
            DateIntensity(date=day, intensity=INTENSITY_LEVELS[int(level)])
            for day, level in per_date.items()
        ]

    def insert_note(self, note: NoteInput) -> int:
        with self._lock:
            df = self._read_table('notes', NOTE_COLUMNS)
            note_id = self._next_id(df)
            df = self._append(df, {'id': note_id, 'date': note.date.isoformat(), 'body': note.body})
            self._write_table('notes', df)

        logger.info(f"Inserted note {note_id} for {note.date}")
        return note_id

    # ------------------------------------------------------------------
    # Friction telemetry
    # ------------------------------------------------------------------

    def insert_friction_telemetry(self, event: FrictionTelemetryInput, recorded_at: datetime) -> int:
        """Append one friction event; recorded_at is naive UTC"""
        with self._lock:
            df = self._read_table('friction_telemetry', FRICTION_COLUMNS)
            event_id = self._next_id(df)
            df = self._append(df, {
                'id': event_id,
                'recorded_at': recorded_at.strftime(TIMESTAMP_FORMAT),
                'form_time_ms': event.form_time_ms,
                'error_kind': event.error_kind,
                'retry_count': event.retry_count,
                'immediate_edit': int(event.immediate_edit),
                'follow_up_failure': int(event.follow_up_failure),
            })
            self._write_table('friction_telemetry', df)

        logger.debug(f"Recorded friction event {event_id} (error_kind={event.error_kind})")
        return event_id

    def fetch_friction_events(self, from_dt: datetime, to_dt: datetime) -> pd.DataFrame:
        """Friction events with from_dt <= recorded_at <= to_dt, typed and ordered by time"""
        df = self._read_table('friction_telemetry', FRICTION_COLUMNS)
        if len(df) == 0:
            return pd.DataFrame(columns=FRICTION_COLUMNS)

        df['id'] = df['id'].astype(int)
        df['recorded_at'] = pd.to_datetime(df['recorded_at'], format=TIMESTAMP_FORMAT)
        df['form_time_ms'] = df['form_time_ms'].astype(int)
        df['retry_count'] = df['retry_count'].astype(int)
        df['immediate_edit'] = df['immediate_edit'].astype(int).astype(bool)
        df['follow_up_failure'] = df['follow_up_failure'].astype(int).astype(bool)

        mask = (df['recorded_at'] >= pd.Timestamp(from_dt)) & (df['recorded_at'] <= pd.Timestamp(to_dt))
        return df[mask].sort_values('recorded_at').reset_index(drop=True)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_setting(self, key: str) -> Optional[str]:
        df = self._read_table('settings', SETTINGS_COLUMNS)
        match = df[df['key'] == key]
        if len(match) == 0:
            return None
        return match['value'].iloc[0]

    def set_setting(self, key: str, value: str):
        with self._lock:
            df = self._read_table('settings', SETTINGS_COLUMNS)
            if len(df) > 0 and (df['key'] == key).any():
                df.loc[df['key'] == key, 'value'] = value
            else:
                df = self._append(df, {'key': key, 'value': value})
            self._write_table('settings', df)

    def get_user_timezone(self) -> Optional[str]:
        return self.get_setting(USER_TIMEZONE_KEY)

    def set_user_timezone(self, timezone: str):
        self.set_setting(USER_TIMEZONE_KEY, timezone)
        logger.info(f"User timezone set to {timezone}")
