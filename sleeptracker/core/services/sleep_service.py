# sleeptracker/core/services/sleep_service.py
import logging
from datetime import date
from typing import List

from sleeptracker.core.analysis.time_resolver import TimeResolver, resolve_timezone, sleep_window_bounds
from sleeptracker.core.errors import InvalidInput, NotFound, UpstreamReadFailure
from sleeptracker.core.models.data_models import (
    DateIntensity,
    ExerciseInput,
    NoteInput,
    SleepInput,
    SleepListItem,
    SleepSession,
)
from sleeptracker.core.repositories.data_repository import STORAGE_ERRORS
from sleeptracker.utils.constants import MAX_RANGE_DAYS, RECORD_RANGE_ORDER_MESSAGE
from sleeptracker.utils.data_validation import RequestValidator

logger = logging.getLogger(__name__)

OVERLAP_MESSAGE = "sleep session overlaps existing session"


class SleepService:
    """Record keeping for sleep sessions, exercise, notes and the user timezone"""

    def __init__(self, repository, time_resolver=None, max_range_days=MAX_RANGE_DAYS):
        self.repository = repository
        self.time_resolver = time_resolver or TimeResolver()
        self.max_range_days = max_range_days

    def _call(self, operation, *args):
        try:
            return operation(*args)
        except STORAGE_ERRORS as e:
            logger.error(f"Record store failure in {operation.__name__}: {e}")
            raise UpstreamReadFailure(f"failed to access record store: {e}")

    def _user_zone(self):
        stored = self._call(self.repository.get_user_timezone)
        if not stored:
            return self.time_resolver.default_tz
        try:
            return resolve_timezone(stored)
        except InvalidInput:
            logger.warning(
                f"Stored timezone {stored!r} is invalid, using {self.time_resolver.default_tz.key}"
            )
            return self.time_resolver.default_tz

    def _prepare(self, sleep_input: SleepInput, exclude_id=None) -> int:
        """Compute the duration and reject overlapping windows"""
        bed_dt, wake_dt = sleep_window_bounds(sleep_input.date, sleep_input.bed_time, sleep_input.wake_time)
        duration = self.time_resolver.compute_duration_min(
            sleep_input.date, sleep_input.bed_time, sleep_input.wake_time, self._user_zone()
        )
        if self._call(self.repository.has_sleep_overlap, bed_dt, wake_dt, exclude_id):
            raise InvalidInput(OVERLAP_MESSAGE)
        return duration

    async def create_sleep(self, sleep_input: SleepInput) -> int:
        duration = self._prepare(sleep_input)
        return self._call(self.repository.insert_sleep, sleep_input, duration)

    async def get_sleep(self, session_id: int) -> SleepSession:
        session = self._call(self.repository.find_sleep_by_id, session_id)
        if session is None:
            raise NotFound()
        return session

    async def get_sleep_by_date(self, wake_date: date) -> List[SleepSession]:
        return self._call(self.repository.find_sleep_by_date, wake_date)

    async def update_sleep(self, session_id: int, sleep_input: SleepInput):
        if self._call(self.repository.find_sleep_by_id, session_id) is None:
            raise NotFound()
        duration = self._prepare(sleep_input, exclude_id=session_id)
        if not self._call(self.repository.update_sleep, session_id, sleep_input, duration):
            raise NotFound()

    async def delete_sleep(self, session_id: int):
        if not self._call(self.repository.delete_sleep, session_id):
            raise NotFound()

    async def list_recent(self, days=None) -> List[SleepListItem]:
        return self._call(self.repository.list_recent_sleep, RequestValidator.clamp_recent_days(days))

    async def list_range(self, from_date: date, to_date: date) -> List[SleepListItem]:
        RequestValidator.validate_range_span(from_date, to_date, self.max_range_days, RECORD_RANGE_ORDER_MESSAGE)
        return self._call(self.repository.list_sleep_range, from_date, to_date)

    async def create_exercise(self, exercise: ExerciseInput) -> int:
        return self._call(self.repository.insert_exercise, exercise)

    async def list_exercise_intensity(self, from_date: date, to_date: date) -> List[DateIntensity]:
        RequestValidator.validate_range_span(from_date, to_date, self.max_range_days, RECORD_RANGE_ORDER_MESSAGE)
        return self._call(self.repository.list_exercise_intensity, from_date, to_date)

    async def create_note(self, note: NoteInput) -> int:
        return self._call(self.repository.insert_note, note)

    async def get_timezone(self) -> str:
        return self._user_zone().key

    async def set_timezone(self, timezone: str) -> str:
        """Validate an IANA name and persist it as the user timezone"""
        zone = resolve_timezone(timezone)
        self._call(self.repository.set_user_timezone, zone.key)
        return zone.key
