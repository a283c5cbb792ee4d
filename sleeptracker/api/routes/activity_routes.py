# sleeptracker/api/routes/activity_routes.py
from fastapi import APIRouter, Depends, Query
from typing import List

from sleeptracker.api.dependencies import get_sleep_service
from sleeptracker.core.models.data_models import CreatedResponse, DateIntensity, ExerciseInput, NoteInput
from sleeptracker.core.services.sleep_service import SleepService
from sleeptracker.utils.constants import RECORD_RANGE_ORDER_MESSAGE
from sleeptracker.utils.data_validation import RequestValidator

router = APIRouter(
    prefix="/api",
    tags=["Activity"],
)


@router.post("/exercise", response_model=CreatedResponse, status_code=201)
async def create_exercise(exercise: ExerciseInput, service: SleepService = Depends(get_sleep_service)):
    """Record an exercise event; a bare date + intensity updates that day's intensity"""
    return CreatedResponse(id=await service.create_exercise(exercise))


@router.get("/exercise/intensity", response_model=List[DateIntensity])
async def exercise_intensity(
    from_: str = Query(..., alias="from"),
    to: str = Query(...),
    service: SleepService = Depends(get_sleep_service)
):
    from_date, to_date = RequestValidator.parse_and_validate_date_range(
        from_, to, order_message=RECORD_RANGE_ORDER_MESSAGE
    )
    return await service.list_exercise_intensity(from_date, to_date)


@router.post("/note", response_model=CreatedResponse, status_code=201)
async def create_note(note: NoteInput, service: SleepService = Depends(get_sleep_service)):
    return CreatedResponse(id=await service.create_note(note))
