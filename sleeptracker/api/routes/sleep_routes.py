# sleeptracker/api/routes/sleep_routes.py
from fastapi import APIRouter, Depends, Query, Response
from typing import List, Optional

from sleeptracker.api.dependencies import get_sleep_service
from sleeptracker.core.models.data_models import CreatedResponse, SleepInput, SleepListItem, SleepSession
from sleeptracker.core.services.sleep_service import SleepService
from sleeptracker.utils.constants import RECORD_RANGE_ORDER_MESSAGE
from sleeptracker.utils.data_validation import RequestValidator

router = APIRouter(
    prefix="/api/sleep",
    tags=["Sleep"],
    responses={404: {"description": "Not found"}}
)


@router.post("", response_model=CreatedResponse, status_code=201)
async def create_sleep(entry: SleepInput, service: SleepService = Depends(get_sleep_service)):
    """Log a sleep session; the duration is computed in the user's timezone"""
    session_id = await service.create_sleep(entry)
    return CreatedResponse(id=session_id)


@router.get("/recent", response_model=List[SleepListItem])
async def list_recent(days: Optional[int] = None, service: SleepService = Depends(get_sleep_service)):
    """Daily rows for the latest N wake dates (1..31, default 7), newest first"""
    return await service.list_recent(days)


@router.get("/range", response_model=List[SleepListItem])
async def list_range(
    from_: str = Query(..., alias="from"),
    to: str = Query(...),
    service: SleepService = Depends(get_sleep_service)
):
    """Daily rows in an inclusive date range of at most 62 days"""
    from_date, to_date = RequestValidator.parse_and_validate_date_range(
        from_, to, order_message=RECORD_RANGE_ORDER_MESSAGE
    )
    return await service.list_range(from_date, to_date)


@router.get("/date/{date}", response_model=List[SleepSession])
async def get_sleep_by_date(date: str, service: SleepService = Depends(get_sleep_service)):
    wake_date = RequestValidator.parse_date_field(date, 'date')
    return await service.get_sleep_by_date(wake_date)


@router.get("/{session_id}", response_model=SleepSession)
async def get_sleep(session_id: int, service: SleepService = Depends(get_sleep_service)):
    return await service.get_sleep(session_id)


@router.put("/{session_id}", status_code=204)
async def update_sleep(session_id: int, entry: SleepInput, service: SleepService = Depends(get_sleep_service)):
    await service.update_sleep(session_id, entry)
    return Response(status_code=204)


@router.delete("/{session_id}", status_code=204)
async def delete_sleep(session_id: int, service: SleepService = Depends(get_sleep_service)):
    await service.delete_sleep(session_id)
    return Response(status_code=204)
