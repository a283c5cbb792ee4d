# sleeptracker/api/routes/trends_routes.py
from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from sleeptracker.api.dependencies import get_trends_service
from sleeptracker.core.models.data_models import PersonalizationResponse, SleepBar, SummaryResponse
from sleeptracker.core.services.trends_service import TrendsService
from sleeptracker.utils.constants import DEFAULT_WINDOW_DAYS
from sleeptracker.utils.data_validation import RequestValidator

router = APIRouter(
    prefix="/api/trends",
    tags=["Trends"],
)


@router.get("/sleep-bars", response_model=List[SleepBar])
async def sleep_bars(
    from_: str = Query(..., alias="from"),
    to: str = Query(...),
    service: TrendsService = Depends(get_trends_service)
):
    """Per-day bed/wake bars for charting over at most 62 days"""
    from_date, to_date = RequestValidator.parse_and_validate_date_range(from_, to)
    return await service.sleep_bars(from_date, to_date)


@router.get("/summary", response_model=SummaryResponse)
async def summary(
    from_: str = Query(..., alias="from"),
    to: str = Query(...),
    bucket: Optional[str] = None,
    service: TrendsService = Depends(get_trends_service)
):
    """Duration, quality and latency aggregated per day or ISO week"""
    from_date, to_date = RequestValidator.parse_and_validate_date_range(from_, to)
    return await service.summary(from_date, to_date, bucket)


@router.get("/personalization", response_model=PersonalizationResponse, response_model_by_alias=True)
async def personalization(
    window_days: int = DEFAULT_WINDOW_DAYS,
    to: Optional[str] = None,
    service: TrendsService = Depends(get_trends_service)
):
    """Personal baselines and the recommendations they justify"""
    as_of = RequestValidator.parse_date_field(to, 'to') if to else None
    return await service.personalization(window_days, as_of)
