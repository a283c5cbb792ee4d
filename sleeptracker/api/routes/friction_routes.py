# sleeptracker/api/routes/friction_routes.py
from fastapi import APIRouter, Depends
from typing import Optional

from sleeptracker.api.dependencies import get_trends_service
from sleeptracker.core.models.data_models import CreatedResponse, FrictionBacklogResponse, FrictionTelemetryInput
from sleeptracker.core.services.trends_service import TrendsService
from sleeptracker.utils.constants import DEFAULT_WINDOW_DAYS
from sleeptracker.utils.data_validation import RequestValidator

router = APIRouter(
    prefix="/api/personalization",
    tags=["Friction"],
)


@router.post("/friction-telemetry", response_model=CreatedResponse, status_code=201)
async def record_friction(event: FrictionTelemetryInput, service: TrendsService = Depends(get_trends_service)):
    """Append one form-submit friction event"""
    return CreatedResponse(id=await service.create_friction_telemetry(event))


@router.get("/friction-backlog", response_model=FrictionBacklogResponse, response_model_by_alias=True)
async def friction_backlog(
    window_days: int = DEFAULT_WINDOW_DAYS,
    to: Optional[str] = None,
    service: TrendsService = Depends(get_trends_service)
):
    """Ranked friction remediation proposals for the current window"""
    as_of = RequestValidator.parse_date_field(to, 'to') if to else None
    return await service.friction_backlog(window_days, as_of)
