# sleeptracker/api/routes/settings_routes.py
from fastapi import APIRouter, Depends, Response

from sleeptracker.api.dependencies import get_sleep_service
from sleeptracker.core.models.data_models import TimezoneSetting
from sleeptracker.core.services.sleep_service import SleepService

router = APIRouter(
    prefix="/api/settings",
    tags=["Settings"],
)


@router.get("/timezone", response_model=TimezoneSetting)
async def get_timezone(service: SleepService = Depends(get_sleep_service)):
    return TimezoneSetting(timezone=await service.get_timezone())


@router.put("/timezone", status_code=204)
async def set_timezone(setting: TimezoneSetting, service: SleepService = Depends(get_sleep_service)):
    """Set the IANA timezone used for duration computation"""
    await service.set_timezone(setting.timezone)
    return Response(status_code=204)
