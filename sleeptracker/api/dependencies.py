# sleeptracker/api/dependencies.py
from fastapi import Request

from sleeptracker.core.services.sleep_service import SleepService
from sleeptracker.core.services.trends_service import TrendsService


# Dependencies
def get_sleep_service(request: Request) -> SleepService:
    return request.app.state.sleep_service


def get_trends_service(request: Request) -> TrendsService:
    return request.app.state.trends_service
