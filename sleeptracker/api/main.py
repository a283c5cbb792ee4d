# sleeptracker/api/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sleeptracker import __version__
from sleeptracker.api.routes import activity_routes, friction_routes, settings_routes, sleep_routes, trends_routes
from sleeptracker.config import AppSettings, load_settings
from sleeptracker.core.analysis.time_resolver import TimeResolver
from sleeptracker.core.errors import InvalidInput, NotFound, SleepTrackerError, UpstreamReadFailure
from sleeptracker.core.repositories.data_repository import DataRepository
from sleeptracker.core.services.sleep_service import SleepService
from sleeptracker.core.services.trends_service import TrendsService

logger = logging.getLogger(__name__)


def configure_logging(level='INFO'):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get('loc', ()) if part != 'body')
    message = str(first.get('msg', 'invalid value')).removeprefix('Value error, ')
    return f"{location}: {message}" if location else message


def register_exception_handlers(app: FastAPI):
    """Map the error hierarchy onto HTTP responses"""

    @app.exception_handler(InvalidInput)
    async def invalid_input_handler(request: Request, exc: InvalidInput):
        return JSONResponse(status_code=400, content={"code": "bad_request", "message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"code": "bad_request", "message": _validation_message(exc)})

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        return JSONResponse(status_code=404, content={"error": "not found"})

    @app.exception_handler(UpstreamReadFailure)
    async def upstream_failure_handler(request: Request, exc: UpstreamReadFailure):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=500, content={"error": "storage error"})

    @app.exception_handler(SleepTrackerError)
    async def sleeptracker_error_handler(request: Request, exc: SleepTrackerError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=500, content={"error": exc.message or "internal error"})


def create_app(settings: AppSettings = None) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Resolved settings; loaded from config/config.yaml and the
            environment when omitted

    Returns:
        Configured FastAPI application
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.title,
        description="Sleep records, trends and personalized recommendations",
        version=__version__
    )

    # Enable CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    repository = DataRepository(settings.data_dir)
    app.state.settings = settings
    app.state.sleep_service = SleepService(repository, TimeResolver(settings.default_timezone), settings.max_range_days)
    app.state.trends_service = TrendsService(repository, max_range_days=settings.max_range_days)

    register_exception_handlers(app)

    # Include routers
    app.include_router(sleep_routes.router)
    app.include_router(activity_routes.router)
    app.include_router(settings_routes.router)
    app.include_router(trends_routes.router)
    app.include_router(friction_routes.router)

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    logger.info(f"Sleep Tracker API {__version__} using data dir {settings.data_dir}")
    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
