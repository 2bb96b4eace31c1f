# alea/app.py
import asyncio
import logging
import traceback
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, configure_logging, load_settings
from .courses import CourseNotFound, NotCourseOwner
from .credits import NoCreditsLeft
from .inference import InferenceService
from .jobs import JobInFlight, sweep_stale_jobs
from .progress import ProgressLocked
from .routes import activity_router, auth_router, courses_router, jobs_router, notifications_router
from .services import Services, build_services
from .store import DocumentNotFound

logger = logging.getLogger(__name__)

# Domain errors and the status code each one answers with
ERROR_STATUS = {
    CourseNotFound: 404,
    DocumentNotFound: 404,
    NotCourseOwner: 403,
    JobInFlight: 409,
    ProgressLocked: 423,
    NoCreditsLeft: 429,
}


async def _sweep_forever(services: Services):
    interval = services.settings.sweep_interval_seconds
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(sweep_stale_jobs, services.store, services.settings.stale_job_seconds)
        except Exception:
            logger.exception("Stale job sweep failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    services: Services = app.state.services
    sweeper = None
    if services.settings.sweep_interval_seconds > 0:
        sweeper = asyncio.create_task(_sweep_forever(services))
    yield
    if sweeper is not None:
        sweeper.cancel()
    close = getattr(services.inference, "close", None)
    if close is not None:
        await close()
    services.engine.dispose()


def _error_response(exc: Exception, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": str(exc),
            "type": type(exc).__name__,
            "status_code": status_code,
        },
    )


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.info(f"HTTP exception on {request.url.path}: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": str(exc.detail),
                "type": "HTTPException",
                "status_code": exc.status_code
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.info(f"Validation error on {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=422,
            content={
                "error": "Validation error",
                "type": "RequestValidationError",
                "details": jsonable_errors(exc),
            }
        )

    for error_type, status_code in ERROR_STATUS.items():
        app.add_exception_handler(error_type, _domain_handler(status_code))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}\n{traceback.format_exc()}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "type": type(exc).__name__,
            }
        )


def _domain_handler(status_code: int):
    async def handler(request: Request, exc: Exception):
        logger.info(f"{type(exc).__name__} on {request.url.path}: {exc}")
        return _error_response(exc, status_code)
    return handler


def jsonable_errors(exc: RequestValidationError):
    # ctx may carry the raw exception object, which is not JSON serialisable
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error)
    return errors


def create_app(settings: Optional[Settings] = None, inference: Optional[InferenceService] = None,
               services: Optional[Services] = None) -> FastAPI:
    settings = settings or (services.settings if services else load_settings())
    configure_logging(settings.log_level)
    services = services or build_services(settings, inference=inference)

    app = FastAPI(
        title="Alea",
        description="AI generated courses, lessons and flashcards",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.services = services

    register_exception_handlers(app)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(auth_router, prefix="/auth")
    app.include_router(jobs_router)
    app.include_router(courses_router)
    app.include_router(notifications_router)
    app.include_router(activity_router)

    logger.info("Alea API ready")
    return app
