"""FastAPI application setup."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coursegate.admission import AdmissionTimeoutError
from coursegate.api.dependencies import close_engine, init_engine
from coursegate.api.models import APIResponse
from coursegate.api.routes import courses, eligibility, enrollments
from coursegate.catalog import CycleDetectedError
from coursegate.config import EngineConfig
from coursegate.store import (
    CourseNotFoundError,
    StoreError,
    StoreUnavailableError,
    StudentNotFoundError,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    config: EngineConfig = app.state.config
    init_engine(
        db_path=config.database.path,
        lock_timeout=config.admission.lock_timeout,
        busy_timeout_ms=config.database.busy_timeout_ms,
    )
    logger.info("Admission engine started on %s", config.database.path)
    yield
    close_engine()


def add_exception_handlers(app: FastAPI) -> None:
    """Map engine exceptions onto the response envelope."""

    @app.exception_handler(CourseNotFoundError)
    async def course_not_found_handler(
        _request: Request, _exc: CourseNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=APIResponse[None](data=None, error="Course not found").model_dump(),
        )

    @app.exception_handler(StudentNotFoundError)
    async def student_not_found_handler(
        _request: Request, _exc: StudentNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=APIResponse[None](data=None, error="Student not found").model_dump(),
        )

    @app.exception_handler(CycleDetectedError)
    async def cycle_detected_handler(_request: Request, exc: CycleDetectedError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=APIResponse[None](
                data=None,
                error="Prerequisite edit would create a cycle",
                detail={"course_id": exc.course_id, "cycle_path": exc.cycle_path},
            ).model_dump(),
        )

    @app.exception_handler(AdmissionTimeoutError)
    async def admission_timeout_handler(
        _request: Request, _exc: AdmissionTimeoutError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=APIResponse[None](
                data=None, error="Admission busy, retry the request"
            ).model_dump(),
        )

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(
        _request: Request, _exc: StoreUnavailableError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=APIResponse[None](
                data=None, error="Storage unavailable, retry the request"
            ).model_dump(),
        )

    @app.exception_handler(StoreError)
    async def store_error_handler(_request: Request, _exc: StoreError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=APIResponse[None](data=None, error="Internal server error").model_dump(),
        )


def create_app(config: EngineConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="coursegate API",
        description="Course eligibility and enrollment admission",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store config for lifespan manager
    app.state.config = config if config is not None else EngineConfig().apply_env()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    add_exception_handlers(app)

    app.include_router(courses.router, prefix="/api/v1")
    app.include_router(eligibility.router, prefix="/api/v1")
    app.include_router(enrollments.router, prefix="/api/v1")

    return app
