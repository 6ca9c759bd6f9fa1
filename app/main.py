from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.api import router
from logging_config import configure_logging
from services.errors import (
    ConflictError,
    DuplicateReadingError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from services.meter_readings import build_default_service


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    build_default_service()
    try:
        yield
    finally:
        build_default_service.cache_clear()


async def _duplicate_reading_handler(_request: Request, exc: DuplicateReadingError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={
            "detail": str(exc),
            "reason": "duplicate",
            "latest_value": exc.latest.value,
        },
    )


async def _validation_handler(_request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc)},
    )


async def _not_found_handler(_request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


async def _conflict_handler(_request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": str(exc), "reason": "conflict"},
    )


async def _store_error_handler(_request: Request, exc: StoreError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Meter Readings",
        description="Utility meter readings and monthly consumption for rental spaces.",
        version="0.1.0",
        lifespan=lifespan,
    )
    # Starlette picks the handler registered for the most specific class in the MRO.
    app.add_exception_handler(DuplicateReadingError, _duplicate_reading_handler)
    app.add_exception_handler(ValidationError, _validation_handler)
    app.add_exception_handler(NotFoundError, _not_found_handler)
    app.add_exception_handler(ConflictError, _conflict_handler)
    app.add_exception_handler(StoreError, _store_error_handler)
    app.include_router(router)
    return app

app = create_app()
