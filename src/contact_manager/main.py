"""
FastAPI application entry point.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from contact_manager.config import get_settings
from contact_manager.contacts.router import router as contacts_router
from contact_manager.realtime.manager import get_connection_manager
from contact_manager.realtime.router import router as realtime_router
from contact_manager.shared.correlation import CORRELATION_ID_HEADER, CorrelationIdMiddleware
from contact_manager.shared.database import get_database_manager
from contact_manager.shared.exceptions import CsvReadError, NotFoundError, ValidationError
from contact_manager.shared.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    setup_logging()
    settings = get_settings()
    db_manager = get_database_manager()

    logger.info("Application starting", extra={"env": settings.app_env})

    if settings.database_auto_create:
        await db_manager.create_all()
        logger.info("Database tables ensured")

    yield

    logger.info("Shutting down application")

    await get_connection_manager().close_all()
    await db_manager.close()
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Contact Manager API",
        description="Contact storage with CSV import and realtime notifications",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Map domain exceptions to HTTP responses
    @app.exception_handler(NotFoundError)
    async def _not_found(_: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ValidationError)
    async def _validation(_: Request, exc: ValidationError) -> JSONResponse:
        content: dict = {"detail": str(exc)}
        if exc.details:
            content["errors"] = exc.details.get("errors", [])
        return JSONResponse(status_code=400, content=content)

    @app.exception_handler(CsvReadError)
    async def _csv_read(_: Request, exc: CsvReadError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    # Request validation (FastAPI/Pydantic) -> consistent 422 payload
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            errors.append(
                {
                    "field": field,
                    "message": error["msg"],
                    "type": error["type"],
                }
            )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "errors": errors,
                }
            },
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[CORRELATION_ID_HEADER],
    )
    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(contacts_router)
    app.include_router(realtime_router)

    @app.get("/health")
    async def health_check() -> dict[str, str | int]:
        return {
            "status": "healthy",
            "websocket_connections": get_connection_manager().connection_count,
        }

    return app


app = create_app()
