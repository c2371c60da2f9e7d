"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from projectcrm.api import router as api_router
from projectcrm.config import get_settings
from projectcrm.db.session import close_db, init_db
from projectcrm.exceptions import CRMError, StoreError
from projectcrm.logging_config import configure_logging
from projectcrm.middleware import RequestLoggingMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown events."""
    settings = get_settings()
    logger.info("app_starting", version=settings.app_version, environment=settings.environment)
    await init_db()
    logger.info("database_connected")

    yield

    logger.info("app_stopping")
    await close_db()
    logger.info("database_closed")


def error_response(error: CRMError) -> ORJSONResponse:
    return ORJSONResponse(
        status_code=error.status_code,
        content={"error": error.message, "code": error.code},
    )


async def crm_error_handler(request: Request, exc: CRMError) -> ORJSONResponse:
    """Render domain errors as ``{"error": ..., "code": ...}``."""
    if exc.status_code >= 500:
        logger.error("request_error", code=exc.code, error=exc.message)
    else:
        logger.info("request_rejected", code=exc.code, error=exc.message)
    return error_response(exc)


async def store_error_handler(request: Request, exc: SQLAlchemyError) -> ORJSONResponse:
    """Surface database failures as store errors with the driver's message."""
    logger.error("store_error", error=str(exc))
    return error_response(StoreError(str(exc)))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CRMError, crm_error_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Personal CRM for AI projects, clients, tasks and documents",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    # Last added runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    install_error_handlers(app)

    app.include_router(api_router, prefix=settings.api_prefix)
    app.mount(
        settings.storage_public_url,
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="uploads",
    )

    return app


configure_logging()
app = create_app()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint for load balancers."""
    return {"status": "healthy", "version": get_settings().app_version}
