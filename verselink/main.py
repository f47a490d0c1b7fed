"""FastAPI application entry point."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from verselink.api.v1.endpoints import health
from verselink.api.v1.router import api_router
from verselink.core.config import settings
from verselink.core.database import close_database, init_database
from verselink.core.exceptions import (
    AppError,
    CollectionNotFoundError,
    InvalidReferenceError,
    NoteNotFoundError,
    ScriptureFetchError,
)
from verselink.utils.logging import get_logger
from verselink.utils.responses import create_error_detail

LOGGER = get_logger(__name__, level=settings.log_level)

# Most specific first
ERROR_STATUS = (
    (NoteNotFoundError, status.HTTP_404_NOT_FOUND, "Not Found"),
    (CollectionNotFoundError, status.HTTP_404_NOT_FOUND, "Not Found"),
    (InvalidReferenceError, status.HTTP_400_BAD_REQUEST, "Invalid Reference"),
    (ScriptureFetchError, status.HTTP_502_BAD_GATEWAY, "Scripture Provider Error"),
)


class RootResponse(BaseModel):
    """Root endpoint response payload."""

    message: str = Field(..., description="Service status message")
    version: str = Field(..., description="Running application version")
    docs: str = Field(..., description="Path to the interactive API docs")
    health: str = Field(..., description="Path to the health check endpoint")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    LOGGER.info(
        "Starting application",
        extra={
            "app_name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
        },
    )
    if not settings.auth.jwt_secret:
        LOGGER.error("JWT_SECRET is missing; authenticated endpoints will reject every request")

    try:
        await asyncio.wait_for(init_database(create_tables=True), timeout=settings.db_init_timeout)
        LOGGER.info("Database initialized successfully")
    except asyncio.TimeoutError:
        LOGGER.error(f"Database initialization timed out after {settings.db_init_timeout}s")
    except Exception as e:
        LOGGER.error(f"Database initialization failed: {e}", exc_info=True)

    yield

    # Shutdown
    LOGGER.info("Shutting down application")
    try:
        await close_database()
    except Exception as e:
        LOGGER.error(
            "Error closing database",
            exc_info=True,
            extra={"error": str(e)}
        )


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Links scripture citations in notes to shared per-user reference notes",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


@app.middleware("http")
async def add_correlation_id(request: Request, call_next):
    correlation_id = request.headers.get("X-Correlation-ID", str(uuid4()))
    request.state.correlation_id = correlation_id
    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    for error_type, status_code, title in ERROR_STATUS:
        if isinstance(exc, error_type):
            break
    else:
        status_code, title = status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error"
        LOGGER.error(f"Unhandled application error: {exc}", exc_info=exc)

    detail = create_error_detail(title=title, status=status_code, detail=str(exc), request=request)
    return JSONResponse(status_code=status_code, content=detail.model_dump(mode="json"))


# CORS middleware - added last to ensure it wraps all other middleware/responses
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Correlation-ID"],
)

# Include routers
app.include_router(api_router, prefix=settings.api_v1_prefix)
app.include_router(health.router, prefix="/health", tags=["Health"])


@app.get(
    "/",
    response_model=RootResponse,
    tags=["Root"],
    summary="Root endpoint",
    description="Get basic information about the API",
    operation_id="get_public_root_metadata",
)
async def root() -> RootResponse:
    """Root endpoint.

    Returns:
        RootResponse: Basic API information
    """
    return RootResponse(
        message="Server is running",
        version=settings.app_version,
        docs="/docs",
        health="/health",
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "verselink.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
