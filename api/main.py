"""Main FastAPI application instance."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from api.config import get_settings
from api.routers import health, storyboard
from core.exceptions import (
    GenerationException,
    ServiceUnavailableException,
    StoryboardException,
    ValidationException,
)
from core.models import ErrorDetail, ErrorResponse

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

_EXCEPTION_STATUS: dict[type[StoryboardException], int] = {
    ValidationException: status.HTTP_400_BAD_REQUEST,
    GenerationException: status.HTTP_502_BAD_GATEWAY,
    ServiceUnavailableException: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager for startup and shutdown events."""
    logger.info(
        f"Starting Storyboarder API v0.1.0 in {settings.env} environment "
        f"(provider: {settings.llm_provider})"
    )
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; generation endpoints will return 503")

    yield

    logger.info("Application shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Storyboarder API",
    description="Turn an annotated screenplay into an illustrated storyboard",
    version="0.1.0",
    docs_url="/docs" if settings.debug else None,  # Hide in production
    redoc_url="/redoc" if settings.debug else None,  # Hide in production
    openapi_url="/openapi.json" if settings.debug else None,  # Hide in production
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "X-Request-ID"],
    max_age=600,
)


# Exception handlers
@app.exception_handler(StoryboardException)
async def storyboard_exception_handler(request: Request, exc: StoryboardException) -> JSONResponse:
    """Handle custom Storyboarder exceptions."""
    status_code = _EXCEPTION_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=exc.__class__.__name__,
            message=exc.message,
            details=[ErrorDetail(field=k, message=str(v)) for k, v in exc.details.items()],
            request_id=request.headers.get("X-Request-ID"),
        ).model_dump(mode="json"),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors."""
    details = [
        ErrorDetail(
            field=".".join(str(loc) for loc in err["loc"]),
            message=err["msg"],
            error_code=err["type"],
        )
        for err in exc.errors()
    ]

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            message="Request validation failed",
            details=details,
            request_id=request.headers.get("X-Request-ID"),
        ).model_dump(mode="json"),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(f"Unexpected error: {exc}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="InternalServerError",
            message="An unexpected error occurred",
            request_id=request.headers.get("X-Request-ID"),
        ).model_dump(mode="json"),
    )


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(storyboard.router, prefix="/v1/storyboard", tags=["Storyboard"])

# Mount Prometheus metrics endpoint
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Root endpoint with API pointers."""
    return {
        "message": "Storyboarder API v0.1.0",
        "docs": "/docs",
        "sample": "/v1/storyboard/sample",
    }
