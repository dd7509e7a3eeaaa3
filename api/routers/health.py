"""Health check endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Response, status

from api.dependencies import get_provider
from core.models import HealthResponse, ReadinessResponse
from llm.base import BaseImageProvider

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    description="Simple health check that returns 200 if the service is running.",
)
async def health_check() -> HealthResponse:
    """
    Liveness probe endpoint.

    Does not check the generative service.
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        version="0.1.0",
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness probe",
    description="Checks that the generative image service is reachable.",
)
async def readiness_check(
    http_response: Response,
    provider: BaseImageProvider = Depends(get_provider),
) -> ReadinessResponse:
    """
    Readiness probe endpoint.

    Returns 200 if the provider health check passes, 503 otherwise.
    """
    services_status = {provider.provider_name: await provider.health_check()}

    all_ready = all(services_status.values())

    readiness_response = ReadinessResponse(
        status="ready" if all_ready else "not_ready",
        timestamp=datetime.utcnow(),
        services=services_status,
    )

    if not all_ready:
        http_response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return readiness_response
