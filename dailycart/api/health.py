"""Health check endpoints.

Provides endpoints for monitoring service health and readiness.
"""

from fastapi import APIRouter
from pydantic import BaseModel

from dailycart.application.container import get_container
from dailycart.infrastructure.config import settings

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    service: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness response schema."""

    status: str
    auto_close_scheduler: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check service health.

    Returns:
        Health status with service name and version.
    """
    return HealthResponse(
        status="healthy",
        service="dailycart-api",
        version=settings.api_version,
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check() -> ReadinessResponse:
    """Check if service is ready to accept requests."""
    scheduler = get_container().scheduler
    if not settings.auto_close_enabled:
        scheduler_state = "disabled"
    else:
        scheduler_state = "running" if scheduler.running else "stopped"
    return ReadinessResponse(status="ready", auto_close_scheduler=scheduler_state)
