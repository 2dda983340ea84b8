"""
Health check endpoints.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request
from pydantic import BaseModel

from ...core.config import get_settings
from ..deps import WorkflowEngineDep
from ..schemas.common import ApiResponse
from ..utils.responses import ok

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    timestamp: datetime
    version: str
    service: str


@router.get("/", response_model=ApiResponse[HealthResponse])
async def health_check(request: Request):
    """
    Health check endpoint.

    Returns the current status of the service.
    """
    settings = get_settings()
    return ok(request, data=HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=settings.app_version,
        service=settings.app_name,
    ), message="OK")


@router.get("/live", response_model=ApiResponse[dict])
async def liveness_check(request: Request):
    """Process is up."""
    return ok(request, data={"status": "alive"}, message="OK")


@router.get("/ready", response_model=ApiResponse[dict])
async def readiness_check(request: Request, engine: WorkflowEngineDep):
    """
    Readiness check endpoint.

    Returns whether the visit store answers queries.
    """
    settings = get_settings()
    checks = {"store": settings.workflow.store}
    try:
        checks["active_visits"] = len(await engine.list_active_visits())
        checks["visit_store"] = "ok"
        ready = True
    except Exception as e:
        checks["visit_store"] = f"error: {str(e)[:50]}"
        ready = False

    return ok(request, data={"ready": ready, "checks": checks}, message="ready" if ready else "not ready")
