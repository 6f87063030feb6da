"""
Health check endpoints.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from ...application.use_cases import SessionNegotiationUseCase
from ...core.config import get_settings
from ..deps import get_session
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
        timestamp=datetime.utcnow(),
        version=settings.app_version,
        service=settings.app_name,
    ), message="OK")


@router.get("/ready", response_model=ApiResponse[dict])
async def readiness_check(request: Request, session: SessionNegotiationUseCase = Depends(get_session)):
    """Ready once a scoped ERP session is in place."""
    ready = session.is_authenticated
    return ok(
        request,
        data={"ready": ready, "step": session.state.step},
        message="ready" if ready else "waiting for login",
    )
