"""
Health check endpoint.

Used by container HEALTHCHECK instructions, load balancers and the upload
UI to check API connectivity.
"""

from fastapi import APIRouter
from pydantic import BaseModel

router = APIRouter()


class HealthResponse(BaseModel):
    status: str  # Always "ok" if the API process is alive
    version: str
    environment: str
    model: str   # label reported in every DetectionResult


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check() -> HealthResponse:
    from vidguard.core.config import settings

    return HealthResponse(
        status="ok",
        version="0.1.0",
        environment=settings.environment,
        model=settings.model_label,
    )
