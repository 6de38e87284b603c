"""
Health check endpoint.

Used by:
  - Render / Docker health checks
  - The mobile app's "server reachable?" probe

Reports whether each collaborator has credentials so a misconfigured
deploy is visible without sending a real analysis request.
"""

from fastapi import APIRouter
from pydantic import BaseModel

from app.core.config import settings

router = APIRouter()


class HealthResponse(BaseModel):
    status: str  # Always "ok" if the API process is alive
    version: str
    environment: str
    scoring_configured: bool
    storage_configured: bool


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check() -> HealthResponse:
    """
    Liveness of the API plus credential status for Sightengine and Cloudinary.

    Missing credentials still return 200; the analysis routes answer 500
    with a configuration error until they are set.
    """
    return HealthResponse(
        status="ok",
        version="0.1.0",
        environment=settings.environment,
        scoring_configured=settings.scoring_configured,
        storage_configured=settings.storage_configured,
    )
