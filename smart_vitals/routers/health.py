"""
Health check endpoints.
"""

from fastapi import APIRouter
from pydantic import BaseModel

from smart_vitals import __version__

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Service status and version."""
    return HealthResponse(status="healthy", service="smart-vitals", version=__version__)
