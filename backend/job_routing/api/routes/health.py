"""
Health check endpoints.
"""
from fastapi import APIRouter

from job_routing.core.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict:
    """Basic health check."""
    return {"status": "healthy", "version": settings.APP_VERSION}
