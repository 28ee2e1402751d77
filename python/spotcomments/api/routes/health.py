"""Health check endpoints."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends

from spotcomments.api.deps import get_app_settings
from spotcomments.config import Settings

router = APIRouter()


@router.get("/health")
async def health_check(settings: Annotated[Settings, Depends(get_app_settings)]) -> dict:
    """Liveness check endpoint.

    Returns 200 if the process is running.
    Does not check database or other dependencies.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": settings.app_version,
    }
