from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from app.config import settings
from app.core.database import check_database_health

logger = logging.getLogger(__name__)
router = APIRouter()


def _about() -> dict[str, str]:
    return {"version": settings.app_version, "environment": settings.environment}


@router.get("")
async def health_check():
    """Liveness probe; never touches upstream services."""
    return {"status": "healthy", **_about()}


@router.get("/ready")
def readiness_check():
    """Readiness probe: database reachable and Sheets credentials present."""
    if not check_database_health():
        logger.warning("portal.readiness.database_unavailable")
        raise HTTPException(status_code=503, detail="Database is not available")

    return {
        "status": "ready",
        **_about(),
        "database": "connected" if settings.database_url else "not configured",
        "sheets": "configured" if settings.google_credentials_base64 else "not configured",
    }
