from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends

from app.api.dependencies import require_admin
from app.services.access.sessions import SessionContext
from app.services.premises.service import PremisesVisitService, get_premises_visit_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/cache/status")
def cache_status(
    _session: SessionContext = Depends(require_admin),
    service: PremisesVisitService = Depends(get_premises_visit_service),
):
    """Live entries of the dashboard response cache."""
    return {"message": "Cache status retrieved", **service.cache.status()}


@router.post("/cache/clear")
def clear_cache(
    session: SessionContext = Depends(require_admin),
    service: PremisesVisitService = Depends(get_premises_visit_service),
):
    removed = service.cache.clear()
    logger.info("premises.cache.cleared_by_admin", extra={"removed": removed})
    return {
        "message": "All cache cleared successfully",
        "removed": removed,
        "timestamp": datetime.now(UTC).isoformat(),
    }
