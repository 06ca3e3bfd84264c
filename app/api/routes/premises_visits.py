"""Admin endpoint for the premises-visit (lawatan premis) dashboard."""

from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from app.api.dependencies import require_admin
from app.models.premises_visit import VisitFilters
from app.services.access.sessions import SessionContext
from app.services.premises.errors import MappingSourceUnavailableError
from app.services.premises.service import PremisesVisitService, get_premises_visit_service

router = APIRouter()
logger = logging.getLogger(__name__)

NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@router.get("/admin/lawatan-premis")
def get_premises_visits(
    program: str = Query("all", description="Program name or 'all'."),
    batch: str = Query("all", description="Exact batch name or 'all'."),
    status: Literal["all", "completed", "pending", "overdue"] = Query("all"),
    refresh: bool = Query(False, description="Bypass and rebuild the cached response."),
    _session: SessionContext = Depends(require_admin),
    service: PremisesVisitService = Depends(get_premises_visit_service),
) -> JSONResponse:
    """Premises-visit status for every mapped entrepreneur, with summary counts."""
    filters = VisitFilters(program=program, batch=batch, status=status)
    try:
        response = service.get_dashboard(filters, refresh=refresh)
    except MappingSourceUnavailableError as exc:
        logger.error("premises.api.mapping_missing", extra={"code": exc.code})
        return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})
    except Exception as exc:
        logger.exception(
            "premises.api.error",
            extra={"program": program, "batch": batch, "status": status},
        )
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": f"Internal Server Error: {exc}"},
        )

    if response.cached:
        return JSONResponse(content=response.to_payload())
    return JSONResponse(content=response.to_payload(), headers=NO_STORE_HEADERS)
