"""
Report API endpoints - usage analytics and data export.
"""

import time

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ..core.errors import InvalidRequestError
from ..services import ReportService
from .deps import get_report_service

router = APIRouter(prefix="/api/report", tags=["report"])


@router.get("")
async def usage_report(report_service: ReportService = Depends(get_report_service)):
    """Summary, per-model and daily usage, top models and recent sessions."""
    return await report_service.usage_report()


@router.get("/sessions")
async def sessions_report(
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    report_service: ReportService = Depends(get_report_service),
):
    return await report_service.sessions_report(limit=limit, offset=offset)


@router.get("/models")
async def models_report(report_service: ReportService = Depends(get_report_service)):
    return await report_service.models_report()


@router.get("/export")
async def export_data(
    format: str = Query("json"),
    include_messages: bool = Query(False),
    report_service: ReportService = Depends(get_report_service),
):
    """Download sessions (and optionally messages) as a JSON attachment."""
    if format != "json":
        raise InvalidRequestError("Unsupported export format. Only JSON is supported.")

    data = await report_service.export(include_messages=include_messages)
    filename = f"chat_export_{int(time.time() * 1000)}.json"
    return JSONResponse(
        content=data,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
