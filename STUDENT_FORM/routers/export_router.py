from typing import Optional
from fastapi import APIRouter, Depends, Query, Response
from core.dependencies import get_export_service, get_session_id, get_session_service
from services.export_service import ExportService
from services.session_service import SessionService
from utils.cors import preflight_response

router = APIRouter(prefix="/api", tags=["Export"])

@router.get("/export")
async def export_responses(
    format: str = Query("csv", description="csv, json or excel"),
    session_id: Optional[str] = Depends(get_session_id),
    sessions: SessionService = Depends(get_session_service),
    service: ExportService = Depends(get_export_service),
):
    await sessions.require(session_id)
    body, media_type, filename = await service.export(format)
    return Response(
        content=body,
        media_type=media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-store",
        },
    )

@router.options("/export")
def export_preflight():
    return preflight_response("GET, OPTIONS", "Content-Type, Cookie", allow_credentials=True)
