from typing import Optional
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from core.dependencies import get_query_service, get_session_id
from services.query_service import ResponseQueryService
from utils.cors import preflight_response

router = APIRouter(prefix="/api", tags=["Responses"])

@router.get("/responses")
async def list_responses(
    request: Request,
    session_id: Optional[str] = Depends(get_session_id),
    service: ResponseQueryService = Depends(get_query_service),
):
    params = request.query_params
    payload, cache_hit = await service.query(params, session_id=session_id, public="public" in params)
    return JSONResponse(
        content=payload,
        headers={
            "X-Cache": "HIT" if cache_hit else "MISS",
            "Cache-Control": "public, max-age=5",
            "Access-Control-Allow-Origin": "*",
        },
    )

@router.options("/responses")
def responses_preflight():
    return preflight_response("GET, OPTIONS", "Content-Type, Cookie", allow_credentials=True)
