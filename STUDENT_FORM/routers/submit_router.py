from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from core.dependencies import get_client_ip, get_submission_service, get_user_agent
from schemas.submission_schema import SubmitResponse, SubmitResponseData
from services.submission_service import SubmissionService
from utils.cors import preflight_response

router = APIRouter(prefix="/api", tags=["Form Submission"])

@router.post("/submit", response_model=SubmitResponse, status_code=201)
async def submit_form(
    request: Request,
    client_ip: str = Depends(get_client_ip),
    user_agent: str = Depends(get_user_agent),
    service: SubmissionService = Depends(get_submission_service),
):
    raw_body = await request.body()
    result = await service.submit(raw_body, client_ip=client_ip, user_agent=user_agent)
    body = SubmitResponse(data=SubmitResponseData(**result))
    return JSONResponse(
        status_code=201,
        content=body.model_dump(),
        headers={
            "Cache-Control": "no-store, no-cache, must-revalidate",
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": "POST, OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type",
        },
    )

@router.options("/submit")
def submit_preflight():
    return preflight_response("POST, OPTIONS", "Content-Type")
