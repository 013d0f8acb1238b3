from typing import Optional
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from core.config import SESSION_COOKIE_NAME, SESSION_DURATION_SECONDS
from core.dependencies import get_client_ip, get_session_id, get_session_service, get_user_agent
from schemas.session_schema import LoginResponse, LogoutResponse, SessionStatusResponse, SessionSummary
from services.session_service import SessionService
from utils.cors import preflight_response
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Admin Login"])

@router.post("/login", response_model=LoginResponse)
async def login(
    request: Request,
    client_ip: str = Depends(get_client_ip),
    user_agent: str = Depends(get_user_agent),
    sessions: SessionService = Depends(get_session_service),
):
    raw_body = await request.body()
    session_id = await sessions.login(raw_body, client_ip=client_ip, user_agent=user_agent)

    response = JSONResponse(
        content=LoginResponse(session_id=session_id).to_json_dict(),
        headers={"Cache-Control": "no-store, no-cache, must-revalidate"},
    )
    response.set_cookie(
        SESSION_COOKIE_NAME,
        session_id,
        max_age=SESSION_DURATION_SECONDS,
        path="/",
        httponly=True,
        samesite="strict",
        secure=request.url.scheme == "https",
    )
    return response

@router.get("/login", response_model=SessionStatusResponse)
async def session_status(
    session_id: Optional[str] = Depends(get_session_id),
    sessions: SessionService = Depends(get_session_service),
):
    try:
        session = await sessions.check(session_id, refresh=True)
    except Exception:
        # the dashboard treats any failure here as "logged out"
        logger.error("Session check failed", exc_info=True)
        return JSONResponse(
            content={"loggedIn": False, "error": "Session check failed"},
            headers={"Cache-Control": "no-store"},
        )

    status = SessionStatusResponse(
        logged_in=session is not None,
        session=SessionSummary(timestamp=session.timestamp, ip=session.ip) if session else None,
    )
    return JSONResponse(content=status.to_json_dict(), headers={"Cache-Control": "no-store"})

@router.delete("/login", response_model=LogoutResponse)
async def logout(
    session_id: Optional[str] = Depends(get_session_id),
    sessions: SessionService = Depends(get_session_service),
):
    await sessions.logout(session_id)
    response = JSONResponse(content=LogoutResponse().model_dump())
    response.delete_cookie(SESSION_COOKIE_NAME, path="/", httponly=True, samesite="strict")
    return response

@router.options("/login")
def login_preflight():
    return preflight_response("GET, POST, DELETE, OPTIONS", "Content-Type, Cookie", allow_credentials=True)
