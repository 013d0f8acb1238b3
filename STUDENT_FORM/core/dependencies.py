from typing import Optional
from fastapi import Cookie, Request
from core.config import SESSION_COOKIE_NAME
from services.export_service import ExportService
from services.query_service import ResponseQueryService
from services.session_service import SessionService
from services.submission_service import SubmissionService


def get_client_ip(request: Request) -> str:
    ip = request.headers.get("CF-Connecting-IP")
    if ip:
        return ip.strip()
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_user_agent(request: Request) -> str:
    return request.headers.get("User-Agent") or "unknown"


def get_session_id(admin_session: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME)) -> Optional[str]:
    return admin_session or None


def get_submission_service(request: Request) -> SubmissionService:
    return request.app.state.submission_service


def get_query_service(request: Request) -> ResponseQueryService:
    return request.app.state.query_service


def get_session_service(request: Request) -> SessionService:
    return request.app.state.session_service


def get_export_service(request: Request) -> ExportService:
    return request.app.state.export_service
