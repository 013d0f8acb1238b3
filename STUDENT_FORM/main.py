import logging
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from core.config import (
    DEBUG_MODE, KV_CLEANUP_INTERVAL_HOURS,
    LOGIN_MAX_ATTEMPTS, LOGIN_WINDOW_SECONDS,
    SUBMIT_MAX_REQUESTS, SUBMIT_WINDOW_SECONDS,
)
from core.exceptions import FormServiceError, RateLimitedError
from core.database import Base, engine, SessionLocal
from core.security import load_admin_password_hash
from repositories.kv_store import KVStore, SQLKVStore, get_kv_store
import models.kv_entry
from routers.submit_router import router as submit_router
from routers.responses_router import router as responses_router
from routers.export_router import router as export_router
from routers.login_router import router as login_router
from services.auto_cleanup import AutoCleanup
from services.export_service import ExportService
from services.query_service import ResponseQueryService
from services.rate_limiter import RateLimiter
from services.session_service import SessionService
from services.submission_service import SubmissionService

logging.basicConfig( level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def create_app(
    kv_store: Optional[KVStore] = None,
    clock: Callable[[], float] = time.time,
    admin_password: Optional[str] = None,
    debug: bool = DEBUG_MODE,
) -> FastAPI:
    kv = kv_store if kv_store is not None else get_kv_store()
    auto_cleanup = None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        nonlocal auto_cleanup
        logger.info("Starting student form backend...")
        if isinstance(kv, SQLKVStore):
            Base.metadata.create_all(bind=engine, checkfirst=True)
            logger.info("Database tables created")

            auto_cleanup = AutoCleanup(SessionLocal, interval_hours=KV_CLEANUP_INTERVAL_HOURS)
            auto_cleanup.start()

        yield

        if auto_cleanup:
            auto_cleanup.stop()
        logger.info("Student form backend stopped")

    app = FastAPI(title="Student Data Collection Form", lifespan=lifespan)

    submit_limiter = RateLimiter(SUBMIT_MAX_REQUESTS, SUBMIT_WINDOW_SECONDS, clock=clock, name="submit")
    login_limiter = RateLimiter(LOGIN_MAX_ATTEMPTS, LOGIN_WINDOW_SECONDS, clock=clock, name="login")

    session_service = SessionService(kv, load_admin_password_hash(admin_password), login_limiter, clock=clock)
    app.state.kv_store = kv
    app.state.session_service = session_service
    app.state.submission_service = SubmissionService(kv, submit_limiter, clock=clock)
    app.state.query_service = ResponseQueryService(kv, session_service, clock=clock)
    app.state.export_service = ExportService(kv, clock=clock)

    @app.exception_handler(FormServiceError)
    async def form_service_error_handler(request: Request, exc: FormServiceError):
        headers = {"Cache-Control": "no-store"}
        if isinstance(exc, RateLimitedError):
            headers["Retry-After"] = str(exc.retry_after)
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.debug})")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(include_debug=debug), headers=headers)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        content = {"success": False, "error": "Internal server error"}
        if debug:
            content["debug"] = str(exc)
        return JSONResponse(status_code=500, content=content, headers={"Cache-Control": "no-store"})

    app.include_router(submit_router)
    app.include_router(responses_router)
    app.include_router(export_router)
    app.include_router(login_router)

    @app.get("/")
    def root():
        return {
            "status":"Student form API is running"
        }

    return app


app = create_app()
