import json
import logging
import time
from typing import Callable, Optional
from pydantic import ValidationError
from core.config import SESSION_DURATION_SECONDS
from core.exceptions import BadRequestError, FormServiceError, InternalServiceError, RateLimitedError, UnauthorizedError
from core.security import verify_password
from repositories.kv_store import KVStore
from repositories.session_repository import SessionRepository
from schemas.session_schema import LoginRequest, SessionData
from services.rate_limiter import RateLimiter
from utils.dates import from_epoch
from utils.identifiers import generate_session_id

logger = logging.getLogger(__name__)


class SessionService:
    """
    Admin sessions: Active -> Expired -> Deleted.

    Expiry is absolute (creation time + SESSION_DURATION_SECONDS) and detected
    lazily on read, at which point the stored entry is deleted. Reads may bump
    ``lastActivity`` without moving the deadline.
    """

    def __init__(
        self,
        kv: KVStore,
        password_hash: str,
        login_limiter: RateLimiter,
        clock: Callable[[], float] = time.time,
        session_duration: int = SESSION_DURATION_SECONDS,
    ):
        self.kv = kv
        self.password_hash = password_hash
        self.login_limiter = login_limiter
        self.clock = clock
        self.session_duration = session_duration

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    async def login(self, raw_body: bytes, client_ip: str, user_agent: str = "unknown") -> str:
        if not self.login_limiter.allow(client_ip):
            raise RateLimitedError(
                "Too many login attempts. Please try again later.",
                retry_after=self.login_limiter.retry_after,
            )

        try:
            login_data = json.loads(raw_body or b"")
        except (ValueError, UnicodeDecodeError):
            raise BadRequestError("Invalid JSON data")
        if not isinstance(login_data, dict):
            raise BadRequestError("Invalid JSON data")
        try:
            password = LoginRequest.model_validate(login_data).password
        except ValidationError:
            password = None
        if not password:
            raise BadRequestError("Password is required")

        if not verify_password(password, self.password_hash):
            logger.warning(f"Failed admin login from {client_ip}")
            await self._audit_failure(client_ip, user_agent)
            raise UnauthorizedError("Invalid password")

        session_id = generate_session_id(self.clock())
        session = SessionData(
            logged_in=True,
            timestamp=self._now_ms(),
            ip=client_ip,
            user_agent=user_agent or "unknown",
        )
        try:
            await SessionRepository.put(self.kv, session_id, session, ttl=self.session_duration)
        except Exception as e:
            logger.error(f"Storing session failed: {e}", exc_info=True)
            raise InternalServiceError(debug=str(e)) from e

        await self._audit_success(client_ip)
        self.login_limiter.reset(client_ip)
        logger.info(f"Admin login from {client_ip}")
        return session_id

    async def check(self, session_id: Optional[str], refresh: bool = False) -> Optional[SessionData]:
        """The active session for ``session_id`` or None. Expired entries are deleted."""
        if not session_id:
            return None
        session = await SessionRepository.get(self.kv, session_id)
        if session is None or not session.logged_in:
            return None

        now_ms = self._now_ms()
        age_ms = now_ms - session.timestamp
        if age_ms > self.session_duration * 1000:
            await SessionRepository.delete(self.kv, session_id)
            logger.info(f"Session {session_id[:12]}... expired and removed")
            return None

        if refresh:
            session.last_activity = now_ms
            remaining = self.session_duration - age_ms // 1000
            await SessionRepository.put(self.kv, session_id, session, ttl=remaining)
        return session

    async def require(self, session_id: Optional[str]) -> SessionData:
        try:
            session = await self.check(session_id)
        except FormServiceError:
            raise
        except Exception as e:
            logger.error(f"Session validation error: {e}", exc_info=True)
            session = None
        if session is None:
            raise UnauthorizedError()
        return session

    async def logout(self, session_id: Optional[str]) -> None:
        if not session_id:
            return
        try:
            await SessionRepository.delete(self.kv, session_id)
        except Exception as e:
            logger.error(f"Logout failed: {e}", exc_info=True)
            raise InternalServiceError("Logout failed", debug=str(e)) from e
        logger.info(f"Session {session_id[:12]}... logged out")

    async def _audit_failure(self, client_ip: str, user_agent: str) -> None:
        try:
            await SessionRepository.log_failed_login(self.kv, client_ip, user_agent, from_epoch(self.clock()))
        except Exception as e:
            logger.error(f"Failed to log failed attempt: {e}")

    async def _audit_success(self, client_ip: str) -> None:
        try:
            await SessionRepository.log_successful_login(self.kv, client_ip, from_epoch(self.clock()))
        except Exception as e:
            logger.error(f"Failed to log successful login: {e}")
