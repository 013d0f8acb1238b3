import json
import logging
from datetime import datetime
from typing import Optional
from pydantic import ValidationError
from core.config import FAILED_LOGIN_LOG_TTL_SECONDS, SUCCESS_LOGIN_LOG_TTL_SECONDS
from repositories.kv_store import KVStore
from schemas.record_schema import SecurityStats
from schemas.session_schema import SessionData
from utils.dates import iso_timestamp

logger = logging.getLogger(__name__)

SECURITY_STATS_KEY = "stats:security"


def session_key(session_id: str) -> str:
    return f"session:{session_id}"


class SessionRepository:

    @staticmethod
    async def get(kv: KVStore, session_id: str) -> Optional[SessionData]:
        data = await kv.get(session_key(session_id), as_json=True)
        if not data:
            return None
        try:
            return SessionData.model_validate(data)
        except ValidationError:
            logger.warning(f"Malformed session entry for {session_id[:12]}...")
            return None

    @staticmethod
    async def put(kv: KVStore, session_id: str, session: SessionData, ttl: int) -> None:
        await kv.put(session_key(session_id), json.dumps(session.to_json_dict()), ttl=max(int(ttl), 1))

    @staticmethod
    async def delete(kv: KVStore, session_id: str) -> None:
        await kv.delete(session_key(session_id))

    @staticmethod
    async def get_security_stats(kv: KVStore) -> SecurityStats:
        data = await kv.get(SECURITY_STATS_KEY, as_json=True)
        return SecurityStats.model_validate(data) if data else SecurityStats()

    @staticmethod
    async def log_failed_login(kv: KVStore, ip: str, user_agent: str, moment: datetime) -> None:
        entry = {
            "type": "failed_login",
            "ip": ip,
            "timestamp": iso_timestamp(moment),
            "userAgent": user_agent,
        }
        millis = int(moment.timestamp() * 1000)
        await kv.put(f"log:failed_login:{millis}", json.dumps(entry), ttl=FAILED_LOGIN_LOG_TTL_SECONDS)

        stats = await SessionRepository.get_security_stats(kv)
        stats.failed_attempts += 1
        stats.last_failed = iso_timestamp(moment)
        await kv.put(SECURITY_STATS_KEY, json.dumps(stats.to_json_dict()))

    @staticmethod
    async def log_successful_login(kv: KVStore, ip: str, moment: datetime) -> None:
        entry = {
            "type": "successful_login",
            "ip": ip,
            "timestamp": iso_timestamp(moment),
        }
        millis = int(moment.timestamp() * 1000)
        await kv.put(f"log:success_login:{millis}", json.dumps(entry), ttl=SUCCESS_LOGIN_LOG_TTL_SECONDS)

        stats = await SessionRepository.get_security_stats(kv)
        stats.successful_logins += 1
        stats.last_successful = iso_timestamp(moment)
        await kv.put(SECURITY_STATS_KEY, json.dumps(stats.to_json_dict()))
