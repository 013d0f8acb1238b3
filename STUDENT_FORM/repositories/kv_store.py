"""
Key-value store backends.

Every operation is a coroutine: request handlers suspend on store I/O and
never block each other. ``SQLKVStore`` keeps its data in the ``kv_entries``
table and runs the synchronous SQLAlchemy session in FastAPI's threadpool;
``MemoryKVStore`` keeps everything in a process-local dict.

Values are stored as text. ``get(key, as_json=True)`` decodes JSON and
returns ``None`` for absent or expired keys. ``ttl`` is in seconds.
"""

import json
import logging
import time
from datetime import datetime, timezone, timedelta
from typing import Any, Callable, Dict, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session, sessionmaker

from core.config import KV_BACKEND
from core.database import SessionLocal
from repositories.kv_entry_repository import KVEntryRepository, as_utc

logger = logging.getLogger(__name__)


class KVStore:
    """Interface shared by the store backends"""

    async def get(self, key: str, as_json: bool = False) -> Any:
        raise NotImplementedError

    async def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    @staticmethod
    def _decode(raw: Optional[str], as_json: bool) -> Any:
        if raw is None or not as_json:
            return raw
        return json.loads(raw)


class SQLKVStore(KVStore):

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory or SessionLocal

    async def get(self, key: str, as_json: bool = False) -> Any:
        raw = await run_in_threadpool(self._get_sync, key)
        return self._decode(raw, as_json)

    async def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        await run_in_threadpool(self._put_sync, key, value, ttl)

    async def delete(self, key: str) -> None:
        await run_in_threadpool(self._delete_sync, key)

    def _get_sync(self, key: str) -> Optional[str]:
        db: Session = self._session_factory()
        try:
            entry = KVEntryRepository.get_by_key(db, key)
            if not entry:
                return None
            expires_at = as_utc(entry.expires_at)
            if expires_at and expires_at <= datetime.now(timezone.utc):
                KVEntryRepository.delete_by_key(db, key)
                logger.debug(f"Expired key removed on read: {key}")
                return None
            return entry.value
        finally:
            db.close()

    def _put_sync(self, key: str, value: str, ttl: Optional[int]) -> None:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl) if ttl else None
        db: Session = self._session_factory()
        try:
            KVEntryRepository.upsert(db, key, value, expires_at)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _delete_sync(self, key: str) -> None:
        db: Session = self._session_factory()
        try:
            KVEntryRepository.delete_by_key(db, key)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class MemoryKVStore(KVStore):

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}

    async def get(self, key: str, as_json: bool = False) -> Any:
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return None
        return self._decode(value, as_json)

    async def put(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl if ttl else None
        self._data[key] = (value, expires_at)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data.keys())


def get_kv_store() -> KVStore:
    if KV_BACKEND == "memory":
        logger.info("KV store: in-memory (process local)")
        return MemoryKVStore()
    logger.info("KV store: SQL (kv_entries table)")
    return SQLKVStore()
