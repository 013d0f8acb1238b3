import asyncio
import json
import logging
from datetime import date
from typing import List, Optional
from pydantic import ValidationError
from core.config import FETCH_BATCH_SIZE, RECENT_LIST_LIMIT
from repositories.kv_store import KVStore
from schemas.record_schema import Record, RecentEntry, Stats
from utils.dates import parse_iso_datetime

logger = logging.getLogger(__name__)

INDEX_KEY = "responses:list"
RECENT_KEY = "responses:recent"
STATS_KEY = "stats"
LAST_SUBMISSION_DATE_KEY = "last_submission_date"


def record_key(record_id: str) -> str:
    return f"response:{record_id}"


class RecordRepository:

    @staticmethod
    async def save_record(kv: KVStore, record: Record) -> None:
        await kv.put(record_key(record.id), json.dumps(record.to_json_dict()))

    @staticmethod
    async def get_record(kv: KVStore, record_id: str) -> Optional[Record]:
        data = await kv.get(record_key(record_id), as_json=True)
        return Record.model_validate(data) if data else None

    @staticmethod
    async def get_index(kv: KVStore) -> List[str]:
        return await kv.get(INDEX_KEY, as_json=True) or []

    @staticmethod
    async def append_to_index(kv: KVStore, record_id: str) -> None:
        # read-modify-write; concurrent writers may lose an append
        index = await RecordRepository.get_index(kv)
        index.append(record_id)
        await kv.put(INDEX_KEY, json.dumps(index))

    @staticmethod
    async def get_recent(kv: KVStore) -> List[RecentEntry]:
        data = await kv.get(RECENT_KEY, as_json=True) or []
        return [RecentEntry.model_validate(item) for item in data]

    @staticmethod
    async def push_recent(kv: KVStore, record: Record, limit: int = RECENT_LIST_LIMIT) -> None:
        recent = await kv.get(RECENT_KEY, as_json=True) or []
        entry = RecentEntry(id=record.id, name=record.name, timestamp=record.timestamp, mobile=record.mobile)
        recent.insert(0, entry.to_json_dict())
        await kv.put(RECENT_KEY, json.dumps(recent[:limit]))

    @staticmethod
    async def get_stats(kv: KVStore, today: Optional[date] = None) -> Stats:
        data = await kv.get(STATS_KEY, as_json=True)
        stats = Stats.model_validate(data) if data else Stats()
        if today is not None and stats.last_updated:
            last = parse_iso_datetime(stats.last_updated)
            if last is not None and last.date() != today:
                stats.today = 0
        return stats

    @staticmethod
    async def update_stats(kv: KVStore, timestamp: str, today: date) -> Stats:
        data = await kv.get(STATS_KEY, as_json=True)
        stats = Stats.model_validate(data) if data else Stats(last_updated=timestamp)
        stats.total += 1

        today_str = today.isoformat()
        last_submission = await kv.get(LAST_SUBMISSION_DATE_KEY)
        if last_submission != today_str:
            stats.today = 1
            await kv.put(LAST_SUBMISSION_DATE_KEY, today_str)
        else:
            stats.today += 1

        stats.last_updated = timestamp
        await kv.put(STATS_KEY, json.dumps(stats.to_json_dict()))
        return stats

    @staticmethod
    async def fetch_records(kv: KVStore, record_ids: List[str], batch_size: int = FETCH_BATCH_SIZE) -> List[Record]:
        """
        Load records batch by batch; the reads within a batch run concurrently
        and the next batch starts only after every read has settled. Missing,
        failed and malformed entries are dropped.
        """
        records: List[Record] = []
        for start in range(0, len(record_ids), batch_size):
            batch = record_ids[start:start + batch_size]
            results = await asyncio.gather(
                *(kv.get(record_key(record_id), as_json=True) for record_id in batch),
                return_exceptions=True,
            )
            for record_id, result in zip(batch, results):
                if isinstance(result, BaseException):
                    logger.warning(f"Dropping record {record_id}: fetch failed ({result})")
                    continue
                if not result:
                    logger.debug(f"Dropping record {record_id}: not found")
                    continue
                try:
                    records.append(Record.model_validate(result))
                except ValidationError as e:
                    logger.warning(f"Dropping record {record_id}: malformed ({e.error_count()} errors)")
        return records
