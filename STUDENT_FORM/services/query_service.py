"""
Response listing: auth -> normalize -> cache lookup -> batched fetch ->
filter -> sort -> paginate -> cache store.

The cache holds whole response payloads keyed by the normalized parameter
set. Entries are never invalidated; they only age out after the TTL.
"""

import json
import logging
import math
import time
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from core.config import (
    DEFAULT_PAGE_SIZE, FETCH_BATCH_SIZE, MAX_PAGE_SIZE,
    QUERY_CACHE_STORE_TTL_SECONDS, QUERY_CACHE_TTL_SECONDS,
)
from core.exceptions import BadRequestError, FormServiceError, InternalServiceError
from repositories.kv_store import KVStore
from repositories.record_repository import RecordRepository
from schemas.query_schema import SORT_FIELDS, SORT_ORDERS, Pagination, QueryFilters, QueryParams, ResponsesPage, SortSpec
from schemas.record_schema import Record, Stats
from services.session_service import SessionService
from utils.dates import from_epoch, is_date_only, parse_calendar_date, parse_iso_datetime
from utils.validators import digits_only

logger = logging.getLogger(__name__)

EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _clean_digits(value: Optional[str]) -> Optional[str]:
    value = _clean(value)
    if value is None:
        return None
    return digits_only(value) or None


def _check_date(value: Optional[str], field: str) -> Optional[str]:
    if value is not None and parse_iso_datetime(value) is None:
        raise BadRequestError(f"Invalid {field}: expected an ISO-8601 date")
    return value


def normalize_params(raw: Mapping[str, Any]) -> QueryParams:
    page = max(_parse_int(raw.get("page"), 1), 1)
    limit = _parse_int(raw.get("limit"), DEFAULT_PAGE_SIZE)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)

    sort_by = _clean(raw.get("sortBy")) or "timestamp"
    if sort_by not in SORT_FIELDS:
        sort_by = "timestamp"
    sort_order = (_clean(raw.get("sortOrder")) or "desc").lower()
    if sort_order not in SORT_ORDERS:
        sort_order = "desc"

    filters = QueryFilters(
        search=_clean(raw.get("search")),
        start_date=_check_date(_clean(raw.get("startDate")), "startDate"),
        end_date=_check_date(_clean(raw.get("endDate")), "endDate"),
        mobile=_clean_digits(raw.get("mobile")),
        national_id=_clean_digits(raw.get("nationalId") or raw.get("aadhar")),
    )
    return QueryParams(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order, filters=filters)


def filter_records(records: List[Record], filters: QueryFilters) -> List[Record]:
    search = filters.search.lower() if filters.search else None
    start = parse_iso_datetime(filters.start_date) if filters.start_date else None
    end = parse_iso_datetime(filters.end_date) if filters.end_date else None
    if end is not None and is_date_only(filters.end_date):
        # a bare end date covers that whole day
        end = end + timedelta(days=1) - timedelta(microseconds=1)

    matched = []
    for record in records:
        if search:
            searchable = " ".join([record.name, record.father, record.mobile, record.national_id, record.dob]).lower()
            if search not in searchable:
                continue
        if start or end:
            created = parse_iso_datetime(record.timestamp)
            if created is None:
                continue
            if start and created < start:
                continue
            if end and created > end:
                continue
        if filters.mobile and filters.mobile not in record.mobile:
            continue
        if filters.national_id and filters.national_id not in record.national_id:
            continue
        matched.append(record)
    return matched


def _sort_key(sort_by: str) -> Callable[[Record], Any]:
    if sort_by == "name":
        return lambda record: record.name.lower()
    if sort_by == "dob":
        return lambda record: parse_calendar_date(record.dob) or date.min
    if sort_by == "mobile":
        return lambda record: record.mobile
    return lambda record: parse_iso_datetime(record.timestamp) or EARLIEST


def sort_records(records: List[Record], sort_by: str = "timestamp", sort_order: str = "desc") -> List[Record]:
    return sorted(records, key=_sort_key(sort_by), reverse=sort_order == "desc")


def paginate(items: List[Record], page: int, limit: int) -> Tuple[List[Record], Pagination]:
    total_items = len(items)
    total_pages = math.ceil(total_items / limit)
    offset = (page - 1) * limit
    pagination = Pagination(
        page=page,
        limit=limit,
        total_items=total_items,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
    )
    return items[offset:offset + limit], pagination


def build_page(records: List[Record], params: QueryParams, stats: Stats) -> Dict[str, Any]:
    items, pagination = paginate(records, params.page, params.limit)
    return ResponsesPage(
        data=items,
        pagination=pagination,
        stats=stats,
        filters=params.filters,
        sort=SortSpec(by=params.sort_by, order=params.sort_order),
    ).to_json_dict()


class ResponseQueryService:

    def __init__(
        self,
        kv: KVStore,
        session_service: SessionService,
        clock: Callable[[], float] = time.time,
        cache_ttl: int = QUERY_CACHE_TTL_SECONDS,
        batch_size: int = FETCH_BATCH_SIZE,
    ):
        self.kv = kv
        self.session_service = session_service
        self.clock = clock
        self.cache_ttl = cache_ttl
        self.batch_size = batch_size

    async def query(
        self,
        raw_params: Mapping[str, Any],
        session_id: Optional[str] = None,
        public: bool = False,
    ) -> Tuple[Dict[str, Any], bool]:
        """Returns ``(payload, cache_hit)``."""
        if not public:
            await self.session_service.require(session_id)

        params = normalize_params(raw_params)
        try:
            return await self._run(params)
        except FormServiceError:
            raise
        except Exception as e:
            logger.error(f"Get responses error: {e}", exc_info=True)
            raise InternalServiceError("Failed to fetch responses", debug=str(e)) from e

    async def _run(self, params: QueryParams) -> Tuple[Dict[str, Any], bool]:
        cache_key = params.cache_key()
        now_ms = int(self.clock() * 1000)

        cached = await self.kv.get(cache_key, as_json=True)
        if cached and now_ms - cached.get("timestamp", 0) < self.cache_ttl * 1000:
            logger.debug(f"Responses cache HIT: {cache_key}")
            return cached["data"], True

        record_ids = await RecordRepository.get_index(self.kv)
        if not record_ids:
            payload = build_page([], params, Stats())
        else:
            records = await RecordRepository.fetch_records(self.kv, record_ids, self.batch_size)
            matched = filter_records(records, params.filters)
            ordered = sort_records(matched, params.sort_by, params.sort_order)
            stats = await RecordRepository.get_stats(self.kv, today=from_epoch(self.clock()).date())
            payload = build_page(ordered, params, stats)
            logger.info(
                f"Responses cache MISS: {len(records)} loaded, {len(matched)} matched, "
                f"page {params.page}/{payload['pagination']['totalPages']}"
            )

        await self.kv.put(
            cache_key,
            json.dumps({"data": payload, "timestamp": now_ms}),
            ttl=max(QUERY_CACHE_STORE_TTL_SECONDS, self.cache_ttl),
        )
        return payload, False
