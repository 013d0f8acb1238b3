import hashlib
import json
from typing import List, Optional
from pydantic import BaseModel
from schemas.record_schema import CamelModel, Record, Stats

SORT_FIELDS = ("timestamp", "name", "dob", "mobile")
SORT_ORDERS = ("asc", "desc")

class QueryFilters(CamelModel):
    search: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    mobile: Optional[str] = None
    national_id: Optional[str] = None

class QueryParams(CamelModel):
    page: int = 1
    limit: int = 50
    sort_by: str = "timestamp"
    sort_order: str = "desc"
    filters: QueryFilters = QueryFilters()

    def cache_key(self) -> str:
        # digest keeps the key within the kv_entries key column
        canonical = json.dumps(self.to_json_dict(), sort_keys=True, separators=(",", ":"))
        return f"cache:responses:{hashlib.sha256(canonical.encode('utf-8')).hexdigest()}"

class Pagination(CamelModel):
    page: int
    limit: int
    total_items: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool

class SortSpec(BaseModel):
    by: str
    order: str

class ResponsesPage(CamelModel):
    success: bool = True
    data: List[Record]
    pagination: Pagination
    stats: Stats
    filters: QueryFilters
    sort: SortSpec
