import csv
import io
import json
import logging
import time
from typing import Callable, List, Tuple
from core.exceptions import BadRequestError, FormServiceError, InternalServiceError
from repositories.kv_store import KVStore
from repositories.record_repository import RecordRepository
from schemas.record_schema import Record
from services.query_service import sort_records
from utils.dates import from_epoch, parse_iso_datetime
from utils.validators import digits_only

logger = logging.getLogger(__name__)

CSV_HEADERS = ["Timestamp", "Name", "Date of Birth", "Mobile No", "Father Name", "National ID", "IP Address"]

# format -> (media type, file extension)
EXPORT_FORMATS = {
    "csv":   ("text/csv", "csv"),
    "json":  ("application/json", "json"),
    # no spreadsheet writer; excel downloads carry CSV content
    "excel": ("application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", "xlsx"),
}


def format_mobile(mobile: str) -> str:
    cleaned = digits_only(mobile)
    if len(cleaned) == 10:
        return f"{cleaned[:5]} {cleaned[5:]}"
    return cleaned


def format_national_id(national_id: str) -> str:
    cleaned = digits_only(national_id)
    if len(cleaned) == 12:
        return f"{cleaned[:4]} {cleaned[4:8]} {cleaned[8:]}"
    return cleaned


def format_timestamp(timestamp: str) -> str:
    moment = parse_iso_datetime(timestamp)
    return moment.strftime("%d/%m/%Y, %H:%M:%S") if moment else timestamp


def to_csv(records: List[Record]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for record in records:
        writer.writerow([
            format_timestamp(record.timestamp),
            record.name,
            record.dob,
            format_mobile(record.mobile),
            record.father,
            format_national_id(record.national_id),
            record.ip or "N/A",
        ])
    return buffer.getvalue()


def to_json(records: List[Record]) -> str:
    return json.dumps([record.to_json_dict() for record in records], indent=2)


class ExportService:

    def __init__(self, kv: KVStore, clock: Callable[[], float] = time.time):
        self.kv = kv
        self.clock = clock

    async def export(self, export_format: str = "csv") -> Tuple[str, str, str]:
        """Returns ``(body, media_type, filename)``."""
        export_format = (export_format or "csv").lower()
        if export_format not in EXPORT_FORMATS:
            raise BadRequestError(f"Unsupported format: {export_format}")

        try:
            record_ids = await RecordRepository.get_index(self.kv)
            records = await RecordRepository.fetch_records(self.kv, record_ids)
        except FormServiceError:
            raise
        except Exception as e:
            logger.error(f"Export error: {e}", exc_info=True)
            raise InternalServiceError("Export failed", debug=str(e)) from e

        records = sort_records(records, "timestamp", "desc")
        media_type, extension = EXPORT_FORMATS[export_format]
        body = to_json(records) if export_format == "json" else to_csv(records)
        filename = f"student_responses_{from_epoch(self.clock()).date().isoformat()}.{extension}"

        logger.info(f"Exported {len(records)} responses as {export_format}")
        return body, media_type, filename
