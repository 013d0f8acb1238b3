import json
import logging
import time
from typing import Any, Callable, Dict
from core.exceptions import BadRequestError, FormServiceError, InternalServiceError, RateLimitedError, ValidationFailedError
from repositories.kv_store import KVStore
from repositories.record_repository import RecordRepository
from schemas.record_schema import Record
from schemas.submission_schema import REQUIRED_FIELDS, SanitizedSubmission
from services.rate_limiter import RateLimiter
from utils.dates import from_epoch, iso_timestamp
from utils.identifiers import generate_response_id
from utils.sanitizer import sanitize_input
from utils.validators import digits_only, validate_all

logger = logging.getLogger(__name__)

LEGACY_FIELD_NAMES = {"nationalId": "aadhar"}


class SubmissionService:
    """
    rate limit -> parse -> presence check -> sanitize -> validate -> persist.
    Each step is a hard gate; the first failure ends the request.
    """

    def __init__(self, kv: KVStore, rate_limiter: RateLimiter, clock: Callable[[], float] = time.time):
        self.kv = kv
        self.rate_limiter = rate_limiter
        self.clock = clock

    async def submit(self, raw_body: bytes, client_ip: str, user_agent: str = "unknown") -> Dict[str, str]:
        if not self.rate_limiter.allow(client_ip):
            raise RateLimitedError(
                "Rate limit exceeded. Please try again later.",
                retry_after=self.rate_limiter.retry_after,
            )

        form_data = self._parse(raw_body)
        submission = self._sanitize(self._require_fields(form_data))

        now = from_epoch(self.clock())
        errors = validate_all(submission.to_json_dict(), today=now.date())
        if errors:
            logger.info(f"Submission from {client_ip} rejected: {errors}")
            raise ValidationFailedError(errors)

        record = Record(
            id=generate_response_id(now.timestamp()),
            name=submission.name,
            dob=submission.dob,
            mobile=submission.mobile,
            father=submission.father,
            national_id=submission.national_id,
            timestamp=iso_timestamp(now),
            ip=client_ip,
            user_agent=user_agent or "unknown",
        )

        try:
            await self._persist(record, now)
        except FormServiceError:
            raise
        except Exception as e:
            logger.error(f"Storing submission {record.id} failed: {e}", exc_info=True)
            raise InternalServiceError(debug=str(e)) from e

        logger.info(f"Submission stored: {record.id} from {client_ip}")
        return {"id": record.id, "timestamp": record.timestamp, "name": record.name}

    async def _persist(self, record: Record, now) -> None:
        # independent single-key writes, no rollback: an orphaned record is
        # preferred over losing an accepted submission
        await RecordRepository.save_record(self.kv, record)
        await RecordRepository.append_to_index(self.kv, record.id)
        await RecordRepository.push_recent(self.kv, record)
        await RecordRepository.update_stats(self.kv, record.timestamp, now.date())

    @staticmethod
    def _parse(raw_body: bytes) -> Dict[str, Any]:
        try:
            form_data = json.loads(raw_body or b"")
        except (ValueError, UnicodeDecodeError):
            raise BadRequestError("Invalid JSON data")
        if not isinstance(form_data, dict):
            raise BadRequestError("Invalid JSON data")
        return form_data

    @staticmethod
    def _require_fields(form_data: Dict[str, Any]) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        missing = []
        for field in REQUIRED_FIELDS:
            value = form_data.get(field)
            if value is None and field in LEGACY_FIELD_NAMES:
                value = form_data.get(LEGACY_FIELD_NAMES[field])
            if isinstance(value, (dict, list)):
                raise BadRequestError(f"Field '{field}' must be a string")
            if value is None or value is False or str(value).strip() == "":
                missing.append(field)
                continue
            values[field] = value
        if missing:
            raise BadRequestError(f"Missing required fields: {', '.join(missing)}")
        return values

    @staticmethod
    def _sanitize(values: Dict[str, Any]) -> SanitizedSubmission:
        return SanitizedSubmission(
            name=sanitize_input(values["name"]),
            dob=str(values["dob"]).strip(),
            mobile=digits_only(values["mobile"]),
            father=sanitize_input(values["father"]),
            national_id=digits_only(values["nationalId"]),
        )
