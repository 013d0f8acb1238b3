from datetime import date, datetime, timezone
from typing import Optional


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def from_epoch(seconds: float) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def iso_timestamp(moment: datetime) -> str:
    """``2024-05-01T10:20:30.123Z``"""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso_datetime(value) -> Optional[datetime]:
    if not value:
        return None
    text = str(value).strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_date_only(value) -> bool:
    text = str(value).strip()
    return len(text) == 10 and parse_calendar_date(text) is not None


def parse_calendar_date(value) -> Optional[date]:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if len(text) > 10:
        moment = parse_iso_datetime(text)
        return moment.date() if moment else None
    try:
        return date.fromisoformat(text) if len(text) == 10 else None
    except ValueError:
        return None
