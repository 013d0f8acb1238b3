"""
Field validators for form submissions.

All functions are pure: they never raise and never touch I/O. Numeric
fields are reduced to their digits first, so already formatted input such
as ``"98765 43210"`` or ``"2341-2341-2340"`` is accepted.
"""

import re
from datetime import date
from typing import List, Mapping
from core.config import NAME_MIN_LENGTH, NAME_MAX_LENGTH, DOB_MAX_AGE_YEARS
from utils.dates import parse_calendar_date

MOBILE_PATTERN = re.compile(r"^[6-9]\d{9}$")
NATIONAL_ID_LENGTH = 12


def digits_only(value) -> str:
    return re.sub(r"\D", "", str(value))


def national_id_check_digit(first_eleven: str) -> int:
    """Check digit for the first 11 digits: even positions add the digit,
    odd positions add the doubled digit minus 9 when it exceeds 9."""
    total = 0
    for position, char in enumerate(first_eleven):
        digit = int(char)
        if position % 2 == 0:
            total += digit
        else:
            doubled = digit * 2
            total += doubled - 9 if doubled > 9 else doubled
    return (10 - total % 10) % 10


def validate_mobile(value) -> bool:
    return bool(MOBILE_PATTERN.match(digits_only(value)))


def validate_national_id(value) -> bool:
    cleaned = digits_only(value)
    if len(cleaned) != NATIONAL_ID_LENGTH:
        return False
    return national_id_check_digit(cleaned[:11]) == int(cleaned[11])


def years_before(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        # Feb 29 -> Feb 28
        return day.replace(year=day.year - years, day=28)


def validate_dob(value, today: date) -> bool:
    dob = parse_calendar_date(value)
    if dob is None:
        return False
    if dob > today:
        return False
    return dob >= years_before(today, DOB_MAX_AGE_YEARS)


def validate_name(value) -> bool:
    return NAME_MIN_LENGTH <= len(str(value).strip()) <= NAME_MAX_LENGTH


def validate_father_name(value) -> bool:
    return validate_name(value)


def _length_errors(value, label: str) -> List[str]:
    length = len(str(value).strip())
    if length < NAME_MIN_LENGTH:
        return [f"{label} must be at least {NAME_MIN_LENGTH} characters long"]
    if length > NAME_MAX_LENGTH:
        return [f"{label} is too long"]
    return []


def validate_all(submission: Mapping, today: date) -> List[str]:
    """Every violated rule, in field order. Empty list means the submission is valid."""
    errors: List[str] = []
    errors += _length_errors(submission.get("name", ""), "Name")
    if not validate_dob(submission.get("dob", ""), today=today):
        errors.append("Invalid date of birth")
    if not validate_mobile(submission.get("mobile", "")):
        errors.append("Invalid Indian mobile number")
    errors += _length_errors(submission.get("father", ""), "Father's name")
    if not validate_national_id(submission.get("nationalId", "")):
        errors.append("Invalid national ID number")
    return errors
