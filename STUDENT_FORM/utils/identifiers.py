import secrets
import string
import time
from typing import Optional

BASE36_ALPHABET = string.digits + string.ascii_lowercase


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_response_id(now: Optional[float] = None) -> str:
    millis = int((time.time() if now is None else now) * 1000)
    suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(9))
    return f"resp_{to_base36(millis)}_{suffix}"


def generate_session_id(now: Optional[float] = None) -> str:
    millis = int((time.time() if now is None else now) * 1000)
    return f"sess_{to_base36(millis)}_{secrets.token_hex(32)}"
