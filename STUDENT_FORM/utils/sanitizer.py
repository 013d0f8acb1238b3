import re
from core.config import SANITIZE_MAX_LENGTH

UNSAFE_CHARACTERS = re.compile(r"[&<>\"'`=/]")


def sanitize_input(value, max_length: int = SANITIZE_MAX_LENGTH) -> str:
    text = str(value).strip()
    return UNSAFE_CHARACTERS.sub("", text)[:max_length]
