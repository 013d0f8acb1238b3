import logging
from typing import Optional
import bcrypt
from core.config import ADMIN_PASSWORD, ADMIN_PASSWORD_HASH, DEFAULT_ADMIN_PASSWORD, BCRYPT_ROUNDS

logger = logging.getLogger(__name__)


def get_password_hash(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    # bcrypt only looks at the first 72 bytes
    password_bytes = password.encode("utf-8")[:72]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    password_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
    except ValueError:
        logger.error("Stored admin password hash is not a valid bcrypt hash")
        return False


def load_admin_password_hash(password: Optional[str] = None) -> str:
    """
    Resolve the admin password hash once at start-up.

    ADMIN_PASSWORD_HASH wins over ADMIN_PASSWORD so the plaintext never has to
    live in the environment. An explicit ``password`` argument overrides both.
    """
    if password is not None:
        return get_password_hash(password)
    if ADMIN_PASSWORD_HASH:
        return ADMIN_PASSWORD_HASH
    if not ADMIN_PASSWORD:
        logger.warning("ADMIN_PASSWORD is not set, falling back to the default admin password")
        return get_password_hash(DEFAULT_ADMIN_PASSWORD)
    return get_password_hash(ADMIN_PASSWORD)
