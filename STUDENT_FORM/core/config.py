import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./student_form.db")
KV_BACKEND   = os.getenv("KV_BACKEND", "sql").lower()

DEBUG_MODE = os.getenv("DEBUG_MODE", "false").lower() in ("1", "true", "yes")

ADMIN_PASSWORD      = os.getenv("ADMIN_PASSWORD")
ADMIN_PASSWORD_HASH = os.getenv("ADMIN_PASSWORD_HASH")
DEFAULT_ADMIN_PASSWORD = "admin123"
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Rate limiting (sliding window, per client IP)
SUBMIT_MAX_REQUESTS   = 10
SUBMIT_WINDOW_SECONDS = 15 * 60
LOGIN_MAX_ATTEMPTS    = 5
LOGIN_WINDOW_SECONDS  = 15 * 60

SESSION_DURATION_SECONDS = 24 * 60 * 60
SESSION_COOKIE_NAME      = "admin_session"

# Response listing
QUERY_CACHE_TTL_SECONDS       = 5
QUERY_CACHE_STORE_TTL_SECONDS = 60
FETCH_BATCH_SIZE   = 20
DEFAULT_PAGE_SIZE  = 50
MAX_PAGE_SIZE      = 100
RECENT_LIST_LIMIT  = 50

# Field rules
SANITIZE_MAX_LENGTH = 255
NAME_MIN_LENGTH     = 2
NAME_MAX_LENGTH     = 100
DOB_MAX_AGE_YEARS   = 100

FAILED_LOGIN_LOG_TTL_SECONDS  = 7 * 24 * 60 * 60
SUCCESS_LOGIN_LOG_TTL_SECONDS = 30 * 24 * 60 * 60

KV_CLEANUP_INTERVAL_HOURS = int(os.getenv("KV_CLEANUP_INTERVAL_HOURS", "24"))
