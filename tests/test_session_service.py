import json

import pytest

from core.exceptions import BadRequestError, RateLimitedError, UnauthorizedError
from core.security import get_password_hash, load_admin_password_hash, verify_password
from repositories.session_repository import SessionRepository, session_key
from services.rate_limiter import RateLimiter
from services.session_service import SessionService

DAY = 24 * 3600


@pytest.fixture
def sessions(kv, clock):
    return SessionService(kv, get_password_hash("secret", rounds=4), RateLimiter(5, 900, clock=clock), clock=clock)


def login_body(password="secret") -> bytes:
    return json.dumps({"password": password}).encode()


def test_password_hashing():
    hashed = get_password_hash("secret", rounds=4)
    assert hashed != "secret"
    assert verify_password("secret", hashed)
    assert not verify_password("Secret", hashed)
    assert not verify_password("secret", "not-a-bcrypt-hash")


def test_explicit_admin_password_wins():
    assert verify_password("override", load_admin_password_hash("override"))


async def test_login_creates_session(sessions, kv):
    session_id = await sessions.login(login_body(), client_ip="1.1.1.1", user_agent="pytest")
    assert session_id.startswith("sess_")
    assert len(session_id.rsplit("_", 1)[1]) == 64

    session = await sessions.check(session_id)
    assert session.logged_in
    assert session.ip == "1.1.1.1"
    assert session.user_agent == "pytest"

    security = await SessionRepository.get_security_stats(kv)
    assert security.successful_logins == 1


async def test_wrong_password(sessions, kv):
    with pytest.raises(UnauthorizedError, match="Invalid password"):
        await sessions.login(login_body("nope"), client_ip="1.1.1.1", user_agent="pytest")

    security = await SessionRepository.get_security_stats(kv)
    assert security.failed_attempts == 1
    assert security.last_failed == "2024-05-01T10:00:00.000Z"
    assert any(key.startswith("log:failed_login:") for key in kv.keys())


async def test_missing_password(sessions):
    with pytest.raises(BadRequestError, match="Password is required"):
        await sessions.login(b"{}", client_ip="1.1.1.1")
    with pytest.raises(BadRequestError, match="Invalid JSON data"):
        await sessions.login(b"password=secret", client_ip="1.1.1.1")


async def test_login_attempts_are_rate_limited(sessions):
    for _ in range(5):
        with pytest.raises(UnauthorizedError):
            await sessions.login(login_body("nope"), client_ip="1.1.1.1")
    with pytest.raises(RateLimitedError) as exc_info:
        await sessions.login(login_body(), client_ip="1.1.1.1")
    assert exc_info.value.retry_after == 900

    assert await sessions.login(login_body(), client_ip="2.2.2.2")


async def test_successful_login_resets_attempts(sessions):
    for _ in range(4):
        with pytest.raises(UnauthorizedError):
            await sessions.login(login_body("nope"), client_ip="1.1.1.1")
    await sessions.login(login_body(), client_ip="1.1.1.1")
    for _ in range(4):
        with pytest.raises(UnauthorizedError):
            await sessions.login(login_body("nope"), client_ip="1.1.1.1")


async def test_unknown_session(sessions):
    assert await sessions.check(None) is None
    assert await sessions.check("sess_missing") is None
    with pytest.raises(UnauthorizedError, match="Unauthorized access"):
        await sessions.require("sess_missing")


async def test_session_expires_after_a_day(sessions, kv, clock):
    session_id = await sessions.login(login_body(), client_ip="1.1.1.1")
    clock.advance(DAY - 1)
    assert await sessions.check(session_id) is not None

    clock.advance(2)
    assert await sessions.check(session_id) is None
    assert session_key(session_id) not in kv.keys()


async def test_expired_entry_is_deleted_on_read(sessions, kv, clock):
    session_id = await sessions.login(login_body(), client_ip="1.1.1.1")
    # entry outlives its deadline in the store
    session = await SessionRepository.get(kv, session_id)
    await SessionRepository.put(kv, session_id, session, ttl=10 * DAY)

    clock.advance(DAY + 1)
    assert await sessions.check(session_id) is None
    assert session_key(session_id) not in kv.keys()


async def test_refresh_does_not_extend_deadline(sessions, clock):
    session_id = await sessions.login(login_body(), client_ip="1.1.1.1")
    created_ms = int(clock() * 1000)

    clock.advance(3600)
    refreshed = await sessions.check(session_id, refresh=True)
    assert refreshed.last_activity == created_ms + 3600 * 1000
    assert refreshed.timestamp == created_ms

    clock.advance(DAY - 3600 + 1)
    assert await sessions.check(session_id) is None


async def test_logout(sessions):
    session_id = await sessions.login(login_body(), client_ip="1.1.1.1")
    await sessions.logout(session_id)
    assert await sessions.check(session_id) is None
    await sessions.logout(None)


async def test_non_string_password_is_rejected(sessions):
    with pytest.raises(BadRequestError, match="Password is required"):
        await sessions.login(b'{"password": 12345}', client_ip="1.1.1.1")
    with pytest.raises(BadRequestError, match="Invalid JSON data"):
        await sessions.login(b'"secret"', client_ip="1.1.1.1")
