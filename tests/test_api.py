import json

from fastapi.testclient import TestClient

from conftest import ADMIN_PASSWORD, VALID_FORM
from main import create_app
from repositories.kv_store import MemoryKVStore


def submit(client, form=None, ip="203.0.113.5"):
    return client.post(
        "/api/submit",
        content=json.dumps(form if form is not None else VALID_FORM),
        headers={"Content-Type": "application/json", "X-Forwarded-For": ip},
    )


def test_root(client):
    assert client.get("/").status_code == 200


def test_submit_then_find_by_search(admin_client):
    response = submit(admin_client)
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Form submitted successfully"
    assert body["data"]["id"].startswith("resp_")
    assert response.headers["access-control-allow-origin"] == "*"

    listing = admin_client.get("/api/responses", params={"search": "aarav"})
    assert listing.status_code == 200
    assert listing.headers["x-cache"] == "MISS"
    found = listing.json()["data"]
    assert len(found) == 1
    assert found[0]["id"] == body["data"]["id"]
    assert found[0]["ip"] == "203.0.113.5"
    assert listing.json()["stats"]["total"] == 1


def test_invalid_mobile_is_rejected(client):
    form = dict(VALID_FORM, mobile="1234567890")
    response = submit(client, form)
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert any("mobile" in error for error in body["errors"])


def test_invalid_json_and_missing_fields(client):
    response = client.post("/api/submit", content="{oops")
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid JSON data"}

    response = submit(client, {"name": "Aarav"})
    assert response.status_code == 400
    assert response.json()["error"].startswith("Missing required fields: dob")


def test_submit_rate_limit_per_ip(client):
    for _ in range(10):
        assert submit(client, ip="198.51.100.1").status_code == 201

    limited = submit(client, ip="198.51.100.1")
    assert limited.status_code == 429
    assert limited.headers["retry-after"] == "900"
    assert limited.json()["error"] == "Rate limit exceeded. Please try again later."

    assert submit(client, ip="198.51.100.2").status_code == 201


def test_submit_rate_limit_window_passes(client, clock):
    for _ in range(10):
        submit(client, ip="198.51.100.1")
    clock.advance(15 * 60 + 1)
    assert submit(client, ip="198.51.100.1").status_code == 201


def test_responses_require_session(client):
    response = client.get("/api/responses")
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Unauthorized access"}

    client.cookies.set("admin_session", "sess_forged")
    response = client.get("/api/responses")
    assert response.status_code == 401


def test_public_listing_skips_auth(client):
    submit(client)
    response = client.get("/api/responses", params={"public": "1"})
    assert response.status_code == 200
    assert response.json()["pagination"]["totalItems"] == 1
    assert response.headers["cache-control"] == "public, max-age=5"


def test_repeated_listing_is_served_from_cache(client):
    submit(client)
    first = client.get("/api/responses", params={"public": "1", "page": "1"})
    second = client.get("/api/responses", params={"page": "1", "public": "1"})
    assert first.headers["x-cache"] == "MISS"
    assert second.headers["x-cache"] == "HIT"
    assert first.json() == second.json()


def test_bad_date_filter(admin_client):
    response = admin_client.get("/api/responses", params={"startDate": "last week"})
    assert response.status_code == 400


def test_login_session_lifecycle(client):
    response = client.post("/api/login", content=json.dumps({"password": ADMIN_PASSWORD}))
    assert response.status_code == 200
    assert response.json()["success"] is True
    session_id = response.json()["sessionId"]
    set_cookie = response.headers["set-cookie"]
    assert f"admin_session={session_id}" in set_cookie
    assert "HttpOnly" in set_cookie
    assert "Max-Age=86400" in set_cookie

    status = client.get("/api/login").json()
    assert status["loggedIn"] is True
    assert status["session"]["ip"] == "testclient"

    assert client.delete("/api/login").json() == {"success": True, "message": "Logged out successfully"}
    client.cookies.clear()
    assert client.get("/api/login").json() == {"loggedIn": False, "session": None}
    client.cookies.set("admin_session", session_id)
    assert client.get("/api/responses").status_code == 401


def test_login_failures(client):
    response = client.post("/api/login", content=json.dumps({"password": "wrong"}))
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid password"

    response = client.post("/api/login", content="{}")
    assert response.status_code == 400

    for _ in range(3):
        client.post("/api/login", content=json.dumps({"password": "wrong"}))
    limited = client.post("/api/login", content=json.dumps({"password": ADMIN_PASSWORD}))
    assert limited.status_code == 429
    assert "retry-after" in limited.headers


def test_session_expires(admin_client, clock):
    clock.advance(24 * 3600 + 1)
    assert admin_client.get("/api/login").json()["loggedIn"] is False
    assert admin_client.get("/api/responses").status_code == 401


def test_export(admin_client):
    submit(admin_client)
    response = admin_client.get("/api/export", params={"format": "csv"})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"] == 'attachment; filename="student_responses_2024-05-01.csv"'
    assert "98765 43210" in response.text

    assert admin_client.get("/api/export", params={"format": "pdf"}).status_code == 400


def test_export_requires_session(client):
    assert client.get("/api/export").status_code == 401


def test_preflight_on_every_endpoint(client):
    for path, methods in [
        ("/api/submit", "POST, OPTIONS"),
        ("/api/responses", "GET, OPTIONS"),
        ("/api/export", "GET, OPTIONS"),
        ("/api/login", "GET, POST, DELETE, OPTIONS"),
    ]:
        response = client.options(path)
        assert response.status_code == 204
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-methods"] == methods
        assert response.headers["access-control-max-age"] == "86400"


class FailingRecordStore(MemoryKVStore):

    async def put(self, key, value, ttl=None):
        if key.startswith("response:"):
            raise RuntimeError("disk full")
        await super().put(key, value, ttl=ttl)


def test_storage_failure_hides_debug_by_default(clock):
    app = create_app(kv_store=FailingRecordStore(clock), clock=clock, admin_password=ADMIN_PASSWORD, debug=False)
    with TestClient(app) as client:
        response = submit(client)
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal server error"}


def test_storage_failure_shows_debug_when_enabled(clock):
    app = create_app(kv_store=FailingRecordStore(clock), clock=clock, admin_password=ADMIN_PASSWORD, debug=True)
    with TestClient(app) as client:
        response = submit(client)
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal server error", "debug": "disk full"}
