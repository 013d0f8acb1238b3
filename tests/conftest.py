"""Shared fixtures: a controllable clock, an in-memory store and an app wired to both."""

import os

os.environ["KV_BACKEND"] = "memory"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_student_form.db")

import json
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from main import create_app
from repositories.kv_store import MemoryKVStore
from repositories.record_repository import RecordRepository
from schemas.record_schema import Record
from utils.dates import iso_timestamp

START = datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)
ADMIN_PASSWORD = "secret"

VALID_FORM = {
    "name": "Aarav Sharma",
    "dob": "2010-06-15",
    "mobile": "9876543210",
    "father": "Rohan Sharma",
    "nationalId": "234123412340",
}


class FakeClock:

    def __init__(self, start: datetime = START):
        self.now = start.timestamp()

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingKVStore(MemoryKVStore):
    """Memory store that counts reads"""

    def __init__(self, clock):
        super().__init__(clock)
        self.reads = 0

    async def get(self, key, as_json=False):
        self.reads += 1
        return await super().get(key, as_json=as_json)


def make_record(index: int, **overrides) -> Record:
    moment = datetime.fromtimestamp(START.timestamp() + index * 60, tz=timezone.utc)
    fields = {
        "id": f"resp_test_{index:04d}",
        "name": f"Student {index:04d}",
        "dob": "2010-01-01",
        "mobile": f"98{index:08d}",
        "father": f"Father {index:04d}",
        "national_id": "234123412340",
        "timestamp": iso_timestamp(moment),
        "ip": "10.0.0.1",
    }
    fields.update(overrides)
    return Record(**fields)


async def store_records(kv, records) -> None:
    for record in records:
        await RecordRepository.save_record(kv, record)
        await RecordRepository.append_to_index(kv, record.id)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kv(clock):
    return CountingKVStore(clock)


@pytest.fixture
def app(kv, clock):
    return create_app(kv_store=kv, clock=clock, admin_password=ADMIN_PASSWORD)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_client(client):
    response = client.post("/api/login", content=json.dumps({"password": ADMIN_PASSWORD}))
    assert response.status_code == 200
    return client


@pytest.fixture
def valid_form():
    return dict(VALID_FORM)
