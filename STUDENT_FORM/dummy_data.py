import argparse
import asyncio
import json
import logging
import random
from datetime import timedelta
from faker import Faker
from core.database import Base, engine
from repositories.kv_store import KVStore, get_kv_store
from services.rate_limiter import RateLimiter
from services.submission_service import SubmissionService
from utils.dates import utc_today
from utils.validators import national_id_check_digit
import models.kv_entry

logger = logging.getLogger(__name__)

MIN_AGE = 5
MAX_AGE = 25

fake = Faker("en_IN")


def fake_national_id() -> str:
    # leading digit 2-9, the way issued numbers look
    first_eleven = str(random.randint(2, 9)) + "".join(str(random.randint(0, 9)) for _ in range(10))
    return first_eleven + str(national_id_check_digit(first_eleven))


def fake_mobile() -> str:
    return str(random.choice("6789")) + "".join(str(random.randint(0, 9)) for _ in range(9))


def fake_submission() -> dict:
    age_days = random.randint(MIN_AGE * 365, MAX_AGE * 365)
    surname = fake.last_name()
    return {
        "name": f"{fake.first_name()} {surname}",
        "dob": (utc_today() - timedelta(days=age_days)).isoformat(),
        "mobile": fake_mobile(),
        "father": f"{fake.first_name_male()} {surname}",
        "nationalId": fake_national_id(),
    }


async def seed(kv: KVStore, count: int) -> list:
    # seeding is not subject to the public submission limit
    service = SubmissionService(kv, RateLimiter(count + 1, 60, name="seed"))
    created = []
    for _ in range(count):
        body = json.dumps(fake_submission()).encode()
        result = await service.submit(body, client_ip=fake.ipv4(), user_agent=fake.user_agent())
        created.append(result["id"])
    logger.info(f"Seeded {len(created)} submissions")
    return created


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    parser = argparse.ArgumentParser(description="Fill the store with fake form submissions")
    parser.add_argument("--count", type=int, default=100)
    args = parser.parse_args()

    Base.metadata.create_all(bind=engine, checkfirst=True)
    asyncio.run(seed(get_kv_store(), args.count))
