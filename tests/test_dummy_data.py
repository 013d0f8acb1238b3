from dummy_data import fake_mobile, fake_national_id, fake_submission, seed
from repositories.record_repository import RecordRepository
from utils.dates import utc_today
from utils.validators import validate_all, validate_mobile, validate_national_id


def test_generated_values_pass_validation():
    for _ in range(50):
        assert validate_mobile(fake_mobile())
        assert validate_national_id(fake_national_id())
        assert validate_all(fake_submission(), today=utc_today()) == []


async def test_seed_goes_through_submission_pipeline(kv):
    created = await seed(kv, 15)
    assert len(created) == 15
    assert await RecordRepository.get_index(kv) == created
    assert (await RecordRepository.get_stats(kv)).total == 15
