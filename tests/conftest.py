import pytest

from batchdb._private.backoff import ExponentialBackoff
from batchdb.storage.local_storage import LocalService
from fakes import RecordingSleep


@pytest.fixture
def sleeps():
    return RecordingSleep()


@pytest.fixture
def backoff_factory(sleeps):
    return lambda: ExponentialBackoff(base=0.01, cap=0.1, sleep=sleeps)


@pytest.fixture
def local():
    service = LocalService()
    service.create_table("users", "id")
    service.create_table("events", "user", "ts")
    return service
