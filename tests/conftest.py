import pytest

from bulk_ingest.config import Settings
from tests.helpers import FakeStore, make_archive


@pytest.fixture
def settings():
    return Settings(concurrency=4, store_attempts=1, retry_backoff=0.0, list_page_size=2)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def archive():
    """Builder for in-memory archives: archive({path: value}, directories=..., compress=...)."""
    return make_archive
