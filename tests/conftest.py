"""
Pytest configuration and shared fixtures.
"""

import pytest

from profile_card.cache import BoundedTTLCache
from profile_card.config import Settings
from profile_card.remote_cache import reset_remote_cache
from tests.helpers import FakeClock


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the process environment and .env file."""
    return Settings(
        _env_file=None,
        github_token="test-token",
        upstash_redis_rest_url=None,
        upstash_redis_rest_token=None,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> BoundedTTLCache:
    return BoundedTTLCache(default_ttl=1800, max_size=500, clock=clock)


@pytest.fixture(autouse=True)
def _reset_remote_cache():
    reset_remote_cache()
    yield
    reset_remote_cache()
