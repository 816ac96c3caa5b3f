from datetime import datetime, timedelta

import fakeredis
import pytest
from helpers import FIXED_NOW, FakeClock

from moodwatch.models.content import ContentItem
from moodwatch.services.result_cache import ResultCache


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def make_item():
    def _make(item_id: int = 1, **overrides) -> ContentItem:
        data = {
            "id": item_id,
            "content_type": "movie",
            "genres": [28],
            "vote_average": 7.0,
            "popularity": 20.0,
            "release_date": (FIXED_NOW.date() - timedelta(days=400)).isoformat(),
            "title": f"Title {item_id}",
        }
        data.update(overrides)
        return ContentItem.model_validate(data)

    return _make


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def redis_server() -> fakeredis.FakeServer:
    return fakeredis.FakeServer()


@pytest.fixture
def make_cache(redis_server, clock):
    """Build a ResultCache on an in-memory Redis. Call inside the running event loop."""

    def _make(**kwargs) -> ResultCache:
        kwargs.setdefault("namespace", "TestDiscoveryCache")
        kwargs.setdefault("clock", clock)
        return ResultCache(
            client_factory=lambda: fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True),
            **kwargs,
        )

    return _make
