"""
Test Suite Configuration
"""
import fnmatch
from typing import AsyncGenerator, Dict, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from mediatrack.analytics import SummaryEngine
from mediatrack.config import Settings
from mediatrack.config.settings import BooksSettings, MoviesSettings
from mediatrack.database.connection import create_engine, create_schema, create_session_factory
from mediatrack.database.models import MetadataLot
from mediatrack.database.store import EntityStore
from mediatrack.serving.api.context import AppContext, build_services


class FakeRedis:
    """In-memory stand-in for the subset of ``redis.asyncio.Redis`` the cache uses"""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> bool:
        self.data[key] = value
        return True

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self.ttls[key] = ttl
        return await self.set(key, value)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def keys(self, pattern: str):
        return [key for key in self.data if fnmatch.fnmatch(key, pattern)]


@pytest.fixture
def test_settings() -> Settings:
    """Books on, movies off, everything else default"""
    return Settings(
        app_env="testing",
        debug=True,
        books=BooksSettings(enabled=True),
        movies=MoviesSettings(enabled=False),
    )


@pytest.fixture
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """File backed SQLite database with foreign keys enforced"""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'mediatrack.db'}")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return create_session_factory(test_engine)


@pytest.fixture
async def store(session_factory) -> AsyncGenerator[EntityStore, None]:
    store = EntityStore(session_factory)
    yield store
    await store.drain()


@pytest.fixture
def summaries(store) -> SummaryEngine:
    return SummaryEngine(store)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def make_context(store, summaries, test_settings, fake_redis):
    """Factory for GraphQL contexts; pass ``settings`` to override the defaults"""

    def factory(settings: Optional[Settings] = None, cache=fake_redis) -> AppContext:
        settings = settings or test_settings
        return AppContext(
            store=store,
            summaries=summaries,
            settings=settings,
            services=build_services(store, settings, cache),
            cache=cache,
        )

    return factory


@pytest.fixture
async def user(store):
    return await store.create_user("ignisda", "secret")


@pytest.fixture
async def book(store):
    return await store.create_metadata(
        MetadataLot.BOOK,
        "The Name of the Wind",
        publish_year=2007,
        specifics={"pages": 662},
    )
