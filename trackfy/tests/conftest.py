"""
Centralized Test Configuration.
"""

import random
from datetime import datetime, timezone

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from trackfy.app.main import app
from trackfy.app.core.clock import FixedClock, load_timezone
from trackfy.app.core.dependencies import get_clock, get_status_engine, get_store
from trackfy.app.db.session import init_models
from trackfy.app.domain.tracking.status_engine import StatusEngine
from trackfy.app.domain.tracking.timestamps import TimestampSynthesizer
from trackfy.app.services.record_store import JsonFileStore, SqlDocumentStore
from trackfy.app.services.tracking_service import TrackingService

# Sunday 2026-10-18 15:30 in São Paulo (UTC-3)
NOW = datetime(2026, 10, 18, 18, 30, tzinfo=timezone.utc)
SAO_PAULO = load_timezone("America/Sao_Paulo")

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# Mock Redis for the sweep lease
class MockRedis:
    def __init__(self):
        self.store = {}
        self._closed = False
        self.fail = False

    async def ping(self):
        if self._closed:
            return False
        return True

    async def set(self, key, value, ex=None, nx=False):
        if self.fail:
            raise ConnectionError("redis down")
        if self._closed:
            return False
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def delete(self, key):
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def flushdb(self):
        self.store = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


@pytest.fixture
def clock():
    return FixedClock(NOW, tz=SAO_PAULO)


@pytest.fixture
def rng():
    return random.Random(1254678)


@pytest.fixture
def synthesizer(clock, rng):
    return TimestampSynthesizer(clock=clock, rng=rng, start_hour=6, end_hour=20)


@pytest.fixture
def engine(clock, synthesizer):
    return StatusEngine(clock=clock, synthesizer=synthesizer, retention_days=30)


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "data" / "tracking-codes.json"


@pytest.fixture
def file_store(data_file, clock):
    return JsonFileStore(data_file, clock=clock)


@pytest.fixture
async def sql_session_factory():
    sql_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_models(bind=sql_engine)
    yield async_sessionmaker(sql_engine, class_=AsyncSession, expire_on_commit=False)
    await sql_engine.dispose()


@pytest.fixture
def sql_store(sql_session_factory, clock):
    return SqlDocumentStore(sql_session_factory, clock=clock)


@pytest.fixture
def service(file_store, engine):
    return TrackingService(store=file_store, engine=engine)


@pytest.fixture
def redis_client():
    return MockRedis()


@pytest.fixture
async def client(clock, file_store, engine):
    """Async client wired to the fixed clock and a temporary file store."""
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_store] = lambda: file_store
    app.dependency_overrides[get_status_engine] = lambda: engine
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides = {}
