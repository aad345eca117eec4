"""
Shared test fixtures.

- A temporary SQLite database per test (file-based, created with the model
  metadata instead of migrations)
- An in-memory counter store implementing the three Redis commands the rate
  limiter uses, with a manually advanced clock
- An httpx AsyncClient bound to the FastAPI app with both stores overridden
"""

import math

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from shortlinks.core.rate_limit import limiter
from shortlinks.db.redis_client import get_redis
from shortlinks.db.session import get_session
from shortlinks.db.sqlite_adapter import SQLiteAdapter
from shortlinks.main import app


class FakeCounterStore:
    """In-memory INCR/EXPIRE/TTL with a clock that only moves when told to."""

    def __init__(self):
        self.now = 0.0
        self.values: dict[str, int] = {}
        self.expiries: dict[str, float] = {}
        self.available = True

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def _check_available(self) -> None:
        if not self.available:
            raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    def _purge(self, key: str) -> None:
        expires_at = self.expiries.get(key)
        if expires_at is not None and expires_at <= self.now:
            self.values.pop(key, None)
            self.expiries.pop(key, None)

    async def incr(self, key: str) -> int:
        self._check_available()
        self._purge(key)
        self.values[key] = self.values.get(key, 0) + 1
        return self.values[key]

    async def expire(self, key: str, seconds: int) -> bool:
        self._check_available()
        self._purge(key)
        if key not in self.values:
            return False
        self.expiries[key] = self.now + seconds
        return True

    async def ttl(self, key: str) -> int:
        self._check_available()
        self._purge(key)
        if key not in self.values:
            return -2
        if key not in self.expiries:
            return -1
        return math.ceil(self.expiries[key] - self.now)


@pytest.fixture
def counter_store() -> FakeCounterStore:
    return FakeCounterStore()


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = SQLiteAdapter().create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(
        engine,
        class_=SQLModelAsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_maker, counter_store):
    async def override_get_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_redis] = lambda: counter_store
    limiter.reset()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()
