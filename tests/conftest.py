"""
Test infrastructure for the MiniBoard API.

Strategy
--------
- SECRET_KEY has no default, so a test secret is put in the environment
  before anything imports ``miniboard.config``. BCRYPT_ROUNDS drops to the
  bcrypt minimum to keep registration and login fast.
- SQLite in-memory via aiosqlite with StaticPool, so every session shares
  the one connection that holds the database. Foreign keys are switched on
  for that connection so the ON DELETE CASCADE clauses are enforced.
- The app's get_db dependency is overridden with the test session factory.
- All tables are created before each test and dropped after.
- Redis is disabled by setting cache._redis = None; every cache call then
  degrades to a no-op and the services always hit the database. The
  redis_cache fixture swaps in fakeredis for tests that need a live cache.
"""
import os

os.environ.setdefault("SECRET_KEY", "test-signing-secret-0123456789abcdef")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest_asyncio
from fakeredis import aioredis as fake_aioredis
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from miniboard.cache import cache
from miniboard.database import Base, get_db
from miniboard.main import app
from miniboard.middleware import install_query_counter

# ---------------------------------------------------------------------------
# Test database engine — SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)


@event.listens_for(engine_test.sync_engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            cache.discard_pending(session)
            raise
        await cache.invalidate_pending(session)


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    cache._redis = None
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A live AsyncSession for seeding data or calling services directly."""
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def redis_cache():
    """The shared cache manager backed by an in-process fake Redis."""
    client = fake_aioredis.FakeRedis(decode_responses=True)
    cache._redis = client
    yield cache
    cache._redis = None
    await client.aclose()
