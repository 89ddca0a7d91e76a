"""Root conftest — test environment, async DB, fakeredis cache and seeded actors.

Invariants:
    - Environment defaults are set before any gigboard module reads settings
    - Every test gets a fresh in-memory SQLite database and a fresh fake Redis
    - The real RedisCacheStore runs on top of fakeredis.FakeAsyncRedis

Design Decisions:
    - SQLite in-memory: fast, no external dependency; FOR UPDATE is a no-op there.
      Races run in services/test_concurrency.py on a file database, where the
      SQLite write lock serializes the racers and the compare-and-set writes decide
    - StaticPool: every session shares the single in-memory connection
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("SMTP_HOST", "")

import pytest  # noqa: E402
from fakeredis import FakeAsyncRedis  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from gigboard.core.cache_keys import PaginationGrid  # noqa: E402
from gigboard.core.domain_types import AdminPermission, UserRole  # noqa: E402
from gigboard.db.base import Base  # noqa: E402
from gigboard.infrastructure.cache_store import RedisCacheStore  # noqa: E402
from gigboard.services.cache_invalidator import CacheInvalidator  # noqa: E402

from tests.seed import make_user  # noqa: E402


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def redis_client():
    client = FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def cache(redis_client):
    return RedisCacheStore(redis_client)


@pytest.fixture
def grid():
    return PaginationGrid()


@pytest.fixture
def invalidator(cache, grid):
    return CacheInvalidator(cache, grid)


# ─── Actors ──────────────────────────────────────────────────────

@pytest.fixture
async def client_actor(test_db):
    return await make_user(test_db, UserRole.CLIENT, "acme@example.com", company_name="Acme")


@pytest.fixture
async def freelancer_actor(test_db):
    return await make_user(
        test_db, UserRole.FREELANCER, "ada@example.com", title="Web developer",
        skills=["python", "react"],
    )


@pytest.fixture
async def other_freelancer(test_db):
    return await make_user(test_db, UserRole.FREELANCER, "grace@example.com")


@pytest.fixture
async def admin_actor(test_db):
    return await make_user(
        test_db, UserRole.ADMIN, "mod@example.com",
        permissions=[AdminPermission.MODERATOR.value],
    )


@pytest.fixture
async def super_admin(test_db):
    return await make_user(
        test_db, UserRole.ADMIN, "root@example.com",
        permissions=[AdminPermission.SUPER_ADMIN.value],
    )
