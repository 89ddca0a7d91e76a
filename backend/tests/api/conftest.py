"""API test fixtures — the real app over httpx ASGITransport with test infrastructure.

Invariants:
    - get_db, get_cache_store and get_mailer are overridden; everything else is the
      production wiring (actor resolution, services, error handlers)
    - Tokens are signed by the same issuer the app verifies with
"""

import pytest
from httpx import ASGITransport, AsyncClient

from gigboard.api.deps import get_token_issuer
from gigboard.infrastructure import cache_store as cache_module
from gigboard.infrastructure import database as db_module
from gigboard.infrastructure.cache_store import get_cache_store
from gigboard.infrastructure.database import get_db
from gigboard.infrastructure.mailer import LogMailer, get_mailer
from gigboard.main import app


class _ReachableDatabase:
    async def health_check(self) -> bool:
        return True


@pytest.fixture
def mailer():
    return LogMailer()


@pytest.fixture
async def api(test_db, cache, mailer, monkeypatch):
    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache_store] = lambda: cache
    app.dependency_overrides[get_mailer] = lambda: mailer
    monkeypatch.setattr(db_module, "db_manager", _ReachableDatabase())
    monkeypatch.setattr(cache_module, "cache_store", cache)
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    """Build an Authorization header for a seeded actor."""
    tokens = get_token_issuer()

    def headers(actor) -> dict:
        token = tokens.issue_access_token(actor.user_id, actor.role.value)
        return {"Authorization": f"Bearer {token}"}
    return headers
