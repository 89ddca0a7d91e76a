"""Account Service — signup for both roles and uniform login failures."""

import pytest

from gigboard.core import cache_keys as ck
from gigboard.core.domain_types import OtpPurpose, UserRole
from gigboard.core.errors import (
    AccountInactiveError, AlreadyRegisteredError, InputValidationError,
    InvalidCredentialsError,
)
from gigboard.infrastructure.repository import EntityRepository
from gigboard.infrastructure.security import ArgonPasswordHasher, JwtTokenIssuer
from gigboard.services.accounts import AccountService
from gigboard.services.otp_ledger import OtpLedger
from gigboard.services.read_views import ReadViews

PASSWORD = "correct-horse"


@pytest.fixture
def ledger(cache):
    return OtpLedger(cache)


@pytest.fixture
def tokens():
    return JwtTokenIssuer("test-secret")


@pytest.fixture
def service(test_db, ledger, tokens, invalidator):
    return AccountService(test_db, ledger, ArgonPasswordHasher(), tokens, invalidator)


# ─── Signup ──────────────────────────────────────────────────────

async def test_client_signup_creates_user_and_profile(service, test_db, tokens):
    client, token = await service.register_client(
        "Acme Corp", " Acme@Example.com ", PASSWORD,
        company_name="Acme", industry="Retail", location="Lisbon",
    )

    assert client.user.email == "acme@example.com"
    assert client.user.role == UserRole.CLIENT.value
    assert client.user.is_verified is False
    assert client.industry == "Retail"
    assert client.user.location == "Lisbon"
    assert tokens.verify(token)["sub"] == str(client.user_id)
    stored = await EntityRepository(test_db).find_client_by_user(client.user_id)
    assert stored.company_name == "Acme"


async def test_freelancer_signup_keeps_skills_and_rate(service):
    freelancer, _ = await service.register_freelancer(
        "Ada", "ada@example.com", PASSWORD,
        title="Backend developer", skills=["python", "sql"], hourly_rate=55.0,
    )

    assert freelancer.skills == ["python", "sql"]
    assert freelancer.hourly_rate == 55.0
    assert freelancer.user.role == UserRole.FREELANCER.value


async def test_duplicate_email_is_rejected(service, client_actor):
    with pytest.raises(AlreadyRegisteredError):
        await service.register_freelancer("Acme again", "ACME@example.com", PASSWORD)


async def test_short_password_is_rejected(service):
    with pytest.raises(InputValidationError) as exc_info:
        await service.register_client("Short", "short@example.com", "12345")
    assert exc_info.value.field == "password"


async def test_verified_email_signs_up_verified(service, ledger):
    code = await ledger.issue(OtpPurpose.EMAIL_VERIFICATION, "new@example.com")
    await ledger.check(OtpPurpose.EMAIL_VERIFICATION, "new@example.com", code)

    client, _ = await service.register_client("New", "new@example.com", PASSWORD)

    assert client.user.is_verified is True
    assert not await ledger.is_verified(OtpPurpose.EMAIL_VERIFICATION, "new@example.com")


async def test_signup_refreshes_platform_stats(service, test_db, cache, grid):
    views = ReadViews(test_db, cache, grid)
    assert (await views.platform_stats()).data["clients"] == 0

    await service.register_client("Acme", "acme@example.com", PASSWORD)

    assert await cache.get(ck.PUBLIC_STATS.key()) is None
    assert (await views.platform_stats()).data["clients"] == 1


# ─── Login ───────────────────────────────────────────────────────

async def test_login_returns_token(service, tokens):
    client, _ = await service.register_client("Acme", "acme@example.com", PASSWORD)

    user, token = await service.login(UserRole.CLIENT, "acme@example.com", PASSWORD)

    assert user.id == client.user_id
    assert tokens.verify(token)["role"] == UserRole.CLIENT.value


@pytest.mark.parametrize("role, email, password", [
    (UserRole.CLIENT, "ghost@example.com", PASSWORD),
    (UserRole.FREELANCER, "acme@example.com", PASSWORD),
    (UserRole.CLIENT, "acme@example.com", "wrong-password"),
])
async def test_login_failures_look_the_same(service, role, email, password):
    await service.register_client("Acme", "acme@example.com", PASSWORD)

    with pytest.raises(InvalidCredentialsError) as exc_info:
        await service.login(role, email, password)
    assert exc_info.value.message == "Invalid credentials"


async def test_suspended_account_cannot_log_in(service, test_db):
    client, _ = await service.register_client("Acme", "acme@example.com", PASSWORD)
    await EntityRepository(test_db).set_user_active(client.user_id, False)
    await test_db.commit()

    with pytest.raises(AccountInactiveError):
        await service.login(UserRole.CLIENT, "acme@example.com", PASSWORD)
