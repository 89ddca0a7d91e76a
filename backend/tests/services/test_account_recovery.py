"""Account Recovery — password reset and pre-registration email verification."""

import pytest

from gigboard.core.domain_types import OtpPurpose, UserRole
from gigboard.core.errors import (
    AccountInactiveError, AlreadyRegisteredError, InputValidationError,
    OtpExpiredError, OtpInvalidError,
)
from gigboard.infrastructure.mailer import LogMailer
from gigboard.infrastructure.repository import EntityRepository
from gigboard.infrastructure.security import ArgonPasswordHasher, JwtTokenIssuer
from gigboard.services.account_recovery import AccountRecoveryService, reset_subject
from gigboard.services.notifications import MailOutbox
from gigboard.services.otp_ledger import OtpLedger

NEW_PASSWORD = "correct-horse"


@pytest.fixture
def mailer():
    return LogMailer()


@pytest.fixture
def ledger(cache):
    return OtpLedger(cache)


@pytest.fixture
def tokens():
    return JwtTokenIssuer("test-secret")


@pytest.fixture
def service(test_db, ledger, mailer, tokens, invalidator):
    return AccountRecoveryService(
        test_db, ledger, MailOutbox(mailer), ArgonPasswordHasher(), tokens, invalidator,
    )


def _code_from(mailer: LogMailer) -> str:
    """Six-digit code embedded in the last OTP mail."""
    text = mailer.sent[-1].text
    words = text.replace(".", " ").split()
    return next(word for word in words if word.isdigit() and len(word) == 6)


# ─── Password reset ──────────────────────────────────────────────

async def test_request_reset_mails_code(service, client_actor, mailer):
    assert await service.request_password_reset(UserRole.CLIENT, "ACME@example.com")

    assert len(mailer.sent) == 1
    assert mailer.sent[0].to == "acme@example.com"
    assert "Password Reset" in mailer.sent[0].subject


async def test_unknown_email_sends_nothing(service, mailer):
    assert not await service.request_password_reset(UserRole.CLIENT, "ghost@example.com")
    assert not mailer.sent


async def test_role_mismatch_sends_nothing(service, client_actor, mailer):
    assert not await service.request_password_reset(UserRole.FREELANCER, "acme@example.com")
    assert not mailer.sent


async def test_suspended_account_cannot_reset(service, test_db, client_actor):
    await EntityRepository(test_db).set_user_active(client_actor.user_id, False)
    await test_db.commit()

    with pytest.raises(AccountInactiveError):
        await service.request_password_reset(UserRole.CLIENT, "acme@example.com")


async def test_reset_replaces_hash_consumes_code_and_confirms(
    service, test_db, client_actor, mailer, ledger, tokens,
):
    await service.request_password_reset(UserRole.CLIENT, "acme@example.com")
    code = _code_from(mailer)

    user, token = await service.reset_password(
        UserRole.CLIENT, "acme@example.com", code, NEW_PASSWORD,
    )

    stored = await EntityRepository(test_db).find_user(client_actor.user_id)
    assert ArgonPasswordHasher().verify(NEW_PASSWORD, stored.password_hash)
    assert tokens.verify(token)["sub"] == str(user.id)
    assert "Successfully Reset" in mailer.sent[-1].subject
    subject = reset_subject(UserRole.CLIENT, "acme@example.com")
    assert not await ledger.is_verified(OtpPurpose.PASSWORD_RESET, subject)


async def test_reset_code_cannot_be_reused(service, client_actor, mailer):
    await service.request_password_reset(UserRole.CLIENT, "acme@example.com")
    code = _code_from(mailer)
    await service.reset_password(UserRole.CLIENT, "acme@example.com", code, NEW_PASSWORD)

    with pytest.raises(OtpExpiredError):
        await service.reset_password(UserRole.CLIENT, "acme@example.com", code, "another-one")


async def test_wrong_code_leaves_password_untouched(
    service, test_db, client_actor, mailer,
):
    await service.request_password_reset(UserRole.CLIENT, "acme@example.com")
    code = _code_from(mailer)
    wrong = "000000" if code != "000000" else "999999"

    with pytest.raises(OtpInvalidError):
        await service.reset_password(UserRole.CLIENT, "acme@example.com", wrong, NEW_PASSWORD)

    stored = await EntityRepository(test_db).find_user(client_actor.user_id)
    assert stored.password_hash == "not-a-real-hash"


async def test_short_password_rejected_before_code_check(service, client_actor):
    with pytest.raises(InputValidationError):
        await service.reset_password(UserRole.CLIENT, "acme@example.com", "123456", "abc")


# ─── Email verification ──────────────────────────────────────────

async def test_email_verification_round_trip(service, mailer):
    await service.send_email_verification("new.user@example.com")
    assert not await service.is_email_verified("new.user@example.com")

    await service.verify_email("new.user@example.com", _code_from(mailer))

    assert await service.is_email_verified("NEW.USER@example.com")


async def test_registered_email_cannot_be_verified_again(service, freelancer_actor):
    with pytest.raises(AlreadyRegisteredError, match="freelancer"):
        await service.send_email_verification("ada@example.com")
