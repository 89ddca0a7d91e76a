"""OTP Ledger — issue, rate limit, attempt counting and grace window."""

import asyncio

import pytest

from gigboard.core.cache_keys import otp_attempts_key, otp_entry_key, otp_rate_limit_key
from gigboard.core.domain_types import OtpPurpose
from gigboard.core.errors import (
    OtpAttemptsExhaustedError, OtpExpiredError, OtpInvalidError, OtpRateLimitedError,
)
from gigboard.services.otp_ledger import OtpLedger

SUBJECT = "CLIENT:ada@example.com"
RESET = OtpPurpose.PASSWORD_RESET


@pytest.fixture
def ledger(cache):
    return OtpLedger(cache, ttl_seconds=600, max_attempts=3, rate_limit_seconds=120)


def _wrong(code: str) -> str:
    return "000000" if code != "000000" else "111111"


async def test_issue_stores_six_digit_code(ledger, cache):
    code = await ledger.issue(RESET, SUBJECT)

    assert len(code) == 6 and code.isdigit()
    record = await cache.get(otp_entry_key(RESET, SUBJECT))
    assert record["code"] == code
    assert record["attempts"] == 0
    assert 0 < await cache.ttl(otp_entry_key(RESET, SUBJECT)) <= 600


async def test_reissue_within_window_is_rate_limited(ledger, cache):
    await ledger.issue(RESET, SUBJECT)

    with pytest.raises(OtpRateLimitedError) as exc_info:
        await ledger.issue(RESET, SUBJECT)
    assert 0 < exc_info.value.context.retry_after_seconds <= 120

    await cache.delete(otp_rate_limit_key(RESET, SUBJECT))
    assert await ledger.issue(RESET, SUBJECT)


async def test_purposes_are_independent(ledger):
    await ledger.issue(RESET, SUBJECT)
    assert await ledger.issue(OtpPurpose.EMAIL_VERIFICATION, SUBJECT)


async def test_wrong_code_counts_attempts_then_exhausts(ledger):
    code = await ledger.issue(RESET, SUBJECT)

    with pytest.raises(OtpInvalidError) as first:
        await ledger.check(RESET, SUBJECT, _wrong(code))
    assert first.value.attempts_left == 2
    with pytest.raises(OtpInvalidError) as second:
        await ledger.check(RESET, SUBJECT, _wrong(code))
    assert second.value.attempts_left == 1
    with pytest.raises(OtpAttemptsExhaustedError):
        await ledger.check(RESET, SUBJECT, _wrong(code))

    with pytest.raises(OtpExpiredError):
        await ledger.check(RESET, SUBJECT, code)


async def test_wrong_code_keeps_remaining_ttl(ledger, cache, redis_client):
    code = await ledger.issue(RESET, SUBJECT)
    key = otp_entry_key(RESET, SUBJECT)
    await redis_client.expire(key, 42)

    with pytest.raises(OtpInvalidError):
        await ledger.check(RESET, SUBJECT, _wrong(code))

    assert 0 < await cache.ttl(key) <= 42


async def test_correct_code_verifies_and_extends_by_grace(ledger, cache):
    code = await ledger.issue(RESET, SUBJECT)

    record = await ledger.check(RESET, SUBJECT, code)

    assert record.verified
    assert record.verified_at is not None
    assert await ledger.is_verified(RESET, SUBJECT)
    assert await cache.ttl(otp_entry_key(RESET, SUBJECT)) > 600


async def test_consume_removes_record(ledger):
    code = await ledger.issue(RESET, SUBJECT)
    await ledger.check(RESET, SUBJECT, code)

    await ledger.consume(RESET, SUBJECT)

    assert not await ledger.is_verified(RESET, SUBJECT)
    with pytest.raises(OtpExpiredError):
        await ledger.check(RESET, SUBJECT, code)


async def test_unknown_subject_is_expired(ledger):
    with pytest.raises(OtpExpiredError):
        await ledger.check(RESET, "FREELANCER:nobody@example.com", "123456")


async def test_malformed_record_is_treated_as_missing(ledger, cache):
    await cache.set(otp_entry_key(RESET, SUBJECT), {"unexpected": True}, 60)
    with pytest.raises(OtpExpiredError):
        await ledger.check(RESET, SUBJECT, "123456")


async def test_parallel_wrong_guesses_cannot_exceed_the_limit(ledger):
    code = await ledger.issue(RESET, SUBJECT)

    results = await asyncio.gather(
        *(ledger.check(RESET, SUBJECT, _wrong(code)) for _ in range(10)),
        return_exceptions=True,
    )

    invalid = [r for r in results if isinstance(r, OtpInvalidError)]
    exhausted = [r for r in results if isinstance(r, OtpAttemptsExhaustedError)]
    assert len(invalid) <= 2
    assert exhausted
    assert all(
        isinstance(r, (OtpInvalidError, OtpAttemptsExhaustedError, OtpExpiredError))
        for r in results
    )
    with pytest.raises(OtpExpiredError):
        await ledger.check(RESET, SUBJECT, code)


async def test_right_code_after_the_limit_is_refused(ledger, cache):
    code = await ledger.issue(RESET, SUBJECT)
    await cache.incr(otp_attempts_key(RESET, SUBJECT), 60)
    await cache.incr(otp_attempts_key(RESET, SUBJECT), 60)
    await cache.incr(otp_attempts_key(RESET, SUBJECT), 60)

    with pytest.raises(OtpAttemptsExhaustedError):
        await ledger.check(RESET, SUBJECT, code)
    assert not await ledger.is_verified(RESET, SUBJECT)


async def test_reissue_resets_the_attempt_counter(ledger, cache):
    code = await ledger.issue(RESET, SUBJECT)
    with pytest.raises(OtpInvalidError):
        await ledger.check(RESET, SUBJECT, _wrong(code))
    await cache.delete(otp_rate_limit_key(RESET, SUBJECT))

    code = await ledger.issue(RESET, SUBJECT)

    with pytest.raises(OtpInvalidError) as exc_info:
        await ledger.check(RESET, SUBJECT, _wrong(code))
    assert exc_info.value.attempts_left == 2
