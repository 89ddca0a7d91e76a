"""OTP Ledger — issue, check and consume one-time codes held in the cache store.

Invariants:
    - One live record per (purpose, subject); issuing again overwrites it
    - A rate-limit flag blocks re-issue for rate_limit_seconds (OtpRateLimitedError)
    - Attempts are counted in a separate Redis counter (INCR): each check reserves its
      attempt number before comparing codes, so concurrent guesses cannot exceed
      max_attempts; exhausting it deletes the record and the counter
    - A wrong code leaves the record and its TTL untouched, so retries never extend
      the validity window
    - A counter the cache cannot increment fails closed (OtpExpiredError)
    - A missing record is OtpExpiredError: expired, consumed and exhausted look the same
    - A correct code marks the record verified and extends it by the purpose's grace TTL
"""

import logging

from gigboard.config import Settings
from gigboard.core.cache_keys import otp_attempts_key, otp_entry_key, otp_rate_limit_key
from gigboard.core.domain_types import OtpPurpose
from gigboard.core.errors import (
    OtpAttemptsExhaustedError, OtpExpiredError, OtpInvalidError, OtpRateLimitedError,
)
from gigboard.core.otp_state import (
    AttemptOutcome, OtpRecord, attempts_left, grace_ttl, judge_attempt, new_record,
)
from gigboard.core.repository_protocols import CacheStore

logger = logging.getLogger(__name__)


class OtpLedger:
    def __init__(
        self,
        store: CacheStore,
        ttl_seconds: int = 600,
        max_attempts: int = 3,
        rate_limit_seconds: int = 120,
        password_reset_grace_seconds: int = 900,
        email_verification_grace_seconds: int = 1800,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.max_attempts = max_attempts
        self.rate_limit_seconds = rate_limit_seconds
        self.password_reset_grace_seconds = password_reset_grace_seconds
        self.email_verification_grace_seconds = email_verification_grace_seconds

    @classmethod
    def from_settings(cls, store: CacheStore, settings: Settings) -> "OtpLedger":
        return cls(
            store,
            ttl_seconds=settings.otp_ttl_seconds,
            max_attempts=settings.otp_max_attempts,
            rate_limit_seconds=settings.otp_rate_limit_seconds,
            password_reset_grace_seconds=settings.otp_password_reset_grace_seconds,
            email_verification_grace_seconds=settings.otp_email_verification_grace_seconds,
        )

    async def issue(self, purpose: OtpPurpose, subject: str) -> str:
        """Store a fresh code for subject and return it for delivery."""
        rate_key = otp_rate_limit_key(purpose, subject)
        if await self.store.get(rate_key):
            retry_after = await self.store.ttl(rate_key) or self.rate_limit_seconds
            raise OtpRateLimitedError(retry_after)
        record = new_record()
        await self.store.delete(otp_attempts_key(purpose, subject))
        await self.store.set(
            otp_entry_key(purpose, subject), record.to_dict(), self.ttl_seconds,
        )
        await self.store.set(rate_key, True, self.rate_limit_seconds)
        logger.info("OTP issued", extra={"purpose": purpose.value})
        return record.code

    async def check(self, purpose: OtpPurpose, subject: str, code: str) -> OtpRecord:
        """Verify a submitted code. Returns the verified record or raises."""
        key = otp_entry_key(purpose, subject)
        record = await self._load(key)
        if record is None:
            raise OtpExpiredError()
        attempts_key = otp_attempts_key(purpose, subject)
        attempt = await self.store.incr(attempts_key, self._counter_ttl())
        if attempt is None:
            raise OtpExpiredError()
        outcome, updated = judge_attempt(record, code, attempt, self.max_attempts)
        if outcome == AttemptOutcome.EXHAUSTED:
            await self.store.delete_many([key, attempts_key])
            logger.warning("OTP attempts exhausted", extra={"purpose": purpose.value})
            raise OtpAttemptsExhaustedError()
        if outcome == AttemptOutcome.WRONG_CODE:
            raise OtpInvalidError(attempts_left(updated, self.max_attempts))
        await self.store.set(key, updated.to_dict(), self._grace(purpose))
        return updated

    async def is_verified(self, purpose: OtpPurpose, subject: str) -> bool:
        record = await self._load(otp_entry_key(purpose, subject))
        return record is not None and record.verified

    async def consume(self, purpose: OtpPurpose, subject: str) -> None:
        await self.store.delete_many([
            otp_entry_key(purpose, subject), otp_attempts_key(purpose, subject),
        ])

    async def _load(self, key: str) -> OtpRecord | None:
        data = await self.store.get(key)
        if not data:
            return None
        try:
            return OtpRecord.from_dict(data)
        except (KeyError, TypeError, ValueError):
            logger.warning("Discarding malformed OTP record", extra={"cache_key": key})
            return None

    def _grace(self, purpose: OtpPurpose) -> int:
        return grace_ttl(
            purpose,
            self.password_reset_grace_seconds,
            self.email_verification_grace_seconds,
        )

    def _counter_ttl(self) -> int:
        # outlives the record and its grace window; issue() resets it
        return self.ttl_seconds + max(
            self.password_reset_grace_seconds, self.email_verification_grace_seconds,
        )
