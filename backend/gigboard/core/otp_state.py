"""OTP State — pure verification rules for one-time codes.

Invariants:
    - A record is created with attempts=0 and verified=False
    - A wrong code increments attempts; reaching max_attempts exhausts the record
    - An attempt numbered past max_attempts is exhausted even with the right code
    - A correct code marks the record verified (verified_at set) and never resets attempts
    - Functions are PURE: they return new records and outcomes, the ledger does IO

Design Decisions:
    - Codes come from `secrets` (6 digits, leading zeros kept) rather than `random`
    - Records are plain dicts in the cache (JSON); to_dict/from_dict are the only codec
"""

import secrets
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum

from gigboard.core.domain_types import OtpPurpose

OTP_DIGITS = 6


@dataclass(frozen=True)
class OtpRecord:
    code: str
    created_at: datetime
    attempts: int = 0
    verified: bool = False
    verified_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "created_at": self.created_at.isoformat(),
            "attempts": self.attempts,
            "verified": self.verified,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OtpRecord":
        verified_at = data.get("verified_at")
        return cls(
            code=str(data["code"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            attempts=int(data.get("attempts", 0)),
            verified=bool(data.get("verified", False)),
            verified_at=datetime.fromisoformat(verified_at) if verified_at else None,
        )


class AttemptOutcome(str, Enum):
    VERIFIED = "verified"
    WRONG_CODE = "wrong_code"
    EXHAUSTED = "exhausted"


def generate_code() -> str:
    return f"{secrets.randbelow(10 ** OTP_DIGITS):0{OTP_DIGITS}d}"


def new_record(code: str | None = None, now: datetime | None = None) -> OtpRecord:
    return OtpRecord(
        code=code or generate_code(),
        created_at=now or datetime.now(timezone.utc),
    )


def judge_attempt(
    record: OtpRecord,
    submitted: str,
    attempt: int,
    max_attempts: int,
    now: datetime | None = None,
) -> tuple[AttemptOutcome, OtpRecord]:
    """Judge the attempt-th submission. Attempt numbers are reserved by the caller
    before comparing, so no more than max_attempts comparisons are ever made."""
    if attempt > max_attempts:
        return AttemptOutcome.EXHAUSTED, replace(record, attempts=attempt)
    if secrets.compare_digest(str(submitted).strip(), record.code):
        verified = replace(
            record, verified=True, verified_at=now or datetime.now(timezone.utc),
        )
        return AttemptOutcome.VERIFIED, verified
    updated = replace(record, attempts=attempt)
    if attempt >= max_attempts:
        return AttemptOutcome.EXHAUSTED, updated
    return AttemptOutcome.WRONG_CODE, updated


def attempts_left(record: OtpRecord, max_attempts: int) -> int:
    return max(max_attempts - record.attempts, 0)


def grace_ttl(purpose: OtpPurpose, password_reset: int, email_verification: int) -> int:
    """TTL a verified record keeps while the dependent action completes."""
    if purpose == OtpPurpose.PASSWORD_RESET:
        return password_reset
    return email_verification
