"""Account Recovery — password reset and email verification over the OTP ledger.

Invariants:
    - Password reset: code verified -> password re-hashed -> code consumed, in that order;
      the confirmation mail is queued after the password commit and flushed last
    - Unknown (or wrong-role) emails get the same answer as known ones on request, so the
      endpoint cannot be used to discover accounts
    - Email verification codes are only issued for addresses not yet registered
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from gigboard.core.domain_types import OtpPurpose, UserRole
from gigboard.core.errors import (
    AccountInactiveError, AlreadyRegisteredError, ResourceNotFoundError,
)
from gigboard.core.invalidation_plan import MutationContext, MutationKind
from gigboard.core.repository_protocols import PasswordHasher
from gigboard.infrastructure.database import transaction
from gigboard.infrastructure.repository import EntityRepository
from gigboard.infrastructure.security import JwtTokenIssuer
from gigboard.models import User
from gigboard.services.accounts import validate_password
from gigboard.services.cache_invalidator import CacheInvalidator
from gigboard.services.notifications import MailOutbox, otp_message, password_changed_message
from gigboard.services.otp_ledger import OtpLedger

logger = logging.getLogger(__name__)


def reset_subject(role: UserRole, email: str) -> str:
    return f"{role.value}:{email.strip().lower()}"


class AccountRecoveryService:
    def __init__(
        self,
        db: AsyncSession,
        ledger: OtpLedger,
        outbox: MailOutbox,
        hasher: PasswordHasher,
        tokens: JwtTokenIssuer,
        invalidator: CacheInvalidator,
    ):
        self.db = db
        self.repo = EntityRepository(db)
        self.ledger = ledger
        self.outbox = outbox
        self.hasher = hasher
        self.tokens = tokens
        self.invalidator = invalidator

    # ─── Password reset ──────────────────────────────────────────

    async def request_password_reset(self, role: UserRole, email: str) -> bool:
        """Issue a reset code. Returns False (silently) for unknown accounts."""
        user = await self.repo.find_user_by_email(email)
        if user is None or user.role != role.value:
            logger.info("Password reset requested for unknown account")
            return False
        if not user.is_active:
            raise AccountInactiveError("Account is suspended. Please contact support.")
        code = await self.ledger.issue(OtpPurpose.PASSWORD_RESET, reset_subject(role, email))
        self.outbox.enqueue(otp_message(
            OtpPurpose.PASSWORD_RESET, user.email, code, self.ledger.ttl_seconds, user.name,
        ))
        await self.outbox.flush()
        return True

    async def reset_password(
        self, role: UserRole, email: str, code: str, new_password: str,
    ) -> tuple[User, str]:
        """Verify the code, store the new password and return (user, fresh token)."""
        validate_password(new_password, "new_password")
        subject = reset_subject(role, email)
        await self.ledger.check(OtpPurpose.PASSWORD_RESET, subject, code)
        user = await self.repo.find_user_by_email(email)
        if user is None or user.role != role.value:
            raise ResourceNotFoundError(f"{role.value.title()} account", email)
        if not user.is_active:
            raise AccountInactiveError("Account is suspended. Please contact support.")
        async with transaction(self.db):
            await self.repo.set_password_hash(user.id, self.hasher.hash(new_password))
        await self.ledger.consume(OtpPurpose.PASSWORD_RESET, subject)
        await self.invalidator.invalidate(
            MutationKind.PASSWORD_CHANGED, MutationContext(subject_user_id=user.id),
        )
        self.outbox.enqueue(password_changed_message(user.email, user.name, role))
        await self.outbox.flush()
        logger.info("Password reset completed", extra={"user_id": str(user.id)})
        return user, self.tokens.issue_access_token(user.id, user.role)

    # ─── Email verification ──────────────────────────────────────

    async def send_email_verification(self, email: str) -> None:
        await self._ensure_unregistered(email)
        code = await self.ledger.issue(OtpPurpose.EMAIL_VERIFICATION, email)
        self.outbox.enqueue(otp_message(
            OtpPurpose.EMAIL_VERIFICATION, email.strip().lower(), code,
            self.ledger.ttl_seconds,
        ))
        await self.outbox.flush()

    async def verify_email(self, email: str, code: str) -> None:
        await self._ensure_unregistered(email)
        await self.ledger.check(OtpPurpose.EMAIL_VERIFICATION, email, code)

    async def is_email_verified(self, email: str) -> bool:
        return await self.ledger.is_verified(OtpPurpose.EMAIL_VERIFICATION, email)

    async def _ensure_unregistered(self, email: str) -> None:
        user = await self.repo.find_user_by_email(email)
        if user is not None:
            raise AlreadyRegisteredError(user.role)
