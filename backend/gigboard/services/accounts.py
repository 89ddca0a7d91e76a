"""Account Service — signup and login for every role.

Invariants:
    - Signup creates the user and its role profile in one transaction; a duplicate email
      is AlreadyRegisteredError, whether caught by the pre-check or the unique constraint
    - An address whose email-verification code was confirmed signs up verified, and the
      verification record is consumed
    - Login answers the same InvalidCredentialsError for an unknown email, a wrong role
      and a wrong password; a suspended account is AccountInactiveError
    - Admin accounts are never created here
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gigboard.core.domain_types import OtpPurpose, UserRole
from gigboard.core.errors import (
    AccountInactiveError, AlreadyRegisteredError, InputValidationError,
    InvalidCredentialsError,
)
from gigboard.core.invalidation_plan import MutationContext, MutationKind
from gigboard.core.repository_protocols import PasswordHasher
from gigboard.infrastructure.database import transaction
from gigboard.infrastructure.repository import EntityRepository
from gigboard.infrastructure.security import JwtTokenIssuer
from gigboard.models import Client, Freelancer, User
from gigboard.services.cache_invalidator import CacheInvalidator
from gigboard.services.otp_ledger import OtpLedger

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def validate_password(password: str | None, field: str = "password") -> str:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise InputValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long", field,
        )
    return password


class AccountService:
    def __init__(
        self,
        db: AsyncSession,
        ledger: OtpLedger,
        hasher: PasswordHasher,
        tokens: JwtTokenIssuer,
        invalidator: CacheInvalidator,
    ):
        self.db = db
        self.repo = EntityRepository(db)
        self.ledger = ledger
        self.hasher = hasher
        self.tokens = tokens
        self.invalidator = invalidator

    async def register_client(
        self,
        name: str,
        email: str,
        password: str,
        *,
        company_name: str | None = None,
        industry: str | None = None,
        website: str | None = None,
        bio: str | None = None,
        location: str | None = None,
    ) -> tuple[Client, str]:
        user = await self._new_user(
            UserRole.CLIENT, name, email, password, bio=bio, location=location,
        )
        profile = Client(company_name=company_name, industry=industry, website=website)
        return await self._finish_signup(user, profile)

    async def register_freelancer(
        self,
        name: str,
        email: str,
        password: str,
        *,
        title: str | None = None,
        skills: list[str] | None = None,
        hourly_rate: float | None = None,
        bio: str | None = None,
        location: str | None = None,
    ) -> tuple[Freelancer, str]:
        user = await self._new_user(
            UserRole.FREELANCER, name, email, password, bio=bio, location=location,
        )
        profile = Freelancer(title=title, skills=list(skills or []), hourly_rate=hourly_rate)
        return await self._finish_signup(user, profile)

    async def login(self, role: UserRole, email: str, password: str) -> tuple[User, str]:
        user = await self.repo.find_user_by_email(email)
        if (
            user is None
            or user.role != role.value
            or not self.hasher.verify(password or "", user.password_hash)
        ):
            raise InvalidCredentialsError("Invalid credentials")
        if not user.is_active:
            raise AccountInactiveError("Account is suspended. Please contact support.")
        logger.info("User logged in", extra={"user_id": str(user.id), "role": role.value})
        return user, self.tokens.issue_access_token(user.id, user.role)

    # ─── Helpers ─────────────────────────────────────────────────

    async def _new_user(
        self, role: UserRole, name: str, email: str, password: str, **fields,
    ) -> User:
        name = (name or "").strip()
        if not name:
            raise InputValidationError("Name is required", "name")
        validate_password(password)
        email = email.strip().lower()
        existing = await self.repo.find_user_by_email(email)
        if existing is not None:
            raise AlreadyRegisteredError(existing.role)
        verified = await self.ledger.is_verified(OtpPurpose.EMAIL_VERIFICATION, email)
        return User(
            email=email,
            password_hash=self.hasher.hash(password),
            name=name,
            role=role.value,
            is_verified=verified,
            **fields,
        )

    async def _finish_signup(self, user: User, profile):
        try:
            async with transaction(self.db):
                profile.user = user
                self.db.add(profile)
                await self.db.flush()
        except IntegrityError as e:
            logger.warning(f"Signup rejected by constraint: {e.orig}")
            raise AlreadyRegisteredError(user.role) from e
        if user.is_verified:
            await self.ledger.consume(OtpPurpose.EMAIL_VERIFICATION, user.email)
        await self.invalidator.invalidate(
            MutationKind.USER_REGISTERED, MutationContext(subject_user_id=user.id),
        )
        logger.info("Account created", extra={"user_id": str(user.id), "role": user.role})
        return profile, self.tokens.issue_access_token(user.id, user.role)
