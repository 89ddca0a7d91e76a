"""Mail Outbox — transactional mail queued during a request, delivered after commit.

Invariants:
    - Nothing is delivered while the state change it announces is uncommitted
    - flush() attempts every queued message once; failures are logged, never raised
    - discard() drops queued mail when the unit of work rolled back
"""

import logging

from gigboard.core.domain_types import OtpPurpose, UserRole
from gigboard.core.repository_protocols import Mailer, MailMessage

logger = logging.getLogger(__name__)


class MailOutbox:
    def __init__(self, mailer: Mailer):
        self.mailer = mailer
        self._pending: list[MailMessage] = []

    def enqueue(self, message: MailMessage) -> None:
        self._pending.append(message)

    @property
    def pending(self) -> list[MailMessage]:
        return list(self._pending)

    def discard(self) -> None:
        self._pending.clear()

    async def flush(self) -> int:
        """Deliver queued mail. Returns the number of messages accepted."""
        messages, self._pending = self._pending, []
        delivered = 0
        for message in messages:
            try:
                await self.mailer.send(message)
                delivered += 1
            except Exception as e:
                logger.error(f"Mail delivery failed ({message.subject}): {e}")
        return delivered


# ─── Messages ────────────────────────────────────────────────────

def otp_message(
    purpose: OtpPurpose, email: str, code: str, ttl_seconds: int, name: str | None = None,
) -> MailMessage:
    minutes = ttl_seconds // 60
    if purpose == OtpPurpose.PASSWORD_RESET:
        return MailMessage(
            to=email,
            subject="Password Reset OTP - Gigboard",
            text=(
                f"Hello {name or 'there'},\n\n"
                f"Your password reset code is {code}. It expires in {minutes} minutes.\n"
                f"If you did not request a reset, you can ignore this message."
            ),
        )
    return MailMessage(
        to=email,
        subject="Email Verification OTP - Gigboard",
        text=(
            f"Your email verification code is {code}. "
            f"It expires in {minutes} minutes."
        ),
    )


def password_changed_message(email: str, name: str, role: UserRole) -> MailMessage:
    return MailMessage(
        to=email,
        subject="Password Successfully Reset - Gigboard",
        text=(
            f"Hello {name},\n\n"
            f"The password of your {role.value.lower()} account was just changed. "
            f"If this was not you, contact support immediately."
        ),
    )
