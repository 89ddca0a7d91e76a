"""Mailers — outbound mail delivery behind the Mailer protocol.

Invariants:
    - send() raises on delivery failure; the outbox (services/notifications.py) decides
      whether a failure matters, never the mailer
    - SmtpMailer never blocks the event loop (smtplib runs in a worker thread)
    - LogMailer is selected when no SMTP host is configured; it delivers nothing

Design Decisions:
    - stdlib smtplib + email.message: a single synchronous send per message is enough
      for transactional mail, no async SMTP dependency
"""

import asyncio
import logging
import smtplib
from collections import deque
from email.message import EmailMessage
from email.utils import make_msgid

from gigboard.core.repository_protocols import MailMessage

logger = logging.getLogger(__name__)


class SmtpMailer:
    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str = "",
        password: str = "",
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.timeout = timeout

    async def send(self, message: MailMessage) -> dict:
        email = self._build(message)
        await asyncio.to_thread(self._deliver, email)
        logger.info(f"Mail sent: {message.subject}")
        return {"accepted": [message.to], "message_id": email["Message-ID"]}

    def _build(self, message: MailMessage) -> EmailMessage:
        email = EmailMessage()
        email["From"] = self.sender
        email["To"] = message.to
        email["Subject"] = message.subject
        email["Message-ID"] = make_msgid(domain="gigboard")
        email.set_content(message.text)
        if message.html:
            email.add_alternative(message.html, subtype="html")
        return email

    def _deliver(self, email: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(email)


class LogMailer:
    """Development mailer: logs the subject and recipient instead of delivering."""

    def __init__(self):
        self.sent: deque[MailMessage] = deque(maxlen=100)

    async def send(self, message: MailMessage) -> dict:
        self.sent.append(message)
        logger.info(f"Mail (log only) to {message.to}: {message.subject}")
        return {"accepted": [message.to], "message_id": None}


def build_mailer(
    host: str, port: int, sender: str, username: str = "", password: str = "",
) -> SmtpMailer | LogMailer:
    if not host:
        return LogMailer()
    return SmtpMailer(host, port, sender, username, password)


mailer: SmtpMailer | LogMailer | None = None


def init_mailer(
    host: str, port: int, sender: str, username: str = "", password: str = "",
) -> SmtpMailer | LogMailer:
    global mailer
    mailer = build_mailer(host, port, sender, username, password)
    return mailer


def get_mailer() -> SmtpMailer | LogMailer:
    """FastAPI dependency for the outbound mailer."""
    if not mailer:
        raise RuntimeError("Mailer not initialized")
    return mailer
