"""
Mailer Module

Email delivery behind a small async protocol so workflows can be tested with a
recording fake. The default implementation sends through SMTP using settings
from the environment (loaded from .env by the entry points):

    SMTP_HOST, SMTP_PORT (default 587), SMTP_USER, SMTP_PASSWORD,
    SMTP_FROM (defaults to SMTP_USER), SMTP_DISABLE=1 to log instead of send.
"""

import asyncio
import os
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional, Protocol

from educrm.utils.logger import get_logger


class Mailer(Protocol):
    """Anything that can deliver one plain-text email."""

    async def send(self, to: str, subject: str, body: str) -> None: ...


class MailDeliveryError(Exception):
    """Raised when an email could not be handed to the mail server."""


@dataclass
class SmtpSettings:
    host: Optional[str] = None
    port: int = 587
    user: Optional[str] = None
    password: Optional[str] = None
    sender: Optional[str] = None
    disabled: bool = False

    @classmethod
    def from_env(cls) -> "SmtpSettings":
        user = os.getenv("SMTP_USER")
        return cls(
            host=os.getenv("SMTP_HOST"),
            port=int(os.getenv("SMTP_PORT", "587")),
            user=user,
            password=os.getenv("SMTP_PASSWORD"),
            sender=os.getenv("SMTP_FROM") or user,
            disabled=os.getenv("SMTP_DISABLE", "0") == "1",
        )

    def complete(self) -> bool:
        return all([self.host, self.port, self.user, self.password, self.sender])


class SmtpMailer:
    """Sends mail over SMTP with STARTTLS.

    With SMTP_DISABLE=1 messages are only logged, which is the expected setup
    for local development.
    """

    def __init__(self, settings: Optional[SmtpSettings] = None, timeout: float = 15.0):
        self.settings = settings or SmtpSettings.from_env()
        self.timeout = timeout
        self.logger = get_logger(correlation_id="mailer", phase="delivery", component="smtp_mailer")

    def _send_blocking(self, message: EmailMessage) -> None:
        s = self.settings
        with smtplib.SMTP(s.host, s.port, timeout=self.timeout) as smtp:
            smtp.starttls()
            smtp.login(s.user, s.password)
            smtp.send_message(message)

    async def send(self, to: str, subject: str, body: str) -> None:
        """Deliver one email.

        Raises:
            MailDeliveryError: If SMTP is not configured or the server refuses
        """
        if self.settings.disabled:
            self.logger.warning("SMTP disabled, email not sent", to=to, subject=subject)
            return

        if not self.settings.complete():
            raise MailDeliveryError("SMTP configuration is incomplete")

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.settings.sender
        message["To"] = to
        message.set_content(body)

        try:
            await asyncio.to_thread(self._send_blocking, message)
        except (smtplib.SMTPException, OSError) as e:
            self.logger.error("SMTP send failed", to=to, error=str(e))
            raise MailDeliveryError(f"Failed to send email to {to}: {e}") from e

        self.logger.info("Email sent", to=to, subject=subject)
