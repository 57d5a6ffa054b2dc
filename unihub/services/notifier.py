"""
Email notifier.

send(address, template, payload) -> bool. A False return is a delivery
failure; the registration and forgot-password flows turn it into a
user-visible NotificationFailed and roll back their unit of work.

Backends:
  - ConsoleNotifier: logs the message and keeps an outbox (development, tests)
  - SmtpNotifier: stdlib smtplib, run in a worker thread
"""

import asyncio
import enum
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Optional

from unihub.core.config import get_settings
from unihub.core.logging import get_logger
from unihub.core.metrics import record_notification

logger = get_logger(__name__)
settings = get_settings()


class Template(str, enum.Enum):
    VERIFICATION = "verification"
    PASSWORD_RESET = "password_reset"


def render(template: Template, payload: dict) -> tuple[str, str]:
    """Return (subject, html body)."""
    code = payload["code"]
    if template is Template.VERIFICATION:
        hours = payload.get("ttl_hours", settings.VERIFICATION_CODE_TTL_HOURS)
        return (
            "Email Verification - UniHub",
            "<h1>Welcome to UniHub!</h1>"
            "<p>Please verify your email address by entering the following code:</p>"
            f"<h2>{code}</h2>"
            f"<p>This code will expire in {hours} hours.</p>"
            "<p>If you didn't request this verification, please ignore this email.</p>",
        )
    minutes = payload.get("ttl_minutes", settings.RESET_CODE_TTL_MINUTES)
    return (
        "Password Reset - UniHub",
        "<h1>Password reset requested</h1>"
        "<p>Use the following code to reset your password:</p>"
        f"<h2>{code}</h2>"
        f"<p>This code will expire in {minutes} minutes.</p>"
        "<p>If you didn't request a reset, you can ignore this email.</p>",
    )


class Notifier(ABC):
    async def send(self, address: str, template: Template, payload: dict) -> bool:
        subject, body = render(template, payload)
        try:
            ok = await self._deliver(address, subject, body)
        except Exception as e:
            logger.error("notification_failed", template=template.value, error=str(e))
            ok = False
        record_notification(template.value, ok)
        return ok

    @abstractmethod
    async def _deliver(self, address: str, subject: str, body: str) -> bool:
        pass


class ConsoleNotifier(Notifier):
    def __init__(self):
        self.outbox: list[dict] = []

    async def _deliver(self, address: str, subject: str, body: str) -> bool:
        self.outbox.append({"to": address, "subject": subject, "body": body})
        logger.info("email_sent", backend="console", subject=subject)
        return True


class SmtpNotifier(Notifier):
    def __init__(self, host: str, port: int, username: str, password: str,
                 use_tls: bool, sender: str, timeout: int):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.timeout = timeout

    def _send_sync(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(message)

    async def _deliver(self, address: str, subject: str, body: str) -> bool:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = address
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(body, subtype="html")
        await asyncio.to_thread(self._send_sync, message)
        logger.info("email_sent", backend="smtp", subject=subject)
        return True


_notifier: Optional[Notifier] = None


def get_notifier() -> Notifier:
    global _notifier
    if _notifier is None:
        if settings.EMAIL_BACKEND == "smtp":
            _notifier = SmtpNotifier(
                host=settings.SMTP_HOST,
                port=settings.SMTP_PORT,
                username=settings.SMTP_USERNAME,
                password=settings.SMTP_PASSWORD,
                use_tls=settings.SMTP_USE_TLS,
                sender=settings.EMAIL_FROM,
                timeout=settings.SMTP_TIMEOUT,
            )
        else:
            _notifier = ConsoleNotifier()
    return _notifier
