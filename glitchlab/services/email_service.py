"""SMTP email delivery."""

import asyncio
import smtplib
import ssl
from dataclasses import dataclass, field
from datetime import datetime
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

import structlog

from glitchlab.config import Settings, settings
from glitchlab.services import email_templates

logger = structlog.get_logger(__name__)


@dataclass
class DeliveryReport:
    """Per-recipient outcome of a best-effort fan-out."""

    sent: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.sent) + len(self.failed)

    def to_dict(self) -> Dict[str, Any]:
        return {"sent": len(self.sent), "failed": len(self.failed), "failedRecipients": self.failed}


async def fan_out(
    recipients: Iterable[Dict[str, Any]],
    send_one: Callable[[Dict[str, Any]], Awaitable[bool]],
) -> DeliveryReport:
    """
    Send to each recipient in turn, collecting results.

    A failed send never stops the loop and is never raised to the caller.
    """
    report = DeliveryReport()
    for recipient in recipients:
        email = recipient.get("email", "")
        try:
            ok = await send_one(recipient)
        except Exception as e:
            logger.error("email_fan_out_error", to=email, error=str(e), exc_info=True)
            ok = False
        (report.sent if ok else report.failed).append(email)
    return report


class EmailService:
    """Send transactional emails through SMTP."""

    def __init__(self, config: Settings = settings):
        self.config = config

    @property
    def enabled(self) -> bool:
        return bool(self.config.EMAIL_HOST and self.config.EMAIL_USER)

    def _build_message(self, to: str, subject: str, html: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((self.config.EMAIL_FROM_NAME, self.config.EMAIL_USER))
        message["To"] = to
        message["Subject"] = subject
        message["Message-ID"] = make_msgid(domain=self.config.EMAIL_USER.split("@")[-1] or None)
        message.set_content("This message requires an HTML-capable email client.")
        message.add_alternative(html, subtype="html")
        return message

    def _deliver(self, message: EmailMessage) -> None:
        host, port, timeout = self.config.EMAIL_HOST, self.config.EMAIL_PORT, self.config.EMAIL_TIMEOUT
        context = ssl.create_default_context()
        if self.config.EMAIL_SECURE:
            smtp = smtplib.SMTP_SSL(host, port, timeout=timeout, context=context)
        else:
            smtp = smtplib.SMTP(host, port, timeout=timeout)
        with smtp:
            if not self.config.EMAIL_SECURE:
                smtp.starttls(context=context)
            if self.config.EMAIL_USER:
                smtp.login(self.config.EMAIL_USER, self.config.EMAIL_PASSWORD)
            smtp.send_message(message)

    async def send(self, to: str, subject: str, html: str) -> bool:
        """Send one email. Returns False (and logs) on failure."""
        if not self.enabled:
            logger.warning("email_disabled", to=to, subject=subject)
            return False

        message = self._build_message(to, subject, html)
        try:
            # smtplib blocks; keep it off the event loop
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("email_send_failed", to=to, subject=subject, error=str(e))
            return False

        logger.info("email_sent", to=to, subject=subject, message_id=message["Message-ID"])
        return True

    async def send_verification_email(self, to: str, code: str, language: str = "en") -> bool:
        subject, html = email_templates.verification_email(code, language)
        return await self.send(to, subject, html)

    async def send_password_reset_email(self, to: str, code: str, language: str = "en") -> bool:
        subject, html = email_templates.password_reset_email(code, language)
        return await self.send(to, subject, html)

    async def send_workshop_cancellation_email(
        self, to: str, workshop_name: str, start_date: datetime, language: str = "en"
    ) -> bool:
        subject, html = email_templates.cancellation_email(workshop_name, start_date, language)
        return await self.send(to, subject, html)

    async def send_workshop_reminder_email(
        self, to: str, workshop_name: str, start_date: datetime, language: str = "en"
    ) -> bool:
        subject, html = email_templates.reminder_email(workshop_name, start_date, language)
        return await self.send(to, subject, html)

    async def send_workshop_update_email(
        self,
        to: str,
        workshop_name: str,
        previous: Dict[str, Any],
        current: Dict[str, Any],
        language: str = "en",
    ) -> bool:
        subject, html = email_templates.update_email(workshop_name, previous, current, language)
        return await self.send(to, subject, html)


_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Dependency returning the shared email service."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
