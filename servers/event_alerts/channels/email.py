"""
Email delivery over SMTP.

Credentials: SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASS (SMTP_FROM optional)

Port 465 uses implicit TLS; any other port upgrades with STARTTLS.
smtplib is blocking, so sends run in a worker thread.
"""

import asyncio
import smtplib
from email.message import EmailMessage
from typing import Optional

import structlog

from ..config.settings import SmtpSettings
from ..errors import ChannelSendFailure, ChannelUnconfigured

logger = structlog.get_logger()


class EmailChannel:
    """Send multipart (text + HTML) email through an SMTP server."""

    name = "email"

    def __init__(self, settings: Optional[SmtpSettings], timeout: float = 15.0):
        self.settings = settings
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return self.settings is not None

    def build_message(self, to: str, subject: str, text: str, html: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.settings.from_address
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text)
        message.add_alternative(html, subtype="html")
        return message

    async def send(self, to: str, subject: str, text: str, html: str) -> None:
        """
        Send one email.

        Raises:
            ChannelUnconfigured: if no credentials were supplied
            ChannelSendFailure: on connection, auth or delivery errors
        """
        if self.settings is None:
            raise ChannelUnconfigured(self.name)
        if not to:
            raise ChannelSendFailure(self.name, "no email address")

        try:
            message = self.build_message(to, subject, text, html)
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            raise ChannelSendFailure(self.name, str(e) or type(e).__name__) from e
        except Exception as e:
            # Malformed headers, non-ASCII credentials and the like
            raise ChannelSendFailure(self.name, f"{type(e).__name__}: {e}") from e

        logger.info("email_sent", to=to, subject=subject)

    def _deliver(self, message: EmailMessage) -> None:
        settings = self.settings
        if settings.implicit_tls:
            smtp = smtplib.SMTP_SSL(settings.host, settings.port, timeout=self.timeout)
        else:
            smtp = smtplib.SMTP(settings.host, settings.port, timeout=self.timeout)

        with smtp:
            if not settings.implicit_tls:
                smtp.starttls()
            smtp.login(settings.user, settings.password)
            smtp.send_message(message)
