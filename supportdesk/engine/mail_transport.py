from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from abc import ABC, abstractmethod
from email.message import EmailMessage
from email.utils import make_msgid

from supportdesk.errors import DeliveryError
from supportdesk.models.ticket import MailMessage

logger = logging.getLogger(__name__)


class MailTransport(ABC):
    """Delivers one message and returns its delivery identifier."""

    @abstractmethod
    async def send(self, message: MailMessage) -> str:
        """Raise ``DeliveryError`` when the message could not be delivered."""
        ...


def build_email(message: MailMessage) -> EmailMessage:
    email = EmailMessage()
    email["From"] = message.sender
    email["To"] = message.to
    if message.cc:
        email["Cc"] = message.cc
    if message.reply_to:
        email["Reply-To"] = message.reply_to
    email["Subject"] = message.subject
    domain = message.sender.rpartition("@")[2] or None
    email["Message-ID"] = make_msgid(domain=domain)
    email.set_content(message.text)
    email.add_alternative(message.html, subtype="html")
    return email


class SmtpMailTransport(MailTransport):
    """SMTP delivery over implicit TLS (port 465) or STARTTLS."""

    def __init__(
        self,
        host: str,
        port: int = 465,
        username: str = "",
        password: str = "",
        use_ssl: bool = True,
        starttls: bool = False,
        timeout: float = 30.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_ssl = use_ssl
        self.starttls = starttls
        self.timeout = timeout

    async def send(self, message: MailMessage) -> str:
        try:
            email = build_email(message)
            await asyncio.to_thread(self._deliver, email)
        except (smtplib.SMTPException, OSError, ValueError) as exc:
            logger.error("Mail delivery to %s failed: %s", message.to, exc)
            raise DeliveryError(f"Unable to send ticket email: {exc}") from exc
        logger.info("Mail delivered to %s (%s)", message.to, email["Message-ID"])
        return email["Message-ID"]

    def _deliver(self, email: EmailMessage) -> None:
        context = ssl.create_default_context()
        if self.use_ssl:
            client = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout, context=context)
        else:
            client = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        with client:
            if self.starttls and not self.use_ssl:
                client.starttls(context=context)
            if self.username:
                client.login(self.username, self.password)
            client.send_message(email)
