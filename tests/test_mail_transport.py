from __future__ import annotations

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from supportdesk.engine.mail_transport import SmtpMailTransport, build_email
from supportdesk.errors import DeliveryError
from supportdesk.models.ticket import MailMessage


def _message(**overrides) -> MailMessage:
    defaults = dict(
        sender="desk@example.com",
        to="support@example.com",
        subject="Support Ticket from Jane Example",
        text="plain body",
        html="<p>html body</p>",
        reply_to="jane@example.com",
        cc="jane@example.com",
    )
    defaults.update(overrides)
    return MailMessage(**defaults)


class TestBuildEmail:
    def test_headers(self):
        email = build_email(_message())
        assert email["From"] == "desk@example.com"
        assert email["To"] == "support@example.com"
        assert email["Cc"] == "jane@example.com"
        assert email["Reply-To"] == "jane@example.com"
        assert email["Subject"] == "Support Ticket from Jane Example"
        assert email["Message-ID"].endswith("@example.com>")

    def test_text_and_html_parts(self):
        email = build_email(_message())
        assert email.get_body(("plain",)).get_content().strip() == "plain body"
        assert email.get_body(("html",)).get_content().strip() == "<p>html body</p>"

    def test_optional_headers_omitted(self):
        email = build_email(_message(cc=None, reply_to=None))
        assert email["Cc"] is None
        assert email["Reply-To"] is None


class TestSmtpMailTransport:
    @pytest.mark.asyncio
    async def test_ssl_delivery(self):
        client = MagicMock()
        client.__enter__.return_value = client
        with patch("supportdesk.engine.mail_transport.smtplib.SMTP_SSL", return_value=client) as ctor:
            transport = SmtpMailTransport("smtp.example.com", username="desk", password="secret")
            message_id = await transport.send(_message())

        assert ctor.call_args.args == ("smtp.example.com", 465)
        client.login.assert_called_once_with("desk", "secret")
        client.send_message.assert_called_once()
        assert message_id.startswith("<")

    @pytest.mark.asyncio
    async def test_starttls_delivery_without_login(self):
        client = MagicMock()
        client.__enter__.return_value = client
        with patch("supportdesk.engine.mail_transport.smtplib.SMTP", return_value=client):
            transport = SmtpMailTransport("smtp.example.com", port=587, use_ssl=False, starttls=True)
            await transport.send(_message())

        client.starttls.assert_called_once()
        client.login.assert_not_called()

    @pytest.mark.asyncio
    async def test_auth_failure_becomes_delivery_error(self):
        client = MagicMock()
        client.__enter__.return_value = client
        client.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
        with patch("supportdesk.engine.mail_transport.smtplib.SMTP_SSL", return_value=client):
            transport = SmtpMailTransport("smtp.example.com", username="desk", password="wrong")
            with pytest.raises(DeliveryError, match="Unable to send ticket email"):
                await transport.send(_message())

    @pytest.mark.asyncio
    async def test_connection_refused_becomes_delivery_error(self):
        with patch(
            "supportdesk.engine.mail_transport.smtplib.SMTP_SSL",
            side_effect=ConnectionRefusedError("refused"),
        ):
            with pytest.raises(DeliveryError):
                await SmtpMailTransport("localhost").send(_message())

    @pytest.mark.asyncio
    async def test_unencodable_header_becomes_delivery_error(self):
        with patch("supportdesk.engine.mail_transport.smtplib.SMTP_SSL") as ctor:
            transport = SmtpMailTransport("smtp.example.com")
            with pytest.raises(DeliveryError, match="Unable to send ticket email"):
                await transport.send(_message(subject="Support Ticket from Jane\nDoe"))
        ctor.assert_not_called()
