"""Tests for the mail transports."""

import json
import smtplib
from unittest.mock import patch

import httpx
import pytest

from models.config import Settings
from models.contact import OutboundEmail
from models.exceptions import ConfigurationException, MailTransportException
from services.mail_transport import (
    BrevoTransport,
    ConsoleTransport,
    SMTPTransport,
    get_mail_transport,
)


@pytest.fixture
def outbound() -> OutboundEmail:
    return OutboundEmail(
        sender='"Jane Doe" <contact@example.com>',
        to="owner@example.com",
        subject="Contact Form: Hello there",
        html="<p>Hi</p>",
        text="Hi",
        reply_to="jane@example.com",
    )


@pytest.fixture
def mock_smtp():
    """Patch smtplib.SMTP so the context manager yields the same mock."""
    with patch("services.mail_transport.smtplib.SMTP") as smtp_cls:
        server = smtp_cls.return_value
        server.__enter__.return_value = server
        server.__exit__.return_value = False
        yield smtp_cls


class TestSMTPTransport:
    """Test SMTP delivery with smtplib mocked out."""

    def test_build_message(self, outbound) -> None:
        msg = SMTPTransport("smtp.example.com").build_message(outbound)

        assert msg["Subject"] == "Contact Form: Hello there"
        assert msg["To"] == "owner@example.com"
        assert msg["Reply-To"] == "jane@example.com"
        assert msg["Message-ID"].endswith("@example.com>")
        assert msg.is_multipart()
        types = [part.get_content_type() for part in msg.iter_parts()]
        assert types == ["text/plain", "text/html"]

    @pytest.mark.asyncio
    async def test_send_with_starttls_and_login(self, mock_smtp, outbound) -> None:
        transport = SMTPTransport(
            "smtp.example.com", port=587, user="relay", password="secret", timeout=5
        )

        message_id = await transport.send(outbound)

        mock_smtp.assert_called_once_with("smtp.example.com", 587, timeout=5)
        server = mock_smtp.return_value
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("relay", "secret")
        sent = server.send_message.call_args.args[0]
        assert sent["Message-ID"] == message_id

    @pytest.mark.asyncio
    async def test_no_login_without_credentials(self, mock_smtp, outbound) -> None:
        await SMTPTransport("localhost", port=25, use_tls=False).send(outbound)

        server = mock_smtp.return_value
        server.starttls.assert_not_called()
        server.login.assert_not_called()
        server.send_message.assert_called_once()

    @pytest.mark.asyncio
    async def test_implicit_ssl(self, outbound) -> None:
        with patch("services.mail_transport.smtplib.SMTP_SSL") as smtp_ssl:
            server = smtp_ssl.return_value
            server.__enter__.return_value = server
            server.__exit__.return_value = False

            await SMTPTransport("smtp.example.com", port=465, use_ssl=True).send(outbound)

        assert smtp_ssl.call_args.args == ("smtp.example.com", 465)
        server.send_message.assert_called_once()

    @pytest.mark.asyncio
    async def test_authentication_failure(self, mock_smtp, outbound) -> None:
        mock_smtp.return_value.login.side_effect = smtplib.SMTPAuthenticationError(
            535, b"Bad credentials"
        )
        transport = SMTPTransport("smtp.example.com", user="relay", password="wrong")

        with pytest.raises(MailTransportException) as exc_info:
            await transport.send(outbound)

        assert exc_info.value.transport == "smtp"
        assert "authentication failed" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_recipients_refused(self, mock_smtp, outbound) -> None:
        mock_smtp.return_value.send_message.side_effect = smtplib.SMTPRecipientsRefused(
            {"owner@example.com": (550, b"No such user")}
        )

        with pytest.raises(MailTransportException) as exc_info:
            await SMTPTransport("smtp.example.com").send(outbound)

        assert "owner@example.com" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_connection_error(self, mock_smtp, outbound) -> None:
        mock_smtp.side_effect = ConnectionRefusedError("refused")

        with pytest.raises(MailTransportException) as exc_info:
            await SMTPTransport("smtp.example.com").send(outbound)

        assert isinstance(exc_info.value.__cause__, ConnectionRefusedError)

    @pytest.mark.asyncio
    async def test_starttls_failure_closes_connection(self, mock_smtp, outbound) -> None:
        mock_smtp.return_value.starttls.side_effect = smtplib.SMTPNotSupportedError()

        with pytest.raises(MailTransportException):
            await SMTPTransport("smtp.example.com").send(outbound)

        mock_smtp.return_value.close.assert_called_once()


class TestBrevoTransport:
    """Test Brevo API delivery with httpx.MockTransport."""

    def test_requires_api_key(self) -> None:
        with pytest.raises(ConfigurationException):
            BrevoTransport(api_key="")

    def test_build_payload(self, outbound) -> None:
        payload = BrevoTransport(api_key="key").build_payload(outbound)

        assert payload == {
            "sender": {"email": "contact@example.com", "name": "Jane Doe"},
            "to": [{"email": "owner@example.com"}],
            "subject": "Contact Form: Hello there",
            "htmlContent": "<p>Hi</p>",
            "textContent": "Hi",
            "replyTo": {"email": "jane@example.com"},
        }

    def test_payload_without_name_or_reply_to(self) -> None:
        message = OutboundEmail(
            sender="contact@example.com",
            to="jane@example.com",
            subject="Thank you for contacting us!",
            html="<p>Thanks</p>",
            text="Thanks",
        )
        payload = BrevoTransport(api_key="key").build_payload(message)

        assert payload["sender"] == {"email": "contact@example.com"}
        assert "replyTo" not in payload

    @pytest.mark.asyncio
    async def test_send_success(self, outbound) -> None:
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["api_key"] = request.headers["api-key"]
            captured["body"] = json.loads(request.content)
            return httpx.Response(201, json={"messageId": "<brevo-1@smtp-relay>"})

        transport = BrevoTransport(
            api_key="xkeysib-test",
            endpoint="https://brevo.test/v3/smtp/email",
            http_transport=httpx.MockTransport(handler),
        )

        message_id = await transport.send(outbound)

        assert message_id == "<brevo-1@smtp-relay>"
        assert captured["url"] == "https://brevo.test/v3/smtp/email"
        assert captured["api_key"] == "xkeysib-test"
        assert captured["body"]["to"] == [{"email": "owner@example.com"}]

    @pytest.mark.asyncio
    async def test_missing_message_id_is_generated(self, outbound) -> None:
        transport = BrevoTransport(
            api_key="key",
            http_transport=httpx.MockTransport(lambda request: httpx.Response(201)),
        )

        message_id = await transport.send(outbound)

        assert message_id.startswith("<")
        assert message_id.endswith("@example.com>")

    @pytest.mark.asyncio
    async def test_http_error_status(self, outbound) -> None:
        transport = BrevoTransport(
            api_key="key",
            http_transport=httpx.MockTransport(
                lambda request: httpx.Response(401, json={"code": "unauthorized"})
            ),
        )

        with pytest.raises(MailTransportException) as exc_info:
            await transport.send(outbound)

        assert exc_info.value.transport == "brevo"
        assert "401" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_timeout(self, outbound) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        transport = BrevoTransport(api_key="key", http_transport=httpx.MockTransport(handler))

        with pytest.raises(MailTransportException) as exc_info:
            await transport.send(outbound)

        assert exc_info.value.message == "Brevo request timed out"

    @pytest.mark.asyncio
    async def test_connection_error(self, outbound) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("no route", request=request)

        transport = BrevoTransport(api_key="key", http_transport=httpx.MockTransport(handler))

        with pytest.raises(MailTransportException):
            await transport.send(outbound)


class TestConsoleTransport:
    @pytest.mark.asyncio
    async def test_returns_message_id(self, outbound) -> None:
        message_id = await ConsoleTransport().send(outbound)
        assert message_id.endswith("@example.com>")


class TestGetMailTransport:
    @pytest.mark.parametrize(
        "name, expected",
        [("console", ConsoleTransport), ("SMTP", SMTPTransport), ("unknown", ConsoleTransport)],
    )
    def test_selects_transport(self, name: str, expected: type) -> None:
        transport = get_mail_transport(Settings(MAIL_TRANSPORT=name))
        assert isinstance(transport, expected)

    def test_brevo(self) -> None:
        transport = get_mail_transport(
            Settings(MAIL_TRANSPORT="brevo", BREVO_API_KEY="xkeysib-test")
        )
        assert isinstance(transport, BrevoTransport)
        assert transport.api_key == "xkeysib-test"

    def test_smtp_from_settings(self) -> None:
        transport = get_mail_transport(
            Settings(
                MAIL_TRANSPORT="smtp",
                SMTP_HOST="mail.example.com",
                SMTP_PORT=465,
                SMTP_USE_SSL=True,
            )
        )
        assert isinstance(transport, SMTPTransport)
        assert (transport.host, transport.port, transport.use_ssl) == (
            "mail.example.com",
            465,
            True,
        )

    def test_brevo_without_key_fails(self) -> None:
        with pytest.raises(ConfigurationException):
            get_mail_transport(Settings(MAIL_TRANSPORT="brevo", BREVO_API_KEY=""))

