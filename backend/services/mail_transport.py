"""Mail transports for outgoing contact emails.

A transport is the narrow capability ``send(message) -> message id``;
it raises MailTransportException when delivery fails. Supported:

- smtp: standard SMTP delivery, run in a worker thread
- brevo: Brevo transactional email API over HTTPS
- console: logs emails instead of sending them (development)
"""

import asyncio
import re
import smtplib
import ssl
from abc import ABC, abstractmethod
from email.message import EmailMessage
from email.utils import make_msgid, parseaddr
from typing import Optional

import httpx
from loguru import logger

from models.config import Settings
from models.contact import OutboundEmail
from models.exceptions import ConfigurationException, MailTransportException


def _sender_domain(sender: str) -> Optional[str]:
    _, address = parseaddr(sender)
    if "@" in address:
        return address.rsplit("@", 1)[1] or None
    return None


class MailTransport(ABC):
    """Abstract mail delivery capability."""

    name = "abstract"

    @abstractmethod
    async def send(self, message: OutboundEmail) -> str:
        """Deliver a message and return its message id.

        Raises:
            MailTransportException: If the message could not be delivered.
        """


class SMTPTransport(MailTransport):
    """SMTP transport.

    smtplib is blocking, so each send runs in a worker thread and the
    event loop stays free for other requests.
    """

    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int = 587,
        user: str = "",
        password: str = "",
        use_tls: bool = True,
        use_ssl: bool = False,
        timeout: float = 30.0,
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.use_tls = use_tls
        self.use_ssl = use_ssl
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SMTPTransport":
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            user=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            use_tls=settings.SMTP_USE_TLS,
            use_ssl=settings.SMTP_USE_SSL,
            timeout=settings.SMTP_TIMEOUT_SECONDS,
        )

    async def send(self, message: OutboundEmail) -> str:
        return await asyncio.to_thread(self._send_blocking, message)

    def build_message(self, message: OutboundEmail) -> EmailMessage:
        """Build a multipart/alternative MIME message with a fresh Message-ID."""
        msg = EmailMessage()
        msg["Subject"] = message.subject
        msg["From"] = message.sender
        msg["To"] = message.to
        if message.reply_to:
            msg["Reply-To"] = message.reply_to
        msg["Message-ID"] = make_msgid(domain=_sender_domain(message.sender))
        msg.set_content(message.text)
        msg.add_alternative(message.html, subtype="html")
        return msg

    def _connect(self) -> smtplib.SMTP:
        if self.use_ssl:
            # Implicit SSL (port 465) - connection is encrypted from start
            return smtplib.SMTP_SSL(
                self.host,
                self.port,
                timeout=self.timeout,
                context=ssl.create_default_context(),
            )
        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        if self.use_tls:
            # STARTTLS (port 587) - upgrade to TLS after connection
            try:
                server.starttls(context=ssl.create_default_context())
            except Exception:
                server.close()
                raise
        return server

    def _send_blocking(self, message: OutboundEmail) -> str:
        msg = self.build_message(message)
        logger.debug(
            f"SMTP: Connecting to {self.host}:{self.port} "
            f"(SSL={self.use_ssl}, TLS={self.use_tls}, user={self.user})"
        )
        try:
            with self._connect() as server:
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(msg)
        except smtplib.SMTPAuthenticationError as e:
            raise MailTransportException(
                f"SMTP authentication failed - {e.smtp_code}: {e.smtp_error!r}",
                transport=self.name,
            ) from e
        except smtplib.SMTPRecipientsRefused as e:
            raise MailTransportException(
                f"SMTP recipients refused - {list(e.recipients)}",
                transport=self.name,
            ) from e
        except smtplib.SMTPSenderRefused as e:
            raise MailTransportException(
                f"SMTP sender refused - {e.smtp_code}: {e.smtp_error!r}",
                transport=self.name,
            ) from e
        except (smtplib.SMTPException, OSError) as e:
            raise MailTransportException(
                f"SMTP delivery failed: {e}", transport=self.name
            ) from e

        message_id = str(msg["Message-ID"])
        logger.info(f"SMTP: Email sent to {message.to} ({message_id})")
        return message_id


class BrevoTransport(MailTransport):
    """Brevo (ex-Sendinblue) transactional email API."""

    name = "brevo"

    def __init__(
        self,
        api_key: str,
        endpoint: str = "https://api.brevo.com/v3/smtp/email",
        timeout: float = 10.0,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not api_key:
            raise ConfigurationException("BREVO_API_KEY is required for the brevo transport")
        self.api_key = api_key
        self.endpoint = endpoint
        self.timeout = timeout
        self._http_transport = http_transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "BrevoTransport":
        return cls(
            api_key=settings.BREVO_API_KEY,
            endpoint=settings.BREVO_ENDPOINT,
            timeout=settings.BREVO_TIMEOUT_SECONDS,
        )

    def build_payload(self, message: OutboundEmail) -> dict:
        sender_name, sender_email = parseaddr(message.sender)
        sender: dict[str, str] = {"email": sender_email}
        if sender_name:
            sender["name"] = sender_name

        payload: dict = {
            "sender": sender,
            "to": [{"email": message.to}],
            "subject": message.subject,
            "htmlContent": message.html,
            "textContent": message.text,
        }
        if message.reply_to:
            payload["replyTo"] = {"email": message.reply_to}
        return payload

    async def send(self, message: OutboundEmail) -> str:
        headers = {
            "accept": "application/json",
            "api-key": self.api_key,
            "content-type": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._http_transport
            ) as client:
                response = await client.post(
                    self.endpoint, headers=headers, json=self.build_payload(message)
                )
                response.raise_for_status()
        except httpx.TimeoutException as e:
            raise MailTransportException(
                "Brevo request timed out", transport=self.name
            ) from e
        except httpx.HTTPStatusError as e:
            raise MailTransportException(
                f"Brevo returned HTTP {e.response.status_code}", transport=self.name
            ) from e
        except httpx.HTTPError as e:
            raise MailTransportException(
                f"Brevo request failed: {e}", transport=self.name
            ) from e

        try:
            message_id = response.json().get("messageId")
        except ValueError:
            message_id = None
        message_id = str(message_id or make_msgid(domain=_sender_domain(message.sender)))
        logger.info(f"Brevo: Email sent to {message.to} ({message_id})")
        return message_id


class ConsoleTransport(MailTransport):
    """Console transport for development/testing."""

    name = "console"

    async def send(self, message: OutboundEmail) -> str:
        """Log the email and pretend it was delivered."""
        message_id = make_msgid(domain=_sender_domain(message.sender))
        clean_html = re.sub(r"<[^>]+>", "", message.html)[:500]
        logger.info(
            f"\n{'=' * 60}\n"
            f"EMAIL (Console Transport - Development Mode)\n"
            f"{'=' * 60}\n"
            f"From: {message.sender}\n"
            f"To: {message.to}\n"
            f"Reply-To: {message.reply_to or '-'}\n"
            f"Subject: {message.subject}\n"
            f"Message-ID: {message_id}\n"
            f"{'-' * 60}\n"
            f"PLAIN TEXT:\n{message.text}\n"
            f"{'-' * 60}\n"
            f"HTML (preview):\n{clean_html}\n"
            f"{'=' * 60}\n"
        )
        return message_id


def get_mail_transport(settings: Settings) -> MailTransport:
    """Get the configured mail transport."""
    transport_name = settings.MAIL_TRANSPORT.lower()

    if transport_name == "smtp":
        return SMTPTransport.from_settings(settings)
    elif transport_name == "brevo":
        return BrevoTransport.from_settings(settings)
    elif transport_name == "console":
        return ConsoleTransport()
    else:
        logger.warning(f"Unknown mail transport '{transport_name}', using console")
        return ConsoleTransport()
