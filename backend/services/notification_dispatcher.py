"""
Delivery of rendered contact emails.

The admin notification is the obligation to the site owner and decides
success. The acknowledgement to the submitter is a courtesy: it is only
attempted after the admin notification went out, and its failure is
logged and recorded but never turns a delivered submission into an
error. Nothing is retried here; retry policy belongs to the transport.
"""

from email.utils import formataddr
from typing import Optional

from loguru import logger

from models.contact import DispatchOutcome, OutboundEmail, RenderedMessage
from models.exceptions import MailTransportException
from services.mail_transport import MailTransport
from services.message_renderer import single_line


class NotificationDispatcher:
    """Send the admin notification and the optional acknowledgement."""

    def __init__(
        self,
        transport: MailTransport,
        sender_email: str,
        recipient_email: str,
        sender_name: str = "Your Website",
    ) -> None:
        self.transport = transport
        self.sender_email = sender_email
        self.recipient_email = recipient_email
        self.sender_name = sender_name

    async def dispatch(
        self,
        admin: RenderedMessage,
        ack: Optional[RenderedMessage],
        reply_to: str,
        submitter_email: str,
        submitter_name: str = "",
    ) -> DispatchOutcome:
        """
        Send up to two messages for one submission.

        Args:
            admin: Rendered notification for the site owner.
            ack: Rendered acknowledgement, or None when auto-reply is off.
            reply_to: Address the site owner's replies should go to.
            submitter_email: Where the acknowledgement is sent.
            submitter_name: Display name on the admin notification's sender.

        Returns:
            DispatchOutcome. ``failure`` is set when the admin send failed,
            in which case no acknowledgement was attempted.
        """
        outcome = DispatchOutcome()

        admin_email = OutboundEmail(
            sender=formataddr((single_line(submitter_name), self.sender_email)),
            to=self.recipient_email,
            reply_to=reply_to,
            subject=admin.subject,
            html=admin.html,
            text=admin.text,
        )

        logger.info(f"Sending contact notification to admin: {self.recipient_email}")
        try:
            outcome.admin_message_id = await self.transport.send(admin_email)
        except MailTransportException as e:
            logger.error(
                f"Contact notification to {self.recipient_email} failed "
                f"via {e.transport}: {e.message}"
            )
            outcome.failure = e
            return outcome

        outcome.admin_sent = True
        logger.info(f"Admin notification sent: {outcome.admin_message_id}")

        if ack is None:
            return outcome

        ack_email = OutboundEmail(
            sender=formataddr((self.sender_name, self.sender_email)),
            to=submitter_email,
            subject=ack.subject,
            html=ack.html,
            text=ack.text,
        )

        logger.info(f"Sending acknowledgement to submitter: {submitter_email}")
        try:
            outcome.reply_message_id = await self.transport.send(ack_email)
        except MailTransportException as e:
            logger.warning(
                f"Acknowledgement to {submitter_email} failed via {e.transport}: {e.message}"
            )
            outcome.reply_failure = e
            return outcome

        outcome.reply_sent = True
        logger.info(f"Acknowledgement sent: {outcome.reply_message_id}")
        return outcome
