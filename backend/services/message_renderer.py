"""Email rendering for contact submissions.

Builds the admin notification and the submitter acknowledgement as
HTML + plain-text pairs. All user-provided data is HTML-escaped before it
is placed in markup; the validator lets markup characters through, so
this is the only barrier against injected HTML.

Rendering is pure: the same submission and timestamp always produce the
same output.
"""

import html
import re
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from models.contact import NormalizedSubmission, RenderedMessage
from models.exceptions import ConfigurationException

NO_MESSAGE_PLACEHOLDER = "No message provided"
ACKNOWLEDGEMENT_SUBJECT = "Thank you for contacting us!"
ADMIN_SUBJECT_PREFIX = "Contact Form: "

# Fixed English month names keep output independent of process locale
MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

_LINE_BREAKS = re.compile(r"\r\n|\r|\n")


def escape(value: str) -> str:
    """HTML-escape text, quotes included (safe in attributes too)."""
    return html.escape(value, quote=True)


def escape_multiline(value: str) -> str:
    """HTML-escape text and turn its line breaks into ``<br>``."""
    return _LINE_BREAKS.sub("<br>", escape(value))


def single_line(value: str) -> str:
    """Collapse all whitespace runs (including newlines) to single spaces."""
    return " ".join(value.split())


class MessageRenderer:
    """Render contact notifications and acknowledgements."""

    def __init__(self, timezone_name: str = "Asia/Kolkata", site_name: str = "Your Website"):
        try:
            self.tz = ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationException(
                f"Unknown notification timezone: {timezone_name!r}"
            ) from e
        self.site_name = site_name

    def format_timestamp(self, now: datetime) -> str:
        """
        Format a timestamp for the notification footer.

        Naive datetimes are taken to be UTC.

        Returns:
            e.g. ``"18 October 2026, 02:30:45 pm IST"``
        """
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        local = now.astimezone(self.tz)
        meridiem = "am" if local.hour < 12 else "pm"
        hour = local.hour % 12 or 12
        return (
            f"{local.day} {MONTH_NAMES[local.month - 1]} {local.year}, "
            f"{hour:02d}:{local.minute:02d}:{local.second:02d} {meridiem} "
            f"{local.tzname()}"
        )

    def render_admin_notification(
        self, submission: NormalizedSubmission, now: datetime
    ) -> RenderedMessage:
        """
        Build the notification sent to the site owner.

        Args:
            submission: Validated submission.
            now: Time the submission was received.

        Returns:
            RenderedMessage with subject, HTML and text bodies.
        """
        received = self.format_timestamp(now)
        has_message = bool(submission.message.strip())

        safe_name = escape(submission.name)
        safe_email = escape(submission.email)
        safe_subject = escape(submission.subject)
        if has_message:
            message_html = escape_multiline(submission.message)
        else:
            message_html = f'<em style="color: #888;">{NO_MESSAGE_PLACEHOLDER}</em>'

        html_body = f"""<!DOCTYPE html>
<html>
<head><meta charset="UTF-8"></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background: #667eea; color: white; padding: 30px; text-align: center; border-radius: 10px 10px 0 0;">
        <h1 style="margin: 0;">New Contact Form Submission</h1>
        <p style="margin: 10px 0 0;">You have received a new message from your website</p>
    </div>
    <div style="background: #f9f9f9; padding: 30px; border-radius: 0 0 10px 10px;">
        <p style="margin: 0 0 5px; font-weight: bold; color: #555;">Name:</p>
        <div style="background: white; padding: 15px; border-radius: 5px; border-left: 4px solid #667eea; margin-bottom: 20px;">{safe_name}</div>

        <p style="margin: 0 0 5px; font-weight: bold; color: #555;">Email:</p>
        <div style="background: white; padding: 15px; border-radius: 5px; border-left: 4px solid #667eea; margin-bottom: 20px;">
            <a href="mailto:{safe_email}" style="color: #667eea; text-decoration: none;">{safe_email}</a>
        </div>

        <p style="margin: 0 0 5px; font-weight: bold; color: #555;">Subject:</p>
        <div style="background: white; padding: 15px; border-radius: 5px; border-left: 4px solid #667eea; margin-bottom: 20px;">{safe_subject}</div>

        <p style="margin: 0 0 5px; font-weight: bold; color: #555;">Message:</p>
        <div style="background: white; padding: 20px; border-radius: 5px; border: 2px solid #e1e5e9; min-height: 100px;">{message_html}</div>

        <p style="color: #888; font-size: 14px; text-align: right; margin-top: 20px;">Received: {received}</p>
    </div>
    <p style="text-align: center; margin-top: 30px; color: #666; font-size: 12px;">
        This email was automatically generated from your website's contact form.
    </p>
</body>
</html>"""

        text_message = submission.message if has_message else NO_MESSAGE_PLACEHOLDER
        text_body = f"""NEW CONTACT FORM SUBMISSION
===========================

Name: {submission.name}
Email: {submission.email}
Subject: {submission.subject}
Message:
{text_message}

Received: {received}

---
This email was automatically generated from your website's contact form.
"""

        return RenderedMessage(
            subject=f"{ADMIN_SUBJECT_PREFIX}{single_line(submission.subject)}",
            html=html_body,
            text=text_body,
        )

    def render_acknowledgement(self, submission: NormalizedSubmission) -> RenderedMessage:
        """
        Build the confirmation sent back to the submitter.

        Greets the submitter and repeats what they sent; no contact
        details and no timestamp.
        """
        has_message = bool(submission.message.strip())
        safe_name = escape(submission.name)
        safe_subject = escape(submission.subject)
        safe_site = escape(self.site_name)
        message_html = (
            escape_multiline(submission.message)
            if has_message
            else NO_MESSAGE_PLACEHOLDER
        )

        html_body = f"""<!DOCTYPE html>
<html>
<head><meta charset="UTF-8"></head>
<body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h2 style="color: #667eea;">Thank you for your message!</h2>
    <p>Hi {safe_name},</p>
    <p>We have received your message and will get back to you as soon as possible.</p>
    <div style="background: #f9f9f9; padding: 20px; border-radius: 5px; margin: 20px 0;">
        <h3 style="margin-top: 0;">Your message details:</h3>
        <p><strong>Subject:</strong> {safe_subject}</p>
        <p><strong>Message:</strong> {message_html}</p>
    </div>
    <p>Best regards,<br>{safe_site} Team</p>
</body>
</html>"""

        text_message = submission.message if has_message else NO_MESSAGE_PLACEHOLDER
        text_body = f"""Hi {submission.name},

We have received your message and will get back to you as soon as possible.

Your message details:
- Subject: {submission.subject}
- Message:
{text_message}

Best regards,
{self.site_name} Team
"""

        return RenderedMessage(
            subject=ACKNOWLEDGEMENT_SUBJECT,
            html=html_body,
            text=text_body,
        )
