"""Contact form submission pipeline.

admission (origin, rate limit) → validation → rendering → dispatch,
translated into a single PipelineResult for the HTTP layer. Expected
outcomes (bad origin, too many requests, invalid fields, mail failure)
come back as results; only genuinely unexpected errors raise.
"""

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from loguru import logger

from helpers.origin_gate import CORS_DENIED_MESSAGE, OriginGate
from helpers.rate_limiter import InMemoryRateWindowStore, RateLimiter
from models.config import Settings
from models.contact import PipelineResult, PipelineStatus
from services.contact_validator import FormValidator
from services.mail_transport import MailTransport, get_mail_transport
from services.message_renderer import MessageRenderer
from services.notification_dispatcher import NotificationDispatcher

SUCCESS_MESSAGE = "Message sent successfully!"
VALIDATION_FAILED_MESSAGE = "Validation failed"
DELIVERY_FAILED_MESSAGE = "Failed to send message. Please try again later."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SubmissionPipeline:
    """Process one contact form submission end to end."""

    def __init__(
        self,
        origin_gate: OriginGate,
        rate_limiter: RateLimiter,
        validator: FormValidator,
        renderer: MessageRenderer,
        dispatcher: NotificationDispatcher,
        send_acknowledgement: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.origin_gate = origin_gate
        self.rate_limiter = rate_limiter
        self.validator = validator
        self.renderer = renderer
        self.dispatcher = dispatcher
        self.send_acknowledgement = send_acknowledgement
        self.clock = clock

    async def submit(
        self,
        raw: Mapping[str, Any],
        client_key: str,
        origin: Optional[str] = None,
    ) -> PipelineResult:
        """
        Process a contact form submission.

        Args:
            raw: Untrusted form fields.
            client_key: Rate-limit identity of the caller.
            origin: Declared ``Origin`` header, if any.

        Returns:
            PipelineResult describing how the submission ended.
        """
        if not self.origin_gate.is_allowed(origin):
            return PipelineResult(
                status=PipelineStatus.ORIGIN_DENIED,
                success=False,
                message=CORS_DENIED_MESSAGE,
            )

        admission = self.rate_limiter.admit(client_key)
        if not admission.allowed:
            return PipelineResult(
                status=PipelineStatus.RATE_LIMITED,
                success=False,
                message=admission.message or "",
                retry_after=admission.retry_after,
            )

        validation = self.validator.validate(raw)
        if not validation.is_valid or validation.normalized is None:
            logger.info(
                f"Contact form rejected: invalid fields {sorted(validation.errors)}"
            )
            return PipelineResult(
                status=PipelineStatus.INVALID,
                success=False,
                message=VALIDATION_FAILED_MESSAGE,
                errors=dict(validation.errors),
            )

        submission = validation.normalized
        admin_message = self.renderer.render_admin_notification(submission, self.clock())
        ack_message = (
            self.renderer.render_acknowledgement(submission)
            if self.send_acknowledgement
            else None
        )

        outcome = await self.dispatcher.dispatch(
            admin_message,
            ack_message,
            reply_to=submission.email,
            submitter_email=submission.email,
            submitter_name=submission.name,
        )

        if not outcome.succeeded:
            return PipelineResult(
                status=PipelineStatus.FAILED,
                success=False,
                message=DELIVERY_FAILED_MESSAGE,
                error=outcome.failure.message if outcome.failure else None,
            )

        logger.info(
            f"Contact form processed: admin={outcome.admin_message_id} "
            f"reply_sent={outcome.reply_sent}"
        )
        return PipelineResult(
            status=PipelineStatus.SENT,
            success=True,
            message=SUCCESS_MESSAGE,
        )


def build_submission_pipeline(
    settings: Settings,
    transport: Optional[MailTransport] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> SubmissionPipeline:
    """
    Wire a SubmissionPipeline from settings.

    Args:
        settings: Application settings.
        transport: Mail transport override (defaults to the configured one).
        rate_limiter: Rate limiter override (defaults to an in-memory one).

    Raises:
        ConfigurationException: If settings cannot produce working components.
    """
    if rate_limiter is None:
        rate_limiter = RateLimiter(
            store=InMemoryRateWindowStore(),
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
            max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        )

    return SubmissionPipeline(
        origin_gate=OriginGate(settings.allowed_origins),
        rate_limiter=rate_limiter,
        validator=FormValidator(),
        renderer=MessageRenderer(
            timezone_name=settings.NOTIFICATION_TIMEZONE,
            site_name=settings.MAIL_FROM_NAME,
        ),
        dispatcher=NotificationDispatcher(
            transport=transport or get_mail_transport(settings),
            sender_email=settings.MAIL_FROM_EMAIL,
            recipient_email=settings.recipient_email,
            sender_name=settings.MAIL_FROM_NAME,
        ),
        send_acknowledgement=settings.SEND_AUTO_REPLY,
    )
