"""
Services layer for the contact submission flow.

Validation, rendering and delivery live here, separate from the API
routes.
"""

from .contact_service import SubmissionPipeline, build_submission_pipeline
from .contact_validator import FormValidator
from .mail_transport import MailTransport, get_mail_transport
from .message_renderer import MessageRenderer
from .notification_dispatcher import NotificationDispatcher

__all__ = [
    "SubmissionPipeline",
    "build_submission_pipeline",
    "FormValidator",
    "MailTransport",
    "get_mail_transport",
    "MessageRenderer",
    "NotificationDispatcher",
]
