"""
Domain records for a single contact submission.

These live only for the duration of one request; nothing here is
persisted.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from models.exceptions import MailTransportException


@dataclass(frozen=True)
class NormalizedSubmission:
    """Trimmed, validated form fields. ``message`` is "" when not provided."""

    name: str
    email: str
    subject: str
    message: str = ""


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one submission.

    ``normalized`` is only set when ``is_valid`` is True.
    """

    errors: Mapping[str, str]
    normalized: Optional[NormalizedSubmission] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "errors", MappingProxyType(dict(self.errors)))

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class RenderedMessage:
    """Subject line plus HTML and plain-text bodies."""

    subject: str
    html: str
    text: str


@dataclass(frozen=True)
class OutboundEmail:
    """A message ready to be handed to a mail transport."""

    sender: str
    to: str
    subject: str
    html: str
    text: str
    reply_to: Optional[str] = None


@dataclass
class DispatchOutcome:
    """Result of the admin send and the optional acknowledgement send.

    ``failure`` is an admin-leg fault; ``reply_failure`` only records an
    acknowledgement fault and never turns the outcome into a failure.
    """

    admin_sent: bool = False
    admin_message_id: Optional[str] = None
    reply_sent: bool = False
    reply_message_id: Optional[str] = None
    failure: Optional[MailTransportException] = None
    reply_failure: Optional[MailTransportException] = None

    @property
    def succeeded(self) -> bool:
        return self.admin_sent


@dataclass(frozen=True)
class AdmissionDecision:
    """Rate limiter verdict for one attempt."""

    allowed: bool
    retry_after: Optional[int] = None
    message: Optional[str] = None


class PipelineStatus(str, Enum):
    """How a submission ended."""

    SENT = "sent"
    INVALID = "invalid"
    RATE_LIMITED = "rate_limited"
    ORIGIN_DENIED = "origin_denied"
    FAILED = "failed"


@dataclass(frozen=True)
class PipelineResult:
    """Single outcome handed back to the HTTP layer."""

    status: PipelineStatus
    success: bool
    message: str
    errors: Mapping[str, str] = field(default_factory=dict)
    error: Optional[str] = None
    retry_after: Optional[int] = None
