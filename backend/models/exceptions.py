"""
Domain exceptions for the contact relay.

Admission and validation problems are expected and travel as pipeline
results, not exceptions. The exceptions here cover the unexpected:
mail transport faults and broken configuration. Each carries a
correlation ID so a failure reported by a visitor can be matched to
the server logs.
"""

from core.correlation import generate_correlation_id, get_correlation_id


class DomainException(Exception):
    """
    Base class for all domain exceptions.

    Attributes:
        message: Human-readable error message.
        correlation_id: Unique ID for error tracking (auto-generated if not provided).
    """

    def __init__(self, message: str, correlation_id: str | None = None):
        self.message = message
        # Use request correlation ID if available, otherwise generate new one
        self.correlation_id = (
            correlation_id or get_correlation_id() or generate_correlation_id()
        )
        super().__init__(self.message)


class MailTransportException(DomainException):
    """Raised by a mail transport when a message could not be delivered.

    Attributes:
        transport: Name of the transport that failed (``smtp``, ``brevo``...).
    """

    def __init__(
        self,
        message: str,
        transport: str = "unknown",
        correlation_id: str | None = None,
    ):
        super().__init__(message, correlation_id)
        self.transport = transport


class ConfigurationException(DomainException):
    """Raised at startup when settings cannot be turned into working components."""

    pass
