"""
Request correlation IDs.

Every inbound request gets a short ID that is bound to its log lines,
echoed back in the ``X-Correlation-ID`` header and attached to domain
exceptions, so a failed submission reported by a visitor can be traced
in the server logs.
"""

import re
import uuid
from contextvars import ContextVar

# Request-scoped correlation ID (empty string outside a request)
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# Incoming IDs are echoed into logs and headers, so keep them boring
_ACCEPTED_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def generate_correlation_id() -> str:
    """
    Generate a short correlation ID.

    Returns:
        8 lowercase hexadecimal characters, e.g. ``"3f9a0c1e"``.
    """
    return uuid.uuid4().hex[:8]


def get_correlation_id() -> str:
    """Return the current request's correlation ID, or ``""`` if unset."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """Bind a correlation ID to the current context."""
    correlation_id_var.set(correlation_id)


def resolve_correlation_id(incoming: str | None) -> str:
    """
    Pick the correlation ID for a request.

    A caller-supplied ID (from the frontend) is reused when it is a plain
    token; anything else is replaced by a freshly generated one.

    Args:
        incoming: Value of the ``X-Correlation-ID`` request header, if any.

    Returns:
        The correlation ID to use for this request.
    """
    if incoming and _ACCEPTED_ID.match(incoming):
        return incoming
    return generate_correlation_id()
