"""
Sentry SDK configuration.

Sentry is optional: it is enabled only when ``SENTRY_DSN`` is set.
Contact submissions carry personal data (names, addresses, free text),
so events are scrubbed before they leave the process.
"""

import os
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.loguru import LoguruIntegration
from sentry_sdk.types import Event, Hint

HEALTH_PATHS = ("/api/health",)

FILTERED = "[Filtered]"


def _before_send(event: Event, hint: Hint) -> Event | None:
    """
    Scrub submitter PII before sending an event to Sentry.

    - Drop user email/username and let Sentry anonymize the IP
    - Drop cookies and request bodies (the contact form payload)
    - Mask the Authorization header

    Args:
        event: Sentry event.
        hint: Additional context about the event.

    Returns:
        The scrubbed event.
    """
    user = event.get("user")
    if user:
        user.pop("email", None)
        user.pop("username", None)
        if "ip_address" in user:
            user["ip_address"] = "{{auto}}"

    request = event.get("request")
    if request and isinstance(request, dict):
        request.pop("cookies", None)
        if "data" in request:
            request["data"] = FILTERED
        headers = request.get("headers")
        if isinstance(headers, dict):
            for name in list(headers):
                if name.lower() == "authorization":
                    headers[name] = FILTERED

    return event


def _before_send_transaction(event: Event, hint: Hint) -> Event | None:
    """Drop health-check transactions."""
    transaction_name = event.get("transaction", "")
    if transaction_name in HEALTH_PATHS or transaction_name in [
        f"GET {path}" for path in HEALTH_PATHS
    ]:
        return None
    return event


def _traces_sampler(sampling_context: dict[str, Any]) -> float:
    """
    Sample rate per request.

    Args:
        sampling_context: Context about the request being sampled.

    Returns:
        Sample rate between 0.0 and 1.0.
    """
    if sampling_context.get("parent_sampled") is True:
        return 1.0

    asgi_scope = sampling_context.get("asgi_scope", {})
    path = asgi_scope.get("path", "")

    if path in HEALTH_PATHS:
        return 0.0

    # Submissions are low volume; trace all of them
    if path.startswith("/api/contact"):
        return 1.0

    return 0.2


def init_sentry() -> bool:
    """
    Initialize Sentry with FastAPI and Loguru integrations.

    Call this BEFORE creating the FastAPI app instance.

    Returns:
        True if Sentry was initialized, False when no DSN is configured.
    """
    dsn = os.getenv("SENTRY_DSN")
    if not dsn:
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=os.getenv("ENVIRONMENT", "production"),
        release=os.getenv("SENTRY_RELEASE", "unknown"),
        send_default_pii=False,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            LoguruIntegration(),
        ],
        traces_sampler=_traces_sampler,
        sample_rate=1.0,
        before_send=_before_send,
        before_send_transaction=_before_send_transaction,
        attach_stacktrace=True,
        max_breadcrumbs=50,
        ignore_errors=[KeyboardInterrupt, SystemExit],
    )
    return True
