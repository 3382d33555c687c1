"""
Request utilities for identifying the calling client.

The rate limiter keys on the connecting peer's address. Forwarding
headers are client-controlled, so they are only honoured when the
deployment opts in because a trusted proxy rewrites them.
"""

from typing import Optional

from fastapi import Request
from slowapi.util import get_remote_address

UNKNOWN_CLIENT = "unknown"


def get_client_ip(request: Request) -> Optional[str]:
    """
    Extract the client's real IP address from the request.

    Handles common proxy headers in order of precedence:
    1. CF-Connecting-IP (Cloudflare)
    2. X-Real-IP (nginx)
    3. X-Forwarded-For (standard proxy header, first IP)
    4. Direct client.host

    Args:
        request: FastAPI request object

    Returns:
        Client IP address or None if not available
    """
    cf_ip = request.headers.get("CF-Connecting-IP")
    if cf_ip and cf_ip.strip():
        return cf_ip.strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first_ip = forwarded_for.split(",")[0].strip()
        if first_ip:
            return first_ip

    if request.client:
        return request.client.host

    return None


def get_client_key(request: Request, trust_proxy_headers: bool = False) -> str:
    """
    Rate-limit key for a request.

    Without ``trust_proxy_headers`` this is the socket peer, so rotating
    X-Forwarded-For and friends cannot mint fresh rate-limit buckets.
    """
    if trust_proxy_headers:
        return get_client_ip(request) or UNKNOWN_CLIENT
    if request.client is None:
        return UNKNOWN_CLIENT
    return get_remote_address(request)
