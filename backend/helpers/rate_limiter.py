"""
Per-client submission rate limiting.

Each client key (normally the caller's IP) gets a fixed window that
opens on its first admitted submission. Up to ``max_requests``
submissions are admitted inside the window; later attempts are refused
until the window has elapsed, after which the count starts over.

Note: state is in-process memory. Running several workers gives each its
own counters.
"""

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Dict, Optional

from loguru import logger

from models.contact import AdmissionDecision

RATE_LIMIT_MESSAGE = "Too many contact form submissions, please try again later."

DEFAULT_WINDOW_SECONDS = 15 * 60
DEFAULT_MAX_REQUESTS = 5


@dataclass
class RateWindow:
    """Counter for one client key."""

    started_at: float
    count: int = 0


class InMemoryRateWindowStore:
    """
    Keyed rate windows with atomic check-and-increment.

    A single lock guards every key, which keeps the bookkeeping trivial;
    the critical section is a dict lookup and an integer bump.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._windows: Dict[str, RateWindow] = {}
        self._lock = threading.Lock()

    def hit(self, key: str, window_seconds: float, max_requests: int) -> tuple[bool, float]:
        """
        Try to count one admission for ``key``.

        Args:
            key: Client identity.
            window_seconds: Window length.
            max_requests: Admissions allowed per window.

        Returns:
            ``(admitted, seconds_until_reset)``. Refused attempts are not
            counted and do not extend the window.
        """
        with self._lock:
            now = self._clock()
            window = self._windows.get(key)

            if window is None or now - window.started_at >= window_seconds:
                self._prune(now, window_seconds)
                window = RateWindow(started_at=now)
                self._windows[key] = window

            remaining = window.started_at + window_seconds - now

            if window.count >= max_requests:
                return False, remaining

            window.count += 1
            return True, remaining

    def count(self, key: str) -> int:
        """Admissions counted in the key's current window (0 when idle)."""
        with self._lock:
            window = self._windows.get(key)
            return window.count if window else 0

    def reset(self, key: Optional[str] = None) -> None:
        """Forget one key, or every key when ``key`` is None."""
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)

    def _prune(self, now: float, window_seconds: float) -> None:
        # Caller holds the lock
        expired = [
            key
            for key, window in self._windows.items()
            if now - window.started_at >= window_seconds
        ]
        for key in expired:
            del self._windows[key]


class RateLimiter:
    """Admission control for contact submissions."""

    def __init__(
        self,
        store: Optional[InMemoryRateWindowStore] = None,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        max_requests: int = DEFAULT_MAX_REQUESTS,
    ):
        self.store = store if store is not None else InMemoryRateWindowStore()
        self.window_seconds = window_seconds
        self.max_requests = max_requests

    def admit(self, client_key: str) -> AdmissionDecision:
        """
        Admit or refuse one submission attempt.

        Args:
            client_key: Stable client identity (e.g. IP address).

        Returns:
            AdmissionDecision; when refused it carries ``retry_after``
            in whole seconds and a user-facing message.
        """
        admitted, remaining = self.store.hit(
            client_key, self.window_seconds, self.max_requests
        )
        if admitted:
            return AdmissionDecision(allowed=True)

        retry_after = max(1, math.ceil(remaining))
        logger.info(f"Rate limit reached for client {client_key}; retry in {retry_after}s")
        return AdmissionDecision(
            allowed=False, retry_after=retry_after, message=RATE_LIMIT_MESSAGE
        )

    def reset(self, client_key: Optional[str] = None) -> None:
        """Clear counters for one client or for all of them."""
        self.store.reset(client_key)
