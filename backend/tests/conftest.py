"""
Pytest configuration and fixtures for backend tests.
"""

import os
import sys
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Set

import pytest
from fastapi.testclient import TestClient

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Set test environment variables before importing config
os.environ["ENVIRONMENT"] = "test"
os.environ["CORS_ORIGINS"] = "http://localhost:3000,https://groenv8.com"
os.environ["FRONTEND_URL"] = ""
os.environ["MAIL_TRANSPORT"] = "console"
os.environ["MAIL_FROM_EMAIL"] = "contact@example.com"
os.environ["MAIL_FROM_NAME"] = "Example Site"
os.environ["RECIPIENT_EMAIL"] = "owner@example.com"
os.environ["SEND_AUTO_REPLY"] = "false"
os.environ.pop("SENTRY_DSN", None)

from models.config import Settings  # noqa: E402
from models.contact import OutboundEmail  # noqa: E402
from models.exceptions import MailTransportException  # noqa: E402
from services.mail_transport import MailTransport  # noqa: E402

VALID_FORM = {
    "name": "Jane Doe",
    "email": "jane@example.com",
    "subject": "Hello there",
    "message": "Hi",
}


class RecordingTransport(MailTransport):
    """Mail transport that records messages instead of delivering them.

    Messages addressed to anything in ``fail_for`` raise
    MailTransportException, like a real relay refusing them.
    """

    name = "recording"

    def __init__(self, fail_for: Optional[Set[str]] = None) -> None:
        self.sent: List[OutboundEmail] = []
        self.attempts: List[OutboundEmail] = []
        self.fail_for: Set[str] = set(fail_for or ())

    async def send(self, message: OutboundEmail) -> str:
        self.attempts.append(message)
        if message.to in self.fail_for:
            raise MailTransportException("Connection refused", transport=self.name)
        self.sent.append(message)
        return f"<msg-{len(self.sent)}@example.com>"


class FakeClock:
    """Monotonic clock under test control."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def valid_form() -> dict:
    """A submission that passes validation."""
    return dict(VALID_FORM)


@pytest.fixture
def transport() -> RecordingTransport:
    """Fresh recording transport for each test."""
    return RecordingTransport()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def test_settings() -> Settings:
    """Settings built from the test environment."""
    return Settings()


@pytest.fixture
def make_client(
    transport: RecordingTransport,
) -> Iterator[Callable[..., TestClient]]:
    """
    Factory for test clients bound to a freshly built app.

    Keyword arguments override settings fields. The app's submission
    pipeline is rebuilt around the recording transport, so every client
    also starts with empty rate-limit counters.
    """
    from main import create_app
    from routers.contact_router import get_submission_pipeline
    from services.contact_service import build_submission_pipeline

    clients: List[TestClient] = []

    def _make(raise_server_exceptions: bool = True, **overrides) -> TestClient:
        app_settings = Settings(**overrides)
        app = create_app(app_settings)
        pipeline = build_submission_pipeline(app_settings, transport=transport)
        app.dependency_overrides[get_submission_pipeline] = lambda: pipeline
        test_client = TestClient(app, raise_server_exceptions=raise_server_exceptions)
        clients.append(test_client)
        return test_client

    yield _make

    for test_client in clients:
        test_client.app.dependency_overrides.clear()  # type: ignore[attr-defined]
        test_client.close()


@pytest.fixture
def client(make_client: Callable[..., TestClient]) -> TestClient:
    """Test client with default test settings."""
    return make_client()


@pytest.fixture
def make_transport() -> Callable[..., RecordingTransport]:
    """Factory for recording transports with custom failures."""
    return RecordingTransport
