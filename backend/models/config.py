import json
import os
import sys
from typing import Annotated, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",  # Create React App
    "http://localhost:5173",  # Vite
    "https://groenv8.com",
    "https://newgeofrontend.vercel.app",
]


def _should_load_env_file() -> str | None:
    """Determine if .env should be loaded.

    Local runs pick up `backend/.env` for convenience. Never under pytest
    or in CI, so tests see only the environment they set up themselves.
    """
    if any("pytest" in str(x) for x in sys.argv if x):
        return None
    if os.environ.get("CI") in ("1", "true", "True"):
        return None
    return ".env"


class Settings(BaseSettings):
    # Environment configuration
    ENVIRONMENT: str = Field(
        default="production",
        description="'development' exposes error details in responses and logs to a colored console",
    )
    PORT: int = Field(default=5000, description="Listening port")

    # Origin allowlist
    CORS_ORIGINS: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_CORS_ORIGINS),
        description="Allowed browser origins (comma-separated or JSON list in env var)",
    )
    FRONTEND_URL: str = Field(
        default="",
        description="Deployed frontend origin, appended to the allowlist when set",
    )

    # Mail transport
    MAIL_TRANSPORT: str = Field(
        default="console",
        description="Mail transport: 'smtp', 'brevo' or 'console'",
    )
    MAIL_FROM_EMAIL: str = Field(
        default="noreply@localhost",
        description="Fixed sender address for every outgoing message",
    )
    MAIL_FROM_NAME: str = Field(
        default="Your Website",
        description="Sender display name for acknowledgements and their sign-off",
    )
    RECIPIENT_EMAIL: str = Field(
        default="",
        description="Where contact notifications are delivered (defaults to MAIL_FROM_EMAIL)",
    )
    SEND_AUTO_REPLY: bool = Field(
        default=False,
        description="Send an acknowledgement to the submitter after the admin notification",
    )

    SMTP_HOST: str = Field(default="smtp.gmail.com", description="SMTP server hostname")
    SMTP_PORT: int = Field(default=587, description="SMTP server port")
    SMTP_USER: str = Field(default="", description="SMTP username")
    SMTP_PASSWORD: str = Field(default="", description="SMTP password")
    SMTP_USE_TLS: bool = Field(
        default=True,
        description="Use STARTTLS for SMTP connection (port 587)",
    )
    SMTP_USE_SSL: bool = Field(
        default=False,
        description="Use implicit SSL for SMTP connection (port 465)",
    )
    SMTP_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        description="Socket timeout for SMTP connections",
    )

    BREVO_API_KEY: str = Field(default="", description="Brevo API key")
    BREVO_ENDPOINT: str = Field(
        default="https://api.brevo.com/v3/smtp/email",
        description="Brevo transactional email endpoint",
    )
    BREVO_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="HTTP timeout for Brevo API calls",
    )

    # Rate limiting (per client IP)
    RATE_LIMIT_WINDOW_SECONDS: int = Field(
        default=15 * 60,
        description="Length of the fixed submission window",
    )
    RATE_LIMIT_MAX_REQUESTS: int = Field(
        default=5,
        description="Submissions allowed per client per window",
    )
    TRUST_PROXY_HEADERS: bool = Field(
        default=False,
        description=(
            "Key clients on CF-Connecting-IP / X-Real-IP / X-Forwarded-For. "
            "Enable only behind a proxy that overwrites these headers"
        ),
    )

    # Request handling
    MAX_BODY_BYTES: int = Field(
        default=10 * 1024 * 1024,
        description="Largest accepted request body",
    )
    SLOW_REQUEST_THRESHOLD: float = Field(
        default=1.0,
        description="Log warning for requests slower than this (seconds)",
    )

    # Rendering
    NOTIFICATION_TIMEZONE: str = Field(
        default="Asia/Kolkata",
        description="IANA timezone used for the 'Received' timestamp",
    )

    # Logging
    LOG_FILE: str = Field(
        default="",
        description="Optional rotating log file path",
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | List[str]) -> List[str]:
        """Parse CORS origins from a comma-separated string or JSON list."""
        if isinstance(v, str):
            stripped = v.strip()
            if stripped.startswith("["):
                return [str(origin).strip() for origin in json.loads(stripped)]
            return [origin.strip() for origin in stripped.split(",")]
        return v

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def allowed_origins(self) -> frozenset[str]:
        """Origin allowlist with the frontend URL folded in and blanks dropped."""
        origins = [*self.CORS_ORIGINS, self.FRONTEND_URL]
        return frozenset(origin for origin in origins if origin)

    @property
    def recipient_email(self) -> str:
        return self.RECIPIENT_EMAIL or self.MAIL_FROM_EMAIL

    model_config = SettingsConfigDict(
        env_file=_should_load_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",  # Allow extra env vars (e.g., SENTRY_DSN) without validation errors
    )


settings = Settings()
