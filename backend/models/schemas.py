"""Request and response schemas for the HTTP API."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ContactFormRequest(BaseModel):
    """Raw contact form payload.

    Fields are deliberately untyped: the boundary accepts whatever the
    browser sends and FormValidator decides what is acceptable, so that
    every field problem is reported in one structured response.
    """

    model_config = ConfigDict(extra="ignore")

    name: Any = None
    email: Any = None
    subject: Any = None
    message: Any = None


class ContactFormResponse(BaseModel):
    """Successful submission."""

    success: bool = True
    message: str


class ValidationFailedResponse(BaseModel):
    """Submission rejected by field validation."""

    success: bool = False
    message: str = "Validation failed"
    errors: Dict[str, str]


class ErrorResponse(BaseModel):
    """Generic failure. ``error`` carries detail only in development."""

    success: bool = False
    message: str
    error: Optional[str] = None


class RateLimitResponse(BaseModel):
    """Too many submissions from one client."""

    error: str


class HealthResponse(BaseModel):
    """Liveness check."""

    success: bool = True
    message: str = "Server is running"
    timestamp: datetime = Field(description="Current server time (UTC)")
