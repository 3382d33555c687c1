# ruff: noqa: E402
# E402 disabled: load_dotenv() must run before other imports for Sentry DSN

import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

import sentry_sdk
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from core.correlation import (
    generate_correlation_id,
    get_correlation_id,
    resolve_correlation_id,
    set_correlation_id,
)
from core.logging_config import configure_logging
from core.sentry_config import init_sentry
from helpers.origin_gate import OriginGate, OriginGateMiddleware
from helpers.security_headers import BodySizeLimitMiddleware, SecurityHeadersMiddleware
from models.config import Settings, settings
from models.exceptions import DomainException, MailTransportException
from models.schemas import HealthResponse
from routers import contact_router
from services.contact_service import DELIVERY_FAILED_MESSAGE, build_submission_pipeline

# Initialize Sentry BEFORE app creation
init_sentry()

# Configure logging with Loguru
configure_logging(settings.ENVIRONMENT, settings.LOG_FILE)

CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_HEADERS = ["Content-Type", "Authorization"]


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Inject correlation ID into request context and Sentry."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Process request with correlation ID tracking."""
        correlation_id = resolve_correlation_id(request.headers.get("X-Correlation-ID"))
        set_correlation_id(correlation_id)

        sentry_sdk.set_tag("correlation_id", correlation_id)

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all incoming requests with performance monitoring."""

    def __init__(self, app: ASGIApp, slow_request_threshold: float = 1.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Process request and log timing information."""
        start_time = time.perf_counter()

        client_host = request.client.host if request.client else "unknown"
        logger.info(f"Request: {request.method} {request.url.path} from {client_host}")

        response = await call_next(request)

        duration = time.perf_counter() - start_time
        logger.info(
            f"Response: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s"
        )

        if duration > self.slow_request_threshold:
            logger.warning(
                f"Slow request: {request.method} {request.url.path} "
                f"took {duration:.2f}s (threshold: {self.slow_request_threshold}s)"
            )

        response.headers["X-Response-Time"] = f"{duration:.3f}s"
        return response


def _error_detail(app_settings: Settings, exc: Exception) -> Optional[str]:
    """Exception text for responses, only when running in development."""
    return str(exc) if app_settings.is_development else None


def _failure_response(status_code: int, message: str, error: Optional[str] = None) -> JSONResponse:
    content: dict = {"success": False, "message": message}
    if error is not None:
        content["error"] = error
    return JSONResponse(status_code=status_code, content=content)


def _register_exception_handlers(app_instance: FastAPI, app_settings: Settings) -> None:
    """Centralized exception handlers; every failure uses the same JSON shape."""

    @app_instance.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Map framework HTTP errors (unknown route, wrong method...)."""
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return _failure_response(exc.status_code, "Route not found")
        return _failure_response(exc.status_code, str(exc.detail))

    @app_instance.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Undecodable or non-object request bodies."""
        logger.info(f"Invalid request body on {request.url.path}")
        return _failure_response(status.HTTP_400_BAD_REQUEST, "Invalid request body")

    @app_instance.exception_handler(MailTransportException)
    async def mail_transport_handler(
        request: Request, exc: MailTransportException
    ) -> JSONResponse:
        """Mail delivery failure that escaped the dispatcher."""
        sentry_sdk.set_tag("correlation_id", exc.correlation_id)
        sentry_sdk.capture_exception(exc)
        logger.error(
            f"Email delivery failed via {exc.transport}: {exc.message!r} "
            f"path={request.url.path}"
        )
        return _failure_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            DELIVERY_FAILED_MESSAGE,
            _error_detail(app_settings, exc),
        )

    @app_instance.exception_handler(DomainException)
    async def domain_exception_handler(
        request: Request, exc: DomainException
    ) -> JSONResponse:
        """Handle generic domain exceptions with Sentry integration."""
        sentry_sdk.set_tag("correlation_id", exc.correlation_id)
        sentry_sdk.set_tag("exception_type", exc.__class__.__name__)
        sentry_sdk.capture_exception(exc)

        logger.error(
            f"Domain exception {exc.__class__.__name__}: {exc.message!r} "
            f"path={request.url.path}"
        )
        return _failure_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            _error_detail(app_settings, exc),
        )

    # Global unhandled exception handler (returns generic 500 and logs details)
    @app_instance.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch all unhandled exceptions with full Sentry capture."""
        correlation_id = get_correlation_id() or generate_correlation_id()

        sentry_sdk.set_tag("correlation_id", correlation_id)
        sentry_sdk.capture_exception(exc)

        # repr() keeps braces in the message away from loguru's formatting
        logger.exception(
            f"Unhandled exception: {exc!r} method={request.method} path={request.url.path}"
        )

        # Sent from outside the middleware stack, so only this header is added
        response = _failure_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            _error_detail(app_settings, exc),
        )
        response.headers["X-Correlation-ID"] = correlation_id
        return response


def create_app(app_settings: Settings = settings) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        app_settings: Settings to wire the app from (tests pass their own).

    Returns:
        Configured FastAPI instance with the submission pipeline attached
        as ``app.state.submission_pipeline``.
    """
    app_instance = FastAPI(title="Contact Relay API")

    app_instance.state.settings = app_settings
    app_instance.state.submission_pipeline = build_submission_pipeline(app_settings)

    origin_gate = OriginGate(app_settings.allowed_origins)

    # Middleware runs in reverse order of registration: the last one added
    # is the outermost.
    app_instance.add_middleware(
        BodySizeLimitMiddleware, max_bytes=app_settings.MAX_BODY_BYTES
    )
    app_instance.add_middleware(
        CORSMiddleware,
        allow_origins=sorted(origin_gate.allowed_origins),
        allow_credentials=True,
        allow_methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
    )
    app_instance.add_middleware(OriginGateMiddleware, gate=origin_gate)
    app_instance.add_middleware(
        SecurityHeadersMiddleware,
        enable_hsts=app_settings.ENVIRONMENT == "production",
    )
    app_instance.add_middleware(
        RequestLoggingMiddleware,
        slow_request_threshold=app_settings.SLOW_REQUEST_THRESHOLD,
    )
    app_instance.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app_instance, app_settings)

    app_instance.include_router(contact_router.router, prefix="/api")

    @app_instance.get("/api/health", response_model=HealthResponse)
    def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(timestamp=datetime.now(timezone.utc))

    return app_instance


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Server running on port {settings.PORT}")
    logger.info(f"Mail transport: {settings.MAIL_TRANSPORT}, from {settings.MAIL_FROM_EMAIL}")
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
