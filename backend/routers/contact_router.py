"""Contact form router for handling website inquiries."""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from helpers.request_utils import get_client_key
from models.config import Settings
from models.contact import PipelineResult, PipelineStatus
from models.schemas import (
    ContactFormRequest,
    ContactFormResponse,
    ErrorResponse,
    RateLimitResponse,
    ValidationFailedResponse,
)
from services.contact_service import SubmissionPipeline

router = APIRouter(prefix="/contact", tags=["contact"])


def get_submission_pipeline(request: Request) -> SubmissionPipeline:
    """Pipeline built at startup (overridable in tests)."""
    return request.app.state.submission_pipeline


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was built from."""
    return request.app.state.settings


def _to_response(result: PipelineResult, settings: Settings) -> JSONResponse:
    if result.status == PipelineStatus.SENT:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content=ContactFormResponse(message=result.message).model_dump(),
        )

    if result.status == PipelineStatus.INVALID:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ValidationFailedResponse(
                message=result.message, errors=dict(result.errors)
            ).model_dump(),
        )

    if result.status == PipelineStatus.RATE_LIMITED:
        headers = {}
        if result.retry_after is not None:
            headers["Retry-After"] = str(result.retry_after)
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content=RateLimitResponse(error=result.message).model_dump(),
            headers=headers,
        )

    if result.status == PipelineStatus.ORIGIN_DENIED:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content=ErrorResponse(message=result.message).model_dump(exclude_none=True),
        )

    # Delivery failure: detail only in development
    body = ErrorResponse(
        message=result.message,
        error=result.error if settings.is_development else None,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(exclude_none=True),
    )


@router.post(
    "",
    response_model=ContactFormResponse,
    responses={
        400: {"model": ValidationFailedResponse},
        429: {"model": RateLimitResponse},
        500: {"model": ErrorResponse},
    },
)
async def submit_contact_form(
    request: Request,
    form: ContactFormRequest,
    pipeline: SubmissionPipeline = Depends(get_submission_pipeline),
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse:
    """Submit a contact form.

    Sends a notification email to the site owner and, when auto-reply is
    enabled, an acknowledgement to the submitter. No authentication;
    rate limited per client IP.

    Args:
        request: FastAPI request object (client IP and Origin header)
        form: Raw contact form fields

    Returns:
        JSON response whose status mirrors the pipeline outcome
    """
    result = await pipeline.submit(
        form.model_dump(),
        client_key=get_client_key(
            request, trust_proxy_headers=settings.TRUST_PROXY_HEADERS
        ),
        origin=request.headers.get("origin"),
    )
    return _to_response(result, settings)
