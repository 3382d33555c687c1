"""Models package - settings, API schemas, domain records and exceptions."""

from .contact import (
    AdmissionDecision,
    DispatchOutcome,
    NormalizedSubmission,
    OutboundEmail,
    PipelineResult,
    PipelineStatus,
    RenderedMessage,
    ValidationResult,
)

__all__ = [
    "AdmissionDecision",
    "DispatchOutcome",
    "NormalizedSubmission",
    "OutboundEmail",
    "PipelineResult",
    "PipelineStatus",
    "RenderedMessage",
    "ValidationResult",
]
