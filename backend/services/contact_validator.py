"""Field-level validation for contact form submissions.

Every rule is checked independently so the caller gets all problems in
one response. Markup characters are *not* rejected here; escaping is the
renderer's job.
"""

from typing import Any, Dict, Mapping, Optional

from email_validator import EmailNotValidError, validate_email

from models.contact import NormalizedSubmission, ValidationResult

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
SUBJECT_MIN_LENGTH = 5
SUBJECT_MAX_LENGTH = 200
MESSAGE_MAX_LENGTH = 2000


def is_valid_email(address: str) -> bool:
    """Check address syntax only (no DNS or deliverability lookups)."""
    try:
        validate_email(address, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


class FormValidator:
    """Validate and normalize raw contact form input."""

    def validate(self, data: Mapping[str, Any]) -> ValidationResult:
        """
        Validate a raw submission.

        Args:
            data: Untrusted fields ``name``, ``email``, ``subject`` and the
                optional ``message``. Missing keys are treated as absent.

        Returns:
            ValidationResult with every field error, and the trimmed
            record when there are none.
        """
        errors: Dict[str, str] = {}

        name = self._check_length(
            data.get("name"), "name", "Name", NAME_MIN_LENGTH, NAME_MAX_LENGTH, errors
        )
        email = self._check_email(data.get("email"), errors)
        subject = self._check_length(
            data.get("subject"),
            "subject",
            "Subject",
            SUBJECT_MIN_LENGTH,
            SUBJECT_MAX_LENGTH,
            errors,
        )
        message = self._check_message(data.get("message"), errors)

        if errors:
            return ValidationResult(errors=errors)

        return ValidationResult(
            errors={},
            normalized=NormalizedSubmission(
                name=name or "",
                email=email or "",
                subject=subject or "",
                message=message,
            ),
        )

    @staticmethod
    def _check_length(
        value: Any,
        field: str,
        label: str,
        min_length: int,
        max_length: int,
        errors: Dict[str, str],
    ) -> Optional[str]:
        if value is not None and not isinstance(value, str):
            errors[field] = f"{label} must be a string"
            return None

        trimmed = (value or "").strip()
        if not trimmed:
            errors[field] = f"{label} is required"
        elif len(trimmed) < min_length:
            errors[field] = f"{label} must be at least {min_length} characters long"
        elif len(trimmed) > max_length:
            errors[field] = f"{label} must be less than {max_length} characters"
        return trimmed

    @staticmethod
    def _check_email(value: Any, errors: Dict[str, str]) -> Optional[str]:
        if value is not None and not isinstance(value, str):
            errors["email"] = "Email must be a string"
            return None

        trimmed = (value or "").strip()
        if not trimmed:
            errors["email"] = "Email is required"
        elif not is_valid_email(trimmed):
            errors["email"] = "Invalid email format"
        return trimmed

    @staticmethod
    def _check_message(value: Any, errors: Dict[str, str]) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            errors["message"] = "Message must be a string"
            return ""

        # Limit applies to the raw text, before trimming
        if len(value) > MESSAGE_MAX_LENGTH:
            errors["message"] = (
                f"Message must be less than {MESSAGE_MAX_LENGTH} characters"
            )
        return value.strip()
