"""Registration payload validation.

All checks run and every failing message is collected, so a caller gets the
complete list of problems in one round trip.
"""
from __future__ import annotations

import re

from email_validator import EmailNotValidError, validate_email

from onboarding_bridge.onboarding.schemas import RegistrationInput, ValidationResult

_PHONE_SEPARATORS_RE = re.compile(r"[\s\-()+]")
_PHONE_DIGITS_RE = re.compile(r"[0-9]{10,15}")


def is_valid_email(value: str) -> bool:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_valid_phone(value: str) -> bool:
    cleaned = _PHONE_SEPARATORS_RE.sub("", value)
    return _PHONE_DIGITS_RE.fullmatch(cleaned) is not None


def validate(payload: RegistrationInput) -> ValidationResult:
    errors: list[str] = []

    first_name = (payload.first_name or "").strip()
    last_name = (payload.last_name or "").strip()
    email = (payload.email or "").strip()
    phone = (payload.phone or "").strip()

    if not first_name:
        errors.append("First name is required")
    if not last_name:
        errors.append("Last name is required")

    if not email:
        errors.append("Email is required")
    elif not is_valid_email(email):
        errors.append("Invalid email format")

    if not phone:
        errors.append("Phone is required")
    elif not is_valid_phone(phone):
        errors.append("Phone must be numeric and 10-15 digits")

    return ValidationResult(valid=not errors, errors=errors)
