from __future__ import annotations

from dataclasses import dataclass

CRM_FAILURE_PREFIX = "CRM sync failed"
PROVISIONING_FAILURE_PREFIX = "Provisioning failed"
STORE_FAILURE_PREFIX = "Store operation failed"


class OnboardingError(Exception):
    """Base error for every failure raised by the onboarding workflow."""


class ValidationFailure(OnboardingError):
    """Raised when a registration payload fails input validation."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__(f"Validation failed: {'; '.join(self.errors)}")


class _PrefixedFailure(OnboardingError):
    prefix = ""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"{self.prefix}: {detail}")


class CrmSyncFailure(_PrefixedFailure):
    """Search, create or update against the CRM failed or returned garbage."""

    prefix = CRM_FAILURE_PREFIX


class RemoteContractViolation(CrmSyncFailure):
    """The CRM answered 2xx but the body is missing a field we depend on."""


class ProvisioningFailure(_PrefixedFailure):
    prefix = PROVISIONING_FAILURE_PREFIX


class StoreFailure(_PrefixedFailure):
    prefix = STORE_FAILURE_PREFIX


class DuplicateRecord(OnboardingError):
    """A concurrent insert already created the row for this email."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"Provisioned user already exists for {email}")


@dataclass(frozen=True)
class FailureClassification:
    status_code: int
    message: str
    integration: str | None = None


_CLASSIFICATIONS: tuple[tuple[str, FailureClassification], ...] = (
    (CRM_FAILURE_PREFIX, FailureClassification(502, "CRM integration failed. Please try again later.", "crm")),
    (
        PROVISIONING_FAILURE_PREFIX,
        FailureClassification(502, "Provisioning platform failed. Please try again later.", "provisioning"),
    ),
    (STORE_FAILURE_PREFIX, FailureClassification(500, "Onboarding failed", "store")),
)


def classify_failure(exc: BaseException) -> FailureClassification:
    """Map any exception to an HTTP status by looking for a known failure prefix in its message."""
    message = str(exc)
    for prefix, classification in _CLASSIFICATIONS:
        if f"{prefix}:" in message:
            return classification
    return FailureClassification(500, "Onboarding failed")
