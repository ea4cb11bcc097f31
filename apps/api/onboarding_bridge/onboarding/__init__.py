from onboarding_bridge.onboarding.errors import (
    CrmSyncFailure,
    DuplicateRecord,
    OnboardingError,
    ProvisioningFailure,
    RemoteContractViolation,
    StoreFailure,
    ValidationFailure,
)
from onboarding_bridge.onboarding.schemas import OnboardingResult, RegistrationInput
from onboarding_bridge.onboarding.service import OnboardingService

__all__ = [
    "CrmSyncFailure",
    "DuplicateRecord",
    "OnboardingError",
    "OnboardingResult",
    "OnboardingService",
    "ProvisioningFailure",
    "RegistrationInput",
    "RemoteContractViolation",
    "StoreFailure",
    "ValidationFailure",
]
