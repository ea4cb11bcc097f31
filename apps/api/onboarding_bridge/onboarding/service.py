from __future__ import annotations

import logging
import time

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from sqlalchemy.orm import Session

from onboarding_bridge.metrics import observe_integration_failure, observe_onboarding
from onboarding_bridge.onboarding.crm_client import CrmClient
from onboarding_bridge.onboarding.errors import (
    CrmSyncFailure,
    DuplicateRecord,
    OnboardingError,
    ProvisioningFailure,
    StoreFailure,
    ValidationFailure,
)
from onboarding_bridge.onboarding.provisioning_client import ProvisioningClient
from onboarding_bridge.onboarding.repository import ProvisioningStore
from onboarding_bridge.onboarding.schemas import (
    NewProvisionedUser,
    OnboardingResult,
    ProvisionRequest,
    RegistrationInput,
)
from onboarding_bridge.onboarding.validation import validate


logger = logging.getLogger("onboarding_bridge.onboarding")
tracer = trace.get_tracer("onboarding_bridge.onboarding")

_FAILURE_INTEGRATIONS: tuple[tuple[type[OnboardingError], str], ...] = (
    (ValidationFailure, "validation"),
    (CrmSyncFailure, "crm"),
    (ProvisioningFailure, "provisioning"),
    (StoreFailure, "store"),
)


class OnboardingService:
    """Runs one registration through CRM sync, duplicate check, remote provisioning and persistence.

    The steps run strictly in order and nothing is compensated on failure: a
    CRM contact created or updated before a later step fails stays in place.
    Same-email races are settled by the store's unique constraint; the loser
    reports ``already_provisioned``.
    """

    def __init__(
        self,
        crm_client: CrmClient,
        provisioning_client: ProvisioningClient,
        store: ProvisioningStore | None = None,
    ) -> None:
        self.crm_client = crm_client
        self.provisioning_client = provisioning_client
        self.store = store or ProvisioningStore()

    def onboard(self, session: Session, registration: RegistrationInput) -> OnboardingResult:
        started = time.perf_counter()
        with tracer.start_as_current_span("onboarding.onboard") as span:
            try:
                result = self._run(session, registration.trimmed())
            except OnboardingError as exc:
                integration = self._integration_for(exc)
                observe_integration_failure(integration)
                observe_onboarding("failed", time.perf_counter() - started)
                span.set_status(Status(StatusCode.ERROR, str(exc)[:200]))
                logger.warning(
                    "onboarding.failed",
                    extra={"integration": integration, "error": str(exc)},
                )
                raise

            span.set_attribute("provisioning_status", result.provisioning_status)
            observe_onboarding(result.provisioning_status, time.perf_counter() - started)
            logger.info(
                "onboarding.completed",
                extra={
                    "crm_contact_id": result.crm_contact_id,
                    "provisioning_status": result.provisioning_status,
                },
            )
            return result

    def _run(self, session: Session, registration: RegistrationInput) -> OnboardingResult:
        validation = validate(registration)
        if not validation.valid:
            raise ValidationFailure(validation.errors)

        with tracer.start_as_current_span("onboarding.crm_sync"):
            contact = self.crm_client.sync_contact(registration)
        logger.info(
            "onboarding.crm_synced",
            extra={"step": "crm_sync", "crm_contact_id": contact.crm_contact_id, "is_new": contact.is_new},
        )

        with tracer.start_as_current_span("onboarding.check_duplicate"):
            existing = self.store.find_by_email(session, registration.email)
        if existing is not None:
            logger.info("onboarding.already_provisioned", extra={"step": "check_duplicate"})
            return OnboardingResult(
                crm_contact_id=contact.crm_contact_id,
                provisioning_status="already_provisioned",
                record=existing,
            )

        with tracer.start_as_current_span("onboarding.provision_remote"):
            provisioned = self.provisioning_client.provision_remote(
                ProvisionRequest(
                    full_name=registration.full_name,
                    email=registration.email,
                    phone=registration.phone,
                    crm_contact_id=contact.crm_contact_id,
                )
            )

        with tracer.start_as_current_span("onboarding.persist"):
            try:
                record = self.store.insert(
                    session,
                    NewProvisionedUser(
                        first_name=registration.first_name,
                        last_name=registration.last_name,
                        email=registration.email,
                        phone=registration.phone,
                        crm_contact_id=contact.crm_contact_id,
                        external_account_id=provisioned.external_account_id,
                    ),
                )
            except DuplicateRecord:
                logger.info("onboarding.insert_race_lost", extra={"step": "persist"})
                winner = self.store.find_by_email(session, registration.email)
                if winner is None:
                    raise StoreFailure(f"row for {registration.email} vanished after a uniqueness conflict")
                return OnboardingResult(
                    crm_contact_id=contact.crm_contact_id,
                    provisioning_status="already_provisioned",
                    record=winner,
                )

        return OnboardingResult(
            crm_contact_id=contact.crm_contact_id,
            provisioning_status="success",
            record=record,
        )

    @staticmethod
    def _integration_for(exc: OnboardingError) -> str:
        for error_type, integration in _FAILURE_INTEGRATIONS:
            if isinstance(exc, error_type):
                return integration
        return "unknown"
