"""Builds the onboarding service from settings, swapping in stand-ins for mocked integrations."""
from __future__ import annotations

import logging

from onboarding_bridge.core.config import Settings
from onboarding_bridge.onboarding.crm_client import CrmClient, CrmConfig, HttpCrmClient, MockCrmClient
from onboarding_bridge.onboarding.provisioning_client import (
    HttpProvisioningClient,
    MockProvisioningClient,
    ProvisioningClient,
    ProvisioningConfig,
)
from onboarding_bridge.onboarding.repository import ProvisioningStore
from onboarding_bridge.onboarding.service import OnboardingService


logger = logging.getLogger("onboarding_bridge.lifecycle")


def build_crm_client(settings: Settings) -> CrmClient:
    if settings.mock_crm:
        logger.info("crm.mock_mode_enabled", extra={"integration": "crm"})
        return MockCrmClient()
    return HttpCrmClient(CrmConfig.from_settings(settings))


def build_provisioning_client(settings: Settings) -> ProvisioningClient:
    if settings.mock_provisioning:
        logger.info("provisioning.mock_mode_enabled", extra={"integration": "provisioning"})
        return MockProvisioningClient()
    return HttpProvisioningClient(ProvisioningConfig.from_settings(settings))


def build_onboarding_service(settings: Settings) -> OnboardingService:
    return OnboardingService(
        crm_client=build_crm_client(settings),
        provisioning_client=build_provisioning_client(settings),
        store=ProvisioningStore(),
    )


def close_onboarding_service(service: OnboardingService) -> None:
    for client in (service.crm_client, service.provisioning_client):
        close = getattr(client, "close", None)
        if callable(close):
            close()
