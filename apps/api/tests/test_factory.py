from __future__ import annotations

import pytest

from onboarding_bridge.core.config import Settings
from onboarding_bridge.onboarding.crm_client import CrmConfig, HttpCrmClient, MockCrmClient
from onboarding_bridge.onboarding.factory import build_onboarding_service, close_onboarding_service
from onboarding_bridge.onboarding.provisioning_client import (
    HttpProvisioningClient,
    MockProvisioningClient,
    ProvisioningConfig,
)


def test_live_clients_receive_config_structs() -> None:
    settings = Settings(
        crm_api_base_url="https://crm.acme.io/api",
        crm_api_key="crm-key",
        crm_location_id="loc-9",
        crm_timeout_seconds=4.5,
        provisioning_base_url="https://accounts.acme.io",
        provisioning_api_key="prov-key",
    )

    service = build_onboarding_service(settings)
    try:
        assert isinstance(service.crm_client, HttpCrmClient)
        assert service.crm_client.config == CrmConfig(
            base_url="https://crm.acme.io/api",
            api_key="crm-key",
            location_id="loc-9",
            timeout_seconds=4.5,
        )
        assert isinstance(service.provisioning_client, HttpProvisioningClient)
        assert service.provisioning_client.config == ProvisioningConfig(
            base_url="https://accounts.acme.io",
            api_key="prov-key",
            timeout_seconds=10.0,
        )
    finally:
        close_onboarding_service(service)


def test_mock_flags_substitute_each_integration_independently() -> None:
    crm_only = build_onboarding_service(Settings(mock_crm=True))
    try:
        assert isinstance(crm_only.crm_client, MockCrmClient)
        assert isinstance(crm_only.provisioning_client, HttpProvisioningClient)
    finally:
        close_onboarding_service(crm_only)

    both = build_onboarding_service(Settings(mock_crm=True, mock_provisioning=True))
    assert isinstance(both.crm_client, MockCrmClient)
    assert isinstance(both.provisioning_client, MockProvisioningClient)
    close_onboarding_service(both)


def test_settings_read_mock_flags_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MOCK_CRM", "true")
    monkeypatch.setenv("MOCK_PROVISIONING", "false")
    settings = Settings()
    assert settings.mock_crm is True
    assert settings.mock_provisioning is False
