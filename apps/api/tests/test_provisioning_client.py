from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from onboarding_bridge.onboarding.errors import ProvisioningFailure
from onboarding_bridge.onboarding.provisioning_client import (
    HttpProvisioningClient,
    MockProvisioningClient,
    ProvisioningConfig,
)
from onboarding_bridge.onboarding.schemas import ProvisionRequest


REQUEST = ProvisionRequest(
    full_name="Jane Doe",
    email="jane.doe@acme.io",
    phone="+12345678900",
    crm_contact_id="ghl-1",
)


def _client(handler: Any, api_key: str = "") -> HttpProvisioningClient:
    config = ProvisioningConfig(base_url="http://provisioning.internal", api_key=api_key)
    http_client = httpx.Client(base_url=config.base_url, transport=httpx.MockTransport(handler))
    return HttpProvisioningClient(config, http_client=http_client)


def test_provision_posts_payload_and_reads_user_id() -> None:
    seen: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["headers"] = dict(request.headers)
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"userId": "acct-42"})

    result = _client(handler, api_key="prov-key").provision_remote(REQUEST)

    assert result.external_account_id == "acct-42"
    assert seen["path"] == "/api/v1/provision-user"
    assert seen["headers"]["authorization"] == "Bearer prov-key"
    assert seen["body"] == {
        "name": "Jane Doe",
        "email": "jane.doe@acme.io",
        "phone": "+12345678900",
        "crmContactId": "ghl-1",
    }


def test_provision_falls_back_to_id_field() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": 7})

    assert _client(handler).provision_remote(REQUEST).external_account_id == "7"


def test_provision_without_account_id_returns_none() -> None:
    seen_headers: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen_headers.update(request.headers)
        return httpx.Response(204)

    assert _client(handler).provision_remote(REQUEST).external_account_id is None
    assert "authorization" not in seen_headers


def test_provision_http_error_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="maintenance")

    with pytest.raises(ProvisioningFailure) as exc_info:
        _client(handler).provision_remote(REQUEST)
    assert str(exc_info.value).startswith("Provisioning failed:")
    assert "503" in str(exc_info.value)


def test_provision_timeout_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    with pytest.raises(ProvisioningFailure):
        _client(handler).provision_remote(REQUEST)


def test_mock_provisioning_is_deterministic() -> None:
    client = MockProvisioningClient()
    first = client.provision_remote(REQUEST)
    assert first.external_account_id is not None
    assert first.external_account_id.startswith("app_mock_")
    assert client.provision_remote(REQUEST) == first
