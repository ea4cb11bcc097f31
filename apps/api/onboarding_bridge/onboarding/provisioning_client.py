from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from opentelemetry import trace

from onboarding_bridge.core.config import Settings
from onboarding_bridge.onboarding.errors import ProvisioningFailure
from onboarding_bridge.onboarding.schemas import ProvisionRequest, ProvisionResult


logger = logging.getLogger("onboarding_bridge.onboarding")
tracer = trace.get_tracer("onboarding_bridge.onboarding.provisioning")


@dataclass(frozen=True)
class ProvisioningConfig:
    base_url: str
    api_key: str = ""
    timeout_seconds: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> ProvisioningConfig:
        return cls(
            base_url=settings.provisioning_base_url,
            api_key=settings.provisioning_api_key,
            timeout_seconds=settings.provisioning_timeout_seconds,
        )


class ProvisioningClient(Protocol):
    def provision_remote(self, request: ProvisionRequest) -> ProvisionResult: ...


class HttpProvisioningClient:
    # No idempotency key is sent; a timeout that succeeded remotely can leave a duplicate account there.

    def __init__(self, config: ProvisioningConfig, http_client: httpx.Client | None = None) -> None:
        self.config = config
        self._client = http_client or httpx.Client(
            base_url=config.base_url.rstrip("/"),
            timeout=config.timeout_seconds,
        )

    def close(self) -> None:
        self._client.close()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def provision_remote(self, request: ProvisionRequest) -> ProvisionResult:
        payload = {
            "name": request.full_name,
            "email": request.email,
            "phone": request.phone,
            "crmContactId": request.crm_contact_id,
        }
        with tracer.start_as_current_span("provisioning.provision_remote") as span:
            span.set_attribute("crm_contact_id", request.crm_contact_id)
            try:
                response = self._client.post("/api/v1/provision-user", json=payload, headers=self._headers())
                response.raise_for_status()
                body: Any = response.json() if response.content else {}
            except (httpx.HTTPError, ValueError) as exc:
                logger.error("provisioning.request_failed", extra={"integration": "provisioning", "error": str(exc)})
                raise ProvisioningFailure(str(exc)) from exc

            external_account_id = None
            if isinstance(body, dict):
                external_account_id = body.get("userId") or body.get("id")
            if external_account_id is not None:
                external_account_id = str(external_account_id)
                span.set_attribute("external_account_id", external_account_id)
            return ProvisionResult(external_account_id=external_account_id)


class MockProvisioningClient:
    def provision_remote(self, request: ProvisionRequest) -> ProvisionResult:
        digest = hashlib.sha256(request.email.lower().encode("utf-8")).hexdigest()[:16]
        logger.info("provisioning.mock_account_created", extra={"integration": "provisioning"})
        return ProvisionResult(external_account_id=f"app_mock_{digest}")
