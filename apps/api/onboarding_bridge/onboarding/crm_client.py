from __future__ import annotations

import hashlib
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from opentelemetry import trace

from onboarding_bridge.core.config import Settings
from onboarding_bridge.onboarding.errors import CrmSyncFailure, RemoteContractViolation
from onboarding_bridge.onboarding.schemas import ContactSyncResult, RegistrationInput


logger = logging.getLogger("onboarding_bridge.onboarding")
tracer = trace.get_tracer("onboarding_bridge.onboarding.crm")


@dataclass(frozen=True)
class CrmConfig:
    base_url: str
    api_key: str
    location_id: str
    timeout_seconds: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> CrmConfig:
        return cls(
            base_url=settings.crm_api_base_url,
            api_key=settings.crm_api_key,
            location_id=settings.crm_location_id,
            timeout_seconds=settings.crm_timeout_seconds,
        )


class CrmClient(Protocol):
    def sync_contact(self, contact: RegistrationInput) -> ContactSyncResult: ...


def select_exact_match(candidates: list[dict[str, Any]], email: str) -> dict[str, Any] | None:
    # The search endpoint is fuzzy; only an exact case-insensitive email hit counts.
    wanted = email.lower()
    for candidate in candidates:
        candidate_email = candidate.get("email")
        if isinstance(candidate_email, str) and candidate_email.lower() == wanted:
            return candidate
    return None


class HttpCrmClient:
    def __init__(self, config: CrmConfig, http_client: httpx.Client | None = None) -> None:
        self.config = config
        self._client = http_client or httpx.Client(
            base_url=config.base_url.rstrip("/"),
            timeout=config.timeout_seconds,
        )

    def close(self) -> None:
        self._client.close()

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    def _request(self, operation: str, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = self._client.request(method, path, headers=self._headers(), **kwargs)
            response.raise_for_status()
            body = response.json() if response.content else {}
        except httpx.HTTPStatusError as exc:
            logger.error(
                "crm.request_failed",
                extra={"integration": "crm", "step": operation, "error": exc.response.text},
            )
            raise CrmSyncFailure(f"{operation} failed: {exc}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("crm.request_failed", extra={"integration": "crm", "step": operation, "error": str(exc)})
            raise CrmSyncFailure(f"{operation} failed: {exc}") from exc
        if not isinstance(body, dict):
            raise CrmSyncFailure(f"{operation} failed: expected a JSON object, got {type(body).__name__}")
        return body

    def search_contact_by_email(self, email: str) -> dict[str, Any] | None:
        body = self._request(
            "search",
            "GET",
            "/v2/contacts/search",
            params={"locationId": self.config.location_id, "query": email},
        )
        contacts = body.get("contacts") or []
        if not isinstance(contacts, list):
            raise CrmSyncFailure("search failed: 'contacts' is not a list")
        return select_exact_match([item for item in contacts if isinstance(item, dict)], email)

    def create_contact(self, contact: RegistrationInput) -> str:
        body = self._request(
            "contact creation",
            "POST",
            "/v2/contacts/",
            json={
                "firstName": contact.first_name,
                "lastName": contact.last_name,
                "email": contact.email,
                "phone": contact.phone,
                "locationId": self.config.location_id,
                "tags": list(contact.tags),
            },
        )
        created = body.get("contact")
        contact_id = created.get("id") if isinstance(created, dict) else None
        if not contact_id:
            raise RemoteContractViolation("contact creation failed: no contact ID returned from CRM")
        return str(contact_id)

    def update_contact(self, contact_id: str, contact: RegistrationInput) -> None:
        self._request(
            "contact update",
            "PUT",
            f"/v2/contacts/{contact_id}",
            json={
                "firstName": contact.first_name,
                "lastName": contact.last_name,
                "phone": contact.phone,
                "tags": list(contact.tags),
            },
        )

    def sync_contact(self, contact: RegistrationInput) -> ContactSyncResult:
        with tracer.start_as_current_span("crm.sync_contact") as span:
            existing = self.search_contact_by_email(contact.email)
            if existing is not None:
                if not existing.get("id"):
                    raise RemoteContractViolation("search failed: matching contact has no id")
                contact_id = str(existing["id"])
                logger.info("crm.contact_updating", extra={"integration": "crm", "crm_contact_id": contact_id})
                self.update_contact(contact_id, contact)
                result = ContactSyncResult(crm_contact_id=contact_id, is_new=False)
            else:
                logger.info("crm.contact_creating", extra={"integration": "crm"})
                result = ContactSyncResult(crm_contact_id=self.create_contact(contact), is_new=True)
            span.set_attribute("crm_contact_id", result.crm_contact_id)
            span.set_attribute("is_new", result.is_new)
            return result


class MockCrmClient:
    """Deterministic CRM stand-in: ids are derived from the email, nothing leaves the process."""

    def __init__(self, max_contacts: int = 10_000) -> None:
        self.max_contacts = max_contacts
        self._lock = threading.Lock()
        # Oldest emails are forgotten first; a forgotten email reports is_new again.
        self._contacts: OrderedDict[str, str] = OrderedDict()

    def sync_contact(self, contact: RegistrationInput) -> ContactSyncResult:
        key = contact.email.lower()
        with self._lock:
            existing = self._contacts.get(key)
            if existing is not None:
                self._contacts.move_to_end(key)
                return ContactSyncResult(crm_contact_id=existing, is_new=False)
            contact_id = f"contact_mock_{hashlib.sha256(key.encode('utf-8')).hexdigest()[:16]}"
            self._contacts[key] = contact_id
            while len(self._contacts) > self.max_contacts:
                self._contacts.popitem(last=False)
        logger.info("crm.mock_contact_created", extra={"integration": "crm", "crm_contact_id": contact_id})
        return ContactSyncResult(crm_contact_id=contact_id, is_new=True)
