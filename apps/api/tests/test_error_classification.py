from __future__ import annotations

import pytest

from onboarding_bridge.onboarding.errors import (
    CrmSyncFailure,
    DuplicateRecord,
    ProvisioningFailure,
    RemoteContractViolation,
    StoreFailure,
    ValidationFailure,
    classify_failure,
)


def test_failures_carry_greppable_prefixes() -> None:
    assert str(CrmSyncFailure("search failed: 401")) == "CRM sync failed: search failed: 401"
    assert str(RemoteContractViolation("no id")) == "CRM sync failed: no id"
    assert str(ProvisioningFailure("timeout")) == "Provisioning failed: timeout"
    assert str(StoreFailure("locked")) == "Store operation failed: locked"
    assert ValidationFailure(["Email is required"]).errors == ["Email is required"]
    assert DuplicateRecord("jane.doe@acme.io").email == "jane.doe@acme.io"


@pytest.mark.parametrize(
    ("exc", "status_code", "integration"),
    [
        (CrmSyncFailure("search failed"), 502, "crm"),
        (RemoteContractViolation("no id"), 502, "crm"),
        (ProvisioningFailure("503"), 502, "provisioning"),
        (StoreFailure("locked"), 500, "store"),
        (RuntimeError("boom"), 500, None),
        (RuntimeError("wrapped: CRM sync failed: search failed"), 502, "crm"),
    ],
)
def test_classify_failure_by_prefix(exc: Exception, status_code: int, integration: str | None) -> None:
    classification = classify_failure(exc)
    assert classification.status_code == status_code
    assert classification.integration == integration


def test_crm_and_provisioning_messages_differ() -> None:
    crm = classify_failure(CrmSyncFailure("x"))
    provisioning = classify_failure(ProvisioningFailure("x"))
    assert crm.message != provisioning.message
    assert "CRM" in crm.message
    assert "Provisioning" in provisioning.message
