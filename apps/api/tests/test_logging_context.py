from __future__ import annotations

import json
import logging
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from onboarding_bridge.context import reset_correlation_id, set_correlation_id
from onboarding_bridge.core.config import get_settings
from onboarding_bridge.core.database import Base, get_db
from onboarding_bridge.logging import JsonLogFormatter
from onboarding_bridge.main import app
from onboarding_bridge.onboarding.api import get_onboarding_service
from onboarding_bridge.onboarding.crm_client import MockCrmClient
from onboarding_bridge.onboarding.provisioning_client import MockProvisioningClient
from onboarding_bridge.onboarding.service import OnboardingService


PAYLOAD = {
    "firstName": "Log",
    "lastName": "User",
    "email": "log.user@acme.io",
    "phone": "2345678900",
}


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def setup_env() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    service = OnboardingService(MockCrmClient(), MockProvisioningClient())
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_onboarding_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_logs_include_correlation_id_for_http(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG)

    response = client.get("/api/health", headers={"X-Correlation-Id": "abc-123"})
    assert response.status_code == 200

    records = [
        record
        for record in caplog.records
        if record.name == "onboarding_bridge.request" and record.getMessage() == "http.request"
    ]
    assert any(
        getattr(record, "correlation_id", None) == "abc-123"
        and getattr(record, "method", None) == "GET"
        and getattr(record, "path", None) == "/api/health"
        and getattr(record, "status_code", None) == 200
        and isinstance(getattr(record, "duration_ms", None), float)
        for record in records
    )


def test_onboarding_logs_outcome_with_correlation_id(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)

    response = client.post("/api/onboard", json=PAYLOAD, headers={"X-Correlation-Id": "onboard-1"})
    assert response.status_code == 201

    records = [record for record in caplog.records if record.name == "onboarding_bridge.onboarding"]
    completed = [record for record in records if record.getMessage() == "onboarding.completed"]
    assert completed
    assert getattr(completed[-1], "correlation_id", None) == "onboard-1"
    assert getattr(completed[-1], "provisioning_status", None) == "success"
    assert any(record.getMessage() == "onboarding.crm_synced" and getattr(record, "is_new", None) is True for record in records)


def test_validation_failure_is_logged_as_warning(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)

    response = client.post("/api/onboard", json={**PAYLOAD, "phone": "12"})
    assert response.status_code == 400

    failed = [record for record in caplog.records if record.getMessage() == "onboarding.failed"]
    assert failed
    assert failed[-1].levelno == logging.WARNING
    assert getattr(failed[-1], "integration", None) == "validation"


def test_json_formatter_keeps_known_fields_only() -> None:
    token = set_correlation_id("fmt-1")
    try:
        record = logging.getLogger("onboarding_bridge.onboarding").makeRecord(
            "onboarding_bridge.onboarding",
            logging.INFO,
            __file__,
            1,
            "onboarding.completed",
            (),
            None,
            extra={"provisioning_status": "success", "secret": "hidden", "error": "x" * 600},
        )
    finally:
        reset_correlation_id(token)

    payload = json.loads(JsonLogFormatter(environment="test").format(record))

    assert payload["msg"] == "onboarding.completed"
    assert payload["level"] == "INFO"
    assert payload["correlation_id"] == "fmt-1"
    assert payload["service"] == "onboarding-bridge"
    assert payload["env"] == "test"
    assert payload["fields"]["provisioning_status"] == "success"
    assert "secret" not in payload["fields"]
    assert len(payload["fields"]["error"]) == 500


def test_rejected_requests_are_logged_as_warnings(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)

    response = client.post("/api/onboard", json={"email": "nope"})
    assert response.status_code == 400

    records = [
        record
        for record in caplog.records
        if record.name == "onboarding_bridge.request" and record.getMessage() == "http.request"
    ]
    assert records
    assert records[-1].levelno == logging.WARNING
    assert getattr(records[-1], "status_code", None) == 400
    assert getattr(records[-1], "path", None) == "/api/onboard"
