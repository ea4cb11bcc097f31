from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from onboarding_bridge.core.config import get_settings
from onboarding_bridge.core.database import get_db
from onboarding_bridge.onboarding.errors import ValidationFailure, classify_failure
from onboarding_bridge.onboarding.schemas import (
    ErrorResponse,
    OnboardingData,
    OnboardRequest,
    OnboardSuccessResponse,
)
from onboarding_bridge.onboarding.service import OnboardingService


logger = logging.getLogger("onboarding_bridge.onboarding")

router = APIRouter(prefix="/api", tags=["onboarding"])

_REDACTED_IN_PRODUCTION = frozenset({None, "store"})

_SUCCESS_MESSAGES = {
    "success": "Onboarding completed successfully",
    "already_provisioned": "User already provisioned",
}


def get_onboarding_service(request: Request) -> OnboardingService:
    return request.app.state.onboarding_service


def error_response(status_code: int, message: str, error: object = None) -> JSONResponse:
    payload = ErrorResponse(message=message, error=error)
    return JSONResponse(status_code=status_code, content=payload.model_dump(mode="json"))


@router.post(
    "/onboard",
    response_model=OnboardSuccessResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def onboard(
    dto: OnboardRequest,
    db: Session = Depends(get_db),
    service: OnboardingService = Depends(get_onboarding_service),
) -> OnboardSuccessResponse | JSONResponse:
    try:
        result = service.onboard(db, dto.to_registration_input())
    except ValidationFailure as exc:
        return error_response(status.HTTP_400_BAD_REQUEST, "Validation failed", exc.errors)
    except Exception as exc:
        classification = classify_failure(exc)
        logger.exception(
            "onboarding.request_failed",
            extra={"integration": classification.integration, "status_code": classification.status_code, "error": str(exc)},
        )
        detail: str | None = str(exc)
        # Store and unclassified errors can carry SQL parameters holding the registrant's data.
        if classification.integration in _REDACTED_IN_PRODUCTION and get_settings().is_production:
            detail = None
        return error_response(classification.status_code, classification.message, detail)

    return OnboardSuccessResponse(
        message=_SUCCESS_MESSAGES[result.provisioning_status],
        data=OnboardingData.from_result(result),
    )
