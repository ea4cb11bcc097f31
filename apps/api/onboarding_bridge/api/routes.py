from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import Response

from onboarding_bridge.core.config import get_settings
from onboarding_bridge.metrics import generate_metrics_payload, metrics_content_type
from onboarding_bridge.onboarding.api import router as onboarding_router
from onboarding_bridge.onboarding.schemas import HealthResponse

router = APIRouter()
router.include_router(onboarding_router)


@router.get("/api/health", response_model=HealthResponse, tags=["system"])
def health() -> HealthResponse:
    return HealthResponse(status="OK", timestamp=datetime.now(timezone.utc))


@router.get("/metrics", tags=["system"])
def metrics() -> Response:
    settings = get_settings()
    if not settings.metrics_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="not found")
    return Response(content=generate_metrics_payload(), media_type=metrics_content_type())
