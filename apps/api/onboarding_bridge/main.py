from contextlib import asynccontextmanager
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from starlette.exceptions import HTTPException as StarletteHTTPException

from onboarding_bridge.api.routes import router as api_router
from onboarding_bridge.core.config import get_settings
from onboarding_bridge.context import accept_correlation_id, new_correlation_id
from onboarding_bridge.core.database import create_tables
from onboarding_bridge.logging import configure_logging
from onboarding_bridge.middleware.correlation_id import CORRELATION_HEADER, CorrelationIdMiddleware
from onboarding_bridge.middleware.request_logging import RequestLoggingMiddleware
from onboarding_bridge.onboarding.api import error_response
from onboarding_bridge.onboarding.factory import build_onboarding_service, close_onboarding_service
from onboarding_bridge.otel import get_fastapi_server_request_hook, setup_otel

settings = get_settings()
configure_logging(settings)
logger = logging.getLogger("onboarding_bridge.lifecycle")

@asynccontextmanager
async def lifespan(app: FastAPI):
    current = get_settings()
    if current.database_auto_create:
        create_tables()
        logger.info("database.tables_ready")
    app.state.onboarding_service = build_onboarding_service(current)
    logger.info("system.started")
    try:
        yield
    finally:
        close_onboarding_service(app.state.onboarding_service)
        logger.info("system.stopped")

app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type"],
)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.include_router(api_router)

def _format_validation_error(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    message = str(error.get("msg", "invalid value"))
    return f"{location}: {message}" if location else message

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(400, "Validation failed", [_format_validation_error(error) for error in exc.errors()])

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return error_response(404, "Endpoint not found")
    return error_response(exc.status_code, str(exc.detail))

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("http.unhandled_exception", exc_info=exc, extra={"path": request.url.path, "error": str(exc)})
    details = None if get_settings().is_production else "".join(traceback.format_exception(exc))
    response = error_response(500, str(exc) or "Internal Server Error", details)
    # Runs outside CorrelationIdMiddleware, which has already unwound.
    response.headers[CORRELATION_HEADER] = (
        getattr(request.state, "correlation_id", None)
        or accept_correlation_id(request.headers.get(CORRELATION_HEADER))
        or new_correlation_id()
    )
    return response


setup_otel(settings)

if not getattr(app, "_is_instrumented_by_opentelemetry", False):
    FastAPIInstrumentor().instrument_app(app, server_request_hook=get_fastapi_server_request_hook())
