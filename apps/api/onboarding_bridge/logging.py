from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from onboarding_bridge.context import get_correlation_id
from onboarding_bridge.core.config import Settings, get_settings


_STRUCTURED_FIELDS = (
    "method",
    "path",
    "status_code",
    "duration_ms",
    "step",
    "integration",
    "crm_contact_id",
    "is_new",
    "provisioning_status",
    "error",
)
_MAX_ERROR_LENGTH = 500
_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s] %(message)s"
# Third-party loggers that log every outbound call at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore")

_default_record_factory = logging.getLogRecordFactory()


def _record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
    record = _default_record_factory(*args, **kwargs)
    record.correlation_id = get_correlation_id()
    return record


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line; only whitelisted ``extra`` keys end up under ``fields``."""

    def __init__(self, service: str = "onboarding-bridge", environment: str | None = None) -> None:
        super().__init__()
        self.service = service
        self.environment = environment

    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = {}
        for key in _STRUCTURED_FIELDS:
            if key in record.__dict__:
                fields[key] = record.__dict__[key]

        error = fields.get("error")
        if isinstance(error, str):
            fields["error"] = error[:_MAX_ERROR_LENGTH]
        if record.exc_info:
            fields["exception"] = self.formatException(record.exc_info)

        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "service": self.service,
            "env": self.environment,
            "correlation_id": getattr(record, "correlation_id", None),
            "fields": fields,
        }
        return json.dumps(payload, default=str)


def build_formatter(settings: Settings) -> logging.Formatter:
    if settings.log_format.lower() == "text":
        return logging.Formatter(_TEXT_FORMAT)
    return JsonLogFormatter(environment=settings.app_env)


def configure_logging(settings: Settings | None = None) -> None:
    root_logger = logging.getLogger()
    if getattr(root_logger, "_onboarding_bridge_configured", False):
        return

    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(build_formatter(settings))

    logging.setLogRecordFactory(_record_factory)
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    root_logger.addHandler(handler)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    root_logger._onboarding_bridge_configured = True  # type: ignore[attr-defined]
