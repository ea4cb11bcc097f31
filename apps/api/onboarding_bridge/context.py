from __future__ import annotations

import re
import uuid
from contextvars import ContextVar, Token

_ACCEPTED_CORRELATION_ID = re.compile(r"[A-Za-z0-9._:\-]{1,128}")

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def set_correlation_id(value: str | None) -> Token[str | None]:
    return correlation_id_var.set(value)


def reset_correlation_id(token: Token[str | None]) -> None:
    correlation_id_var.reset(token)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def new_correlation_id() -> str:
    return uuid.uuid4().hex


def accept_correlation_id(raw: str | None) -> str | None:
    """Return the inbound id if it is safe to echo into headers and logs, else None."""
    if raw is None:
        return None
    candidate = raw.strip()
    if not _ACCEPTED_CORRELATION_ID.fullmatch(candidate):
        return None
    return candidate
