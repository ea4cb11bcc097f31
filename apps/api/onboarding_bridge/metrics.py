from __future__ import annotations

import re

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

onboarding_outcomes_total = Counter(
    "onboarding_outcomes_total",
    "Total onboarding workflow outcomes by terminal status",
    ["status"],
)

onboarding_integration_failures_total = Counter(
    "onboarding_integration_failures_total",
    "Total onboarding failures by integration",
    ["integration"],
)

onboarding_duration_seconds = Histogram(
    "onboarding_duration_seconds",
    "Onboarding workflow duration in seconds",
    ["status"],
)


_INT_RE = re.compile(r"/\d+\b")


def resolve_http_path_label(request: Request) -> str:
    route = request.scope.get("route")
    if route is not None:
        route_path = getattr(route, "path", None)
        if isinstance(route_path, str) and route_path:
            return route_path
    return _INT_RE.sub("/{id}", request.url.path)


def observe_http_request(method: str, path: str, status: int, duration: float) -> None:
    status_str = str(status)
    http_requests_total.labels(method=method, path=path, status=status_str).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def observe_onboarding(status: str, duration: float) -> None:
    onboarding_outcomes_total.labels(status=status).inc()
    onboarding_duration_seconds.labels(status=status).observe(duration)


def observe_integration_failure(integration: str) -> None:
    onboarding_integration_failures_total.labels(integration=integration).inc()


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
