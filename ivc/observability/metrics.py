from __future__ import annotations

import time
from collections.abc import Callable

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_COUNTER = Counter(
    "ivc_request_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "ivc_request_duration_seconds",
    "HTTP request latency",
    ["method", "path"],
)
RSS_IMPORTS = Counter(
    "ivc_rss_imports_total",
    "RSS item imports by type and outcome",
    ["import_type", "status"],
)
AI_TOKENS = Counter(
    "ivc_ai_tokens_total",
    "Tokens consumed by AI completions",
    ["provider"],
)
AI_COST = Counter(
    "ivc_ai_cost_usd_total",
    "Estimated AI spend in USD",
    ["provider"],
)
SOCIAL_PUBLISHES = Counter(
    "ivc_social_publish_total",
    "Per-platform social publish attempts",
    ["platform", "status"],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collect Prometheus metrics for each request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start
        route = request.scope.get("route")
        path_template = getattr(route, "path", request.url.path)
        REQUEST_COUNTER.labels(
            request.method, path_template, response.status_code
        ).inc()
        REQUEST_LATENCY.labels(request.method, path_template).observe(duration)
        return response


def record_ai_usage(provider: str, total_tokens: int, cost: float) -> None:
    AI_TOKENS.labels(provider).inc(max(total_tokens, 0))
    AI_COST.labels(provider).inc(max(cost, 0.0))


def metrics_response() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
