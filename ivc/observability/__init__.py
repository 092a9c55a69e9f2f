"""Logging and Prometheus metrics wiring."""

from __future__ import annotations

from ivc.observability.logging import configure_logging
from ivc.observability.metrics import MetricsMiddleware, metrics_response

__all__ = [
    "configure_logging",
    "MetricsMiddleware",
    "metrics_response",
]
