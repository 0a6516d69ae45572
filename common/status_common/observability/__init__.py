"""
Observability shared by ``status-api`` and ``status-checker``.

Both processes start with::

    init_observability("status-api", "0.1.0")

which sets up JSON logging, exports spans over OTLP/HTTP when
``OTEL_EXPORTER_OTLP_ENDPOINT`` is set, and publishes a
``<service>_info`` Prometheus metric with the version and environment.
"""

import logging as _logging
import os as _os

from .logging import setup_logging, get_logger, JsonTraceFormatter
from .metrics import (
    create_counter,
    create_gauge,
    create_histogram,
    create_info,
    create_service_info,
    metrics_response,
    observe_duration,
)
from .middleware import CorsHeadersMiddleware, MetricsMiddleware
from .propagation import inject_trace_context
from .testing import get_spans_by_name, reset_metrics, setup_test_tracing
from .tracing import init_tracing, shutdown_tracing

_logger = _logging.getLogger(__name__)


def _start_tracing(service_name: str, version: str) -> bool:
    endpoint = _os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT")
    if not endpoint:
        _logger.info("Tracing disabled: OTEL_EXPORTER_OTLP_ENDPOINT not set")
        return False
    try:
        init_tracing(service_name, version)
    except Exception as exc:
        # A missing collector must not keep the API or the checker from running
        _logger.warning("Tracing init failed for %s: %s", endpoint, exc)
        return False
    return True


def init_observability(
    service_name: str,
    version: str,
    *,
    log_level=None,
    environment: str | None = None,
) -> None:
    """Logging, then tracing (optional), then the service-info metric.

    Args:
        service_name: ``status-api`` or ``status-checker``; dashes become
            underscores in the info metric name.
        version: Reported on the info metric and the trace resource.
        log_level: Root level; ``$LOG_LEVEL`` or ``INFO`` when omitted.
        environment: ``$ENVIRONMENT`` or ``"development"`` when omitted.
    """
    setup_logging(log_level, service=service_name)
    tracing = _start_tracing(service_name, version)
    create_service_info(service_name.replace("-", "_"), version, environment)

    get_logger(service_name).info(
        "Observability initialised for %s v%s (tracing %s)",
        service_name, version, "on" if tracing else "off",
    )


__all__ = [
    "init_observability",
    "setup_logging",
    "get_logger",
    "JsonTraceFormatter",
    "create_counter",
    "create_gauge",
    "create_histogram",
    "create_info",
    "create_service_info",
    "metrics_response",
    "observe_duration",
    "init_tracing",
    "shutdown_tracing",
    "inject_trace_context",
    "MetricsMiddleware",
    "CorsHeadersMiddleware",
    "setup_test_tracing",
    "get_spans_by_name",
    "reset_metrics",
]
