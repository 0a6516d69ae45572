"""
Service-specific telemetry for status-api.

Domain metrics and FastAPI instrumentation that sit on top of the
shared ``status_common.observability`` module.
"""

import logging

from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from status_common.observability import (
    create_counter,
    create_gauge,
    create_histogram,
    MetricsMiddleware,
)

logger = logging.getLogger("telemetry")

# ── Metrics (Prometheus) ──────────────────────────────────────────

HTTP_REQUESTS = create_counter(
    "http_requests_total",
    "Total HTTP requests by method and path",
    ["method", "path", "status"],
)

STORE_DURATION = create_histogram(
    "kv_store_operation_duration_seconds",
    "Time spent in key-value store operations",
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5],
    labelnames=["operation"],
)

AUTH_FAILURES = create_counter(
    "record_auth_failures_total",
    "Record-check requests rejected for a bad or missing bearer token",
)

# ── Business Metrics (per-service) ───────────────────────────────

CHECKS_RECORDED = create_counter(
    "status_checks_recorded_total",
    "Checks folded into history by service and reported status",
    ["service", "status"],
)

LATEST_RESPONSE_TIME = create_gauge(
    "status_latest_response_time_ms",
    "Most recently reported response time per service",
    ["service"],
)

HISTORY_WRITE_FAILURES = create_counter(
    "status_history_write_failures_total",
    "Per-service history writes that failed within a batch",
    ["service"],
)

HISTORY_VERSION_CONFLICTS = create_counter(
    "status_history_version_conflicts_total",
    "History writes retried because a concurrent writer changed the key",
    ["service"],
)


# ── Initialization ───────────────────────────────────────────────

def init(app):
    """Wire service-specific telemetry into the FastAPI app.

    * Adds the HTTP-metrics middleware.
    * Wires the store-duration histogram into the database module.
    * Instruments FastAPI with OpenTelemetry auto-instrumentation.
    """
    app.add_middleware(MetricsMiddleware, counter=HTTP_REQUESTS, ignored_paths={"/metrics"})

    from app import database
    database.store_duration_histogram = STORE_DURATION

    # FastAPI auto-instrumentation (creates spans for every route)
    try:
        FastAPIInstrumentor.instrument_app(app)
        logger.info("FastAPI instrumentation enabled")
    except Exception as e:
        logger.warning("FastAPI instrumentation failed: %s", e)

    logger.info("Service telemetry initialised")
