"""
Read and record-check operations on the multi-service status document.

Write path for one batch:
  1. Overwrite the ``latest`` snapshot with the raw checks + timestamp.
  2. For every monitored service, fold its check (or a synthetic
     ``unknown``) into the stored daily history and write it back.

Step 2 is a version-checked read-modify-write per service key, retried a
few times when a concurrent writer got in between. Services are isolated
from each other: one failing write does not stop the others, and the
``latest`` write is not rolled back.
"""

import logging
import os

from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

from app.aggregator import (
    MONITORED_SERVICES,
    STATUS_DEGRADED,
    STATUS_DOWN,
    DAY_OPERATIONAL,
    aggregate,
    coerce_history,
    history_key,
    utc_day,
)
from app.database import kv_get, kv_get_versioned, kv_put, kv_put_if_version
from app.errors import HistoryWriteError
from app.models.status import CheckBatch, CheckResult

logger = logging.getLogger("recorder")

LATEST_KEY = "latest"

HISTORY_WRITE_RETRIES = int(os.environ.get("HISTORY_WRITE_RETRIES", "3"))


class VersionConflict(Exception):
    """The history key changed between read and write on every attempt."""


def _update_metrics(batch: CheckBatch) -> None:
    """Push recorded check outcomes to Prometheus."""
    try:
        from app.telemetry import CHECKS_RECORDED, LATEST_RESPONSE_TIME

        for service in MONITORED_SERVICES:
            result = batch.checks.get(service)
            status = result.status if result else "unknown"
            CHECKS_RECORDED.labels(service=service, status=status).inc()
            if result is not None and result.response_time is not None:
                LATEST_RESPONSE_TIME.labels(service=service).set(result.response_time)
    except Exception as exc:
        logger.warning("Failed to update check metrics: %s", exc)


def _count(metric_name: str, service: str) -> None:
    try:
        from app import telemetry
        getattr(telemetry, metric_name).labels(service=service).inc()
    except Exception as exc:
        logger.debug("Metric %s unavailable: %s", metric_name, exc)


# ── Read ─────────────────────────────────────────────────────────


def read_status() -> dict:
    """Return ``{history: {service: [...]}, latest: {...}}``.

    Missing keys read as empty defaults, never as errors.
    """
    history = {}
    for service in MONITORED_SERVICES:
        history[service] = kv_get(history_key(service)) or []

    latest = kv_get(LATEST_KEY) or {}
    return {"history": history, "latest": latest}


# ── Write ────────────────────────────────────────────────────────


def build_latest_snapshot(batch: CheckBatch) -> dict:
    snapshot = {
        service: result.model_dump(by_alias=True, exclude_unset=True)
        for service, result in batch.checks.items()
    }
    snapshot["timestamp"] = batch.timestamp
    return snapshot


def record_service_history(service: str, today: str, incoming: CheckResult | None) -> dict:
    """Fold *incoming* into *service*'s stored history; return the written entry."""
    key = history_key(service)
    for attempt in range(1, HISTORY_WRITE_RETRIES + 1):
        stored, version = kv_get_versioned(key)
        history, entry = aggregate(stored, today, incoming)
        if kv_put_if_version(key, history, version):
            return entry

        _count("HISTORY_VERSION_CONFLICTS", service)
        logger.info(
            "History for %s changed concurrently (attempt %d/%d), retrying",
            service, attempt, HISTORY_WRITE_RETRIES,
        )

    raise VersionConflict(f"{key} kept changing during {HISTORY_WRITE_RETRIES} attempts")


def record_batch(batch: CheckBatch) -> dict:
    """Persist one checker batch. Returns ``{success: True, timestamp}``.

    Raises:
        HistoryWriteError: when at least one service's history could not be
            written. Everything else in the batch is already committed.
    """
    tracer = trace.get_tracer(__name__)
    today = utc_day(batch.timestamp)

    kv_put(LATEST_KEY, build_latest_snapshot(batch))
    _update_metrics(batch)

    failed = []
    for service in MONITORED_SERVICES:
        incoming = batch.checks.get(service)
        with tracer.start_as_current_span(
            "record service history",
            kind=SpanKind.INTERNAL,
            attributes={
                "status.service": service,
                "status.date": today,
                "status.incoming": incoming.status if incoming else "unknown",
            }
        ) as span:
            try:
                entry = record_service_history(service, today, incoming)
            except Exception as exc:
                span.record_exception(exc)
                span.set_status(Status(StatusCode.ERROR, str(exc)))
                _count("HISTORY_WRITE_FAILURES", service)
                logger.exception("Failed to record history for %s", service)
                failed.append(service)
                continue

            span.set_attribute("status.day_status", entry["status"])
            span.set_attribute("status.day_checks", entry["checks"])
            logger.debug(
                "Recorded %s for %s: day=%s checks=%d",
                service, today, entry["status"], entry["checks"],
            )

    if failed:
        raise HistoryWriteError(failed)

    logger.info(
        "Recorded check batch for %s (%d reported services)",
        today, len(batch.checks),
    )
    return {"success": True, "timestamp": batch.timestamp}


# ── Summary ──────────────────────────────────────────────────────


def _uptime_percent(history: list) -> float | None:
    if not history:
        return None
    operational = sum(1 for e in history if e.status == DAY_OPERATIONAL)
    return round(operational / len(history) * 100, 2)


def _overall(statuses: list) -> tuple[str, str, str]:
    if STATUS_DOWN in statuses:
        down_count = statuses.count(STATUS_DOWN)
        plural = "s" if down_count > 1 else ""
        return "down", "Service disruption", f"{down_count} service{plural} experiencing issues"
    if STATUS_DEGRADED in statuses:
        return "degraded", "Degraded performance", "Some services are running slowly"
    if any(s is None or s == "unknown" for s in statuses):
        return "unknown", "Checking systems...", "Fetching latest status"
    return "operational", "All systems operational", "All services are running normally"


def build_summary() -> dict:
    """Dashboard-ready summary derived from stored history and the latest batch."""
    document = read_status()
    latest = document["latest"]

    services = {}
    statuses = []
    dates = []
    for service in MONITORED_SERVICES:
        history = coerce_history(document["history"][service])
        dates.extend(e.date for e in history)

        current = latest.get(service) if isinstance(latest.get(service), dict) else {}
        status = current.get("status")
        statuses.append(status)

        services[service] = {
            "status": status,
            "responseTime": current.get("responseTime"),
            "uptimePercent": _uptime_percent(history),
            "days": len(history),
        }

    overall, title, subtitle = _overall(statuses)
    return {
        "overall": overall,
        "title": title,
        "subtitle": subtitle,
        "services": services,
        "periodStart": min(dates) if dates else None,
        "periodEnd": max(dates) if dates else None,
        "timestamp": latest.get("timestamp"),
    }
