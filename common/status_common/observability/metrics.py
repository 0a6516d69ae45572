"""
Prometheus collectors for the status API and the checker.

Both processes declare their collectors at import time in a ``telemetry``
module. The factories below look a name up in the default registry before
failing, so a second import of such a module (pytest collecting the app and
the checker in one session) gets the same collector back.
"""

import os
import time
from contextlib import contextmanager

from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, Counter, Gauge, Histogram, Info, generate_latest


def _registered(name: str):
    for collector in REGISTRY._names_to_collectors.values():
        if getattr(collector, "_name", None) == name or getattr(collector, "_original_name", None) == name:
            return collector
    return None


def _build(metric_cls, name: str, documentation: str, **kwargs):
    try:
        return metric_cls(name, documentation, **kwargs)
    except ValueError:
        # Duplicated timeseries: hand back what is already registered
        existing = _registered(name)
        if existing is None:
            raise
        return existing


def create_counter(name: str, documentation: str, labelnames: list[str] = None) -> Counter:
    return _build(Counter, name, documentation, labelnames=labelnames or [])


def create_gauge(name: str, documentation: str, labelnames: list[str] = None) -> Gauge:
    return _build(Gauge, name, documentation, labelnames=labelnames or [])


def create_histogram(
    name: str,
    documentation: str,
    buckets: list[float] = None,
    labelnames: list[str] = None,
) -> Histogram:
    kwargs = {"labelnames": labelnames or []}
    if buckets:
        kwargs["buckets"] = buckets
    return _build(Histogram, name, documentation, **kwargs)


def create_info(name: str, documentation: str) -> Info:
    return _build(Info, name, documentation)


def create_service_info(service_name: str, version: str, environment: str | None = None) -> Info:
    """Publish ``<service_name>_info{version, environment}``.

    ``environment`` falls back to ``$ENVIRONMENT``, then ``development``.
    """
    info = create_info(service_name, "Service metadata")
    info.info({
        "version": version,
        "environment": environment or os.environ.get("ENVIRONMENT", "development"),
    })
    return info


@contextmanager
def observe_duration(histogram, **labels):
    """Time the block into *histogram*, also when it raises.

    A ``None`` histogram (telemetry not wired, e.g. the KV store used from a
    script) makes this a plain passthrough.
    """
    start = time.monotonic()
    try:
        yield
    finally:
        if histogram is not None:
            (histogram.labels(**labels) if labels else histogram).observe(time.monotonic() - start)


def metrics_response() -> tuple[bytes, str]:
    """Body and content type for a ``/metrics`` endpoint."""
    return generate_latest(), CONTENT_TYPE_LATEST
