"""
Endpoint probes for the monitored services.

Two probes run in parallel per cycle:

* frontend: ``HEAD`` the site; 2xx is ``operational``, anything else
  (non-2xx, timeout, connection error) is ``down``.
* backend: ``GET`` the health endpoint; its JSON body reports both the
  backend itself (``status == "OK"``) and the database
  (``database == "Connected"``), so one probe yields two results.

A failed probe is a terminal ``down`` for this cycle; nothing is retried.
A probe whose URL is not configured is skipped and its services are left
out of the batch.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

import requests
from opentelemetry import context, trace
from opentelemetry.trace import SpanKind, Status, StatusCode

from . import telemetry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


@dataclass
class ProbeResult:
    status: str
    response_time: Optional[int] = None

    def to_dict(self) -> dict:
        return {"status": self.status, "responseTime": self.response_time}


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000 + 0.5)


def _record(service: str, result: ProbeResult, duration: float) -> None:
    telemetry.PROBES_TOTAL.labels(service=service, status=result.status).inc()
    telemetry.PROBE_DURATION.labels(service=service).observe(duration)


def probe_frontend(url: str, timeout: float = DEFAULT_TIMEOUT_SECONDS, parent_ctx=None) -> dict[str, ProbeResult]:
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(
        "probe frontend",
        context=parent_ctx,
        kind=SpanKind.CLIENT,
        attributes={"http.method": "HEAD", "http.url": url},
    ) as span:
        start = time.perf_counter()
        try:
            response = requests.head(url, timeout=timeout, allow_redirects=True)
            span.set_attribute("http.status_code", response.status_code)
            if 200 <= response.status_code < 300:
                result = ProbeResult("operational", _elapsed_ms(start))
            else:
                logger.warning("Frontend check failed: HTTP %d", response.status_code)
                result = ProbeResult("down")
        except requests.RequestException as exc:
            span.record_exception(exc)
            logger.warning("Frontend check failed: %s", exc)
            result = ProbeResult("down")

        if result.status == "down":
            span.set_status(Status(StatusCode.ERROR, "frontend down"))
        _record("frontend", result, time.perf_counter() - start)
        return {"frontend": result}


def probe_backend(url: str, timeout: float = DEFAULT_TIMEOUT_SECONDS, parent_ctx=None) -> dict[str, ProbeResult]:
    """Probe the backend health endpoint; also reports the database."""
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(
        "probe backend",
        context=parent_ctx,
        kind=SpanKind.CLIENT,
        attributes={"http.method": "GET", "http.url": url},
    ) as span:
        start = time.perf_counter()
        try:
            response = requests.get(
                url,
                timeout=timeout,
                headers={"Accept": "application/json"},
            )
            response_time = _elapsed_ms(start)
            span.set_attribute("http.status_code", response.status_code)
            if not 200 <= response.status_code < 300:
                raise requests.HTTPError(f"HTTP {response.status_code}", response=response)
            data = response.json()
            if not isinstance(data, dict):
                raise ValueError("health response is not a JSON object")

            results = {
                "backend": ProbeResult(
                    "operational" if data.get("status") == "OK" else "degraded",
                    response_time,
                ),
                "database": ProbeResult(
                    "operational" if data.get("database") == "Connected" else "down",
                    response_time,
                ),
            }
        except (requests.RequestException, ValueError) as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            logger.warning("Backend check failed: %s", exc)
            results = {"backend": ProbeResult("down"), "database": ProbeResult("down")}

        duration = time.perf_counter() - start
        for service, result in results.items():
            span.set_attribute(f"probe.{service}.status", result.status)
            _record(service, result, duration)
        return results


def run_checks(
    frontend_url: Optional[str],
    backend_url: Optional[str],
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> dict[str, dict]:
    """Run the configured probes in parallel and return the ``checks`` mapping."""
    parent_ctx = context.get_current()
    jobs = []
    if frontend_url:
        jobs.append((probe_frontend, frontend_url))
    else:
        logger.info("FRONTEND_URL not configured, skipping frontend probe")
    if backend_url:
        jobs.append((probe_backend, backend_url))
    else:
        logger.info("BACKEND_HEALTH_URL not configured, skipping backend/database probe")

    checks: dict[str, dict] = {}
    if not jobs:
        return checks

    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [pool.submit(fn, url, timeout, parent_ctx) for fn, url in jobs]
        for future in futures:
            for service, result in future.result().items():
                checks[service] = result.to_dict()

    return checks
