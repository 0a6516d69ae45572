import logging
import time

import requests
from opentelemetry import trace
from opentelemetry.trace import SpanKind

from status_common.observability import inject_trace_context
from . import telemetry

logger = logging.getLogger(__name__)


def build_batch(checks: dict[str, dict], timestamp_ms: int | None = None) -> dict:
    """Wrap probe results into the record-check payload."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return {"checks": checks, "timestamp": timestamp_ms}


def send_batch(batch: dict, api_url: str, token: str | None = None, timeout: float = 10.0) -> dict:
    """POST a batch to the status API and return its JSON acknowledgement.

    Raises:
        requests.RequestException: on network failure or a non-2xx answer.
    """
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(
        "report check batch",
        kind=SpanKind.CLIENT,
        attributes={
            "http.method": "POST",
            "http.url": api_url,
            "batch.services": len(batch["checks"]),
            "batch.timestamp": batch["timestamp"],
        }
    ) as span:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        inject_trace_context(headers)

        try:
            response = requests.post(api_url, json=batch, headers=headers, timeout=timeout)
            span.set_attribute("http.status_code", response.status_code)
            response.raise_for_status()
        except requests.RequestException:
            telemetry.REPORTS_FAILED.inc()
            raise

        telemetry.REPORTS_SENT.inc()
        logger.info("Reported %d checks to %s", len(batch["checks"]), api_url)
        return response.json()
