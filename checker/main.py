import argparse
import json
import os
import sys

import requests
from opentelemetry import trace
from opentelemetry.trace import SpanKind
from prometheus_client import start_http_server

from status_common.observability import init_observability, get_logger, shutdown_tracing

from .prober import DEFAULT_TIMEOUT_SECONDS, run_checks
from .reporter import build_batch, send_batch

SERVICE_NAME = "status-checker"
VERSION = "0.1.0"

logger = get_logger(SERVICE_NAME)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Probe monitored services and report one batch to the status API")
    parser.add_argument(
        "--api-url",
        default=os.environ.get("STATUS_API_URL", "http://localhost:8000/api/status"),
        help="Record-check endpoint of the status API",
    )
    parser.add_argument(
        "--frontend-url",
        default=os.environ.get("FRONTEND_URL"),
        help="Frontend URL probed with HEAD",
    )
    parser.add_argument(
        "--backend-url",
        default=os.environ.get("BACKEND_HEALTH_URL"),
        help="Backend health URL probed with GET (also reports the database)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=float(os.environ.get("CHECK_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS))),
        help="Per-request timeout in seconds",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the batch instead of posting it",
    )
    return parser.parse_args(argv)


def run_once(args, token: str | None = None) -> int:
    """Probe, then report. Returns the process exit code."""
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span("check cycle", kind=SpanKind.INTERNAL):
        checks = run_checks(args.frontend_url, args.backend_url, args.timeout)
        batch = build_batch(checks)

        if args.dry_run:
            print(json.dumps(batch, indent=2))
            return 0

        try:
            send_batch(batch, args.api_url, token=token, timeout=args.timeout)
        except requests.RequestException as exc:
            logger.error("Failed to report check batch to %s: %s", args.api_url, exc)
            return 1

    return 0


def main(argv=None) -> int:
    init_observability(SERVICE_NAME, VERSION)
    args = parse_args(argv)

    metrics_port = os.environ.get("METRICS_PORT")
    if metrics_port:
        try:
            start_http_server(int(metrics_port))
            logger.info("Prometheus metrics server started on port %s", metrics_port)
        except OSError as e:
            logger.warning("Failed to start metrics server: %s", e)

    try:
        return run_once(args, token=os.environ.get("CRON_SECRET"))
    finally:
        shutdown_tracing()


if __name__ == "__main__":
    sys.exit(main())
