"""
Shared-secret bearer check for the record-check endpoint.

The secret comes from ``CRON_SECRET`` and is read per request. When it is
unset the check is skipped entirely (open mode): convenient for local runs,
not a security guarantee.
"""

import hmac
import logging
import os

from fastapi import Request

from app.errors import AuthError

logger = logging.getLogger("auth")


def get_cron_secret() -> str | None:
    return os.environ.get("CRON_SECRET") or None


def require_cron_token(request: Request) -> None:
    """FastAPI dependency: the Authorization header must be ``Bearer <secret>``."""
    expected = get_cron_secret()
    if expected is None:
        return

    supplied = request.headers.get("authorization") or ""
    if not hmac.compare_digest(supplied.encode("utf-8"), f"Bearer {expected}".encode("utf-8")):
        _count_rejection()
        logger.warning("Rejected record-check request: bad or missing bearer token")
        raise AuthError()


def _count_rejection() -> None:
    try:
        from app.telemetry import AUTH_FAILURES
        AUTH_FAILURES.inc()
    except ImportError:
        pass
