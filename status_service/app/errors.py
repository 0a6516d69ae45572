"""
Error types for the status API and their HTTP mapping.

Known failures derive from ``StatusApiError`` and carry their HTTP status;
they are rendered as ``{"error": "..."}`` by an exception handler. Anything
else escaping a route is caught by ``UnhandledErrorMiddleware`` and turned
into a 500 with the same envelope. Request validation failures (422) and
framework HTTP errors such as 405 use the envelope too.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("errors")


class StatusApiError(Exception):
    status_code = 500


class AuthError(StatusApiError):
    """Bad or missing bearer token on a protected write."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class HistoryWriteError(StatusApiError):
    """One or more per-service history writes failed within a batch."""

    status_code = 500

    def __init__(self, failed_services: list[str]):
        self.failed_services = list(failed_services)
        super().__init__(
            f"Failed to record history for: {', '.join(self.failed_services)}"
        )


async def _status_api_error_handler(request: Request, exc: StatusApiError):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


def describe_validation_errors(errors) -> str:
    """Flatten pydantic error dicts into one line, e.g. ``timestamp: Field required``."""
    parts = []
    for err in errors:
        if err.get("type") == "json_invalid":
            parts.append("body is not valid JSON")
            continue
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        message = err.get("msg", "invalid value")
        parts.append(f"{'.'.join(loc)}: {message}" if loc else message)
    return "Invalid request: " + "; ".join(parts or ["malformed body"])


async def _validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=422, content={"error": describe_validation_errors(exc.errors())})


async def _http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Convert unexpected exceptions into a minimal JSON 500."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return JSONResponse(status_code=500, content={"error": str(exc) or type(exc).__name__})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StatusApiError, _status_api_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_middleware(UnhandledErrorMiddleware)
