"""
Reusable ASGI / Starlette middleware for the status services.

Usage::

    from status_common.observability.middleware import MetricsMiddleware, CorsHeadersMiddleware
    from status_common.observability import create_counter

    HTTP_REQUESTS = create_counter(
        "http_requests_total", "Total HTTP requests", ["method", "path", "status"]
    )

    app.add_middleware(CorsHeadersMiddleware)
    app.add_middleware(MetricsMiddleware, counter=HTTP_REQUESTS)
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from prometheus_client import Counter


DEFAULT_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


class MetricsMiddleware(BaseHTTPMiddleware):
    """Starlette middleware that increments a labelled Counter per request.

    Args:
        app: The ASGI application.
        counter: A ``prometheus_client.Counter`` with labels
            ``["method", "path", "status"]``.
        ignored_paths: Optional set of paths to skip counting
            (e.g. ``{"/metrics", "/health"}``).
    """

    def __init__(self, app, counter: Counter, ignored_paths: set[str] | None = None):
        super().__init__(app)
        self.counter = counter
        self.ignored_paths = ignored_paths or set()

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        if request.url.path not in self.ignored_paths:
            self.counter.labels(
                method=request.method,
                path=request.url.path,
                status=response.status_code,
            ).inc()

        return response


class CorsHeadersMiddleware(BaseHTTPMiddleware):
    """Attach permissive CORS headers to every response.

    Unlike Starlette's ``CORSMiddleware`` the headers are sent whether or not
    the request carries an ``Origin``, and any ``OPTIONS`` request is answered
    directly with an empty 200 (preflight), never reaching the routes.

    Args:
        app: The ASGI application.
        headers: Header mapping to attach; defaults to ``DEFAULT_CORS_HEADERS``.
    """

    def __init__(self, app, headers: dict[str, str] | None = None):
        super().__init__(app)
        self.headers = dict(headers or DEFAULT_CORS_HEADERS)

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=self.headers)

        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers[name] = value
        return response
