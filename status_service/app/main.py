from contextlib import asynccontextmanager

from fastapi import FastAPI

from status_common.observability import (
    CorsHeadersMiddleware,
    init_observability,
    get_logger,
    shutdown_tracing,
)

from app.auth import get_cron_secret
from app.database import init_db
from app.errors import register_error_handlers
from app.routes import status_router, health_router

SERVICE_NAME = "status-api"
VERSION = "0.1.0"

# Bootstrap logging + tracing + service-info in one call
init_observability(SERVICE_NAME, VERSION)

logger = get_logger(SERVICE_NAME)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Key-value store initialized")

    if get_cron_secret() is None:
        logger.warning("CRON_SECRET not set: record-check endpoint is open (dev mode)")

    yield

    # Flush remaining traces before shutdown
    shutdown_tracing()


app = FastAPI(
    title="Service Status API",
    version=VERSION,
    lifespan=lifespan,
)

app.include_router(status_router)
app.include_router(health_router)

# Innermost first: errors become JSON, then every response gets CORS headers
register_error_handlers(app)
app.add_middleware(CorsHeadersMiddleware)

# Initialize telemetry at module level (before requests start)
try:
    from app import telemetry
    telemetry.init(app)
except Exception as e:
    logger.warning("Telemetry init skipped: %s", e)
