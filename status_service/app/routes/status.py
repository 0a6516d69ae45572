"""
Status routes: the dashboard's single multi-service status resource.

  OPTIONS /api/status          CORS preflight (answered by middleware)
  GET     /api/status          stored history + latest snapshot
  POST    /api/status          record one checker batch (bearer protected)
  GET     /api/status/summary  derived uptime / overall status view
"""

import logging

from fastapi import APIRouter, Depends

from app.auth import require_cron_token
from app.models.status import CheckBatch, ErrorResponse, RecordResponse, SummaryResponse
from app.recorder import build_summary, read_status, record_batch

logger = logging.getLogger("status")

router = APIRouter(prefix="/api/status", tags=["Status"])


@router.get("")
def get_status():
    """Return ``{history: {service: [...]}, latest: {...}}``. No auth, no side effects."""
    return read_status()


@router.post(
    "",
    response_model=RecordResponse,
    dependencies=[Depends(require_cron_token)],
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def record_check(batch: CheckBatch):
    """Record a checker batch: overwrite ``latest`` and fold every service's history."""
    return record_batch(batch)


@router.get("/summary", response_model=SummaryResponse)
def status_summary():
    return build_summary()
