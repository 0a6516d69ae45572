"""Pydantic models for the status resource."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ServiceId = Literal["frontend", "backend", "database"]
StatusKind = Literal["operational", "degraded", "down", "unknown"]
OverallStatus = Literal["operational", "degraded", "down", "unknown"]


class CheckResult(BaseModel):
    """Outcome of a single probe of one service.

    Fields beyond ``status`` and ``responseTime`` (e.g. a backend ``uptime``)
    are kept and passed through to the ``latest`` snapshot.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    status: StatusKind
    response_time: Optional[int] = Field(
        default=None,
        ge=0,
        alias="responseTime",
        description="Probe round-trip in whole milliseconds",
    )


class CheckBatch(BaseModel):
    """One checker cycle: results per service plus the shared batch time."""

    checks: dict[ServiceId, CheckResult] = Field(default_factory=dict)
    timestamp: int = Field(ge=0, description="Epoch milliseconds of the batch")


class RecordResponse(BaseModel):
    success: bool
    timestamp: int


class ErrorResponse(BaseModel):
    error: str


# ── Summary ──────────────────────────────────────────────────────


class ServiceSummary(BaseModel):
    """Derived per-service view shown on the dashboard cards."""

    model_config = ConfigDict(populate_by_name=True)

    status: Optional[StatusKind] = Field(
        default=None, description="Latest check status, null before the first check"
    )
    response_time: Optional[int] = Field(default=None, alias="responseTime")
    uptime_percent: Optional[float] = Field(
        default=None,
        alias="uptimePercent",
        description="Share of fully operational days in stored history",
    )
    days: int = Field(description="Number of stored history days")


class SummaryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    overall: OverallStatus
    title: str
    subtitle: str
    services: dict[ServiceId, ServiceSummary]
    period_start: Optional[str] = Field(default=None, alias="periodStart")
    period_end: Optional[str] = Field(default=None, alias="periodEnd")
    timestamp: Optional[int] = Field(
        default=None, description="Epoch milliseconds of the latest batch"
    )
