from .status import (
    CheckResult,
    CheckBatch,
    RecordResponse,
    ErrorResponse,
    ServiceSummary,
    SummaryResponse,
)
from .queries import HealthResponse

__all__ = [
    "CheckResult",
    "CheckBatch",
    "RecordResponse",
    "ErrorResponse",
    "ServiceSummary",
    "SummaryResponse",
    "HealthResponse",
]
