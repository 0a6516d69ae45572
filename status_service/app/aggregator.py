"""
Daily history aggregation for monitored services.

Every recorded check is folded into one ``DayEntry`` per service per UTC
calendar date:

* the first check of a date creates the entry (``checks == 1``),
* later checks on the same date escalate the day status
  (``down`` > ``partial`` > ``operational``), fold the response time and
  bump ``checks``,
* only the newest ``MAX_HISTORY_DAYS`` entries are retained, oldest first.

Response-time folding averages the stored value with the incoming one
(rounded, halves up). With more than two checks in a day this is an average
of pairs weighted towards recent checks, not a true running mean.
"""

from __future__ import annotations

import logging
import re
from bisect import bisect_right
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

logger = logging.getLogger("aggregator")

MONITORED_SERVICES = ("frontend", "backend", "database")

# Per-check vocabulary
STATUS_OPERATIONAL = "operational"
STATUS_DEGRADED = "degraded"
STATUS_DOWN = "down"
STATUS_UNKNOWN = "unknown"
STATUS_KINDS = (STATUS_OPERATIONAL, STATUS_DEGRADED, STATUS_DOWN, STATUS_UNKNOWN)

# Per-day vocabulary
DAY_OPERATIONAL = "operational"
DAY_PARTIAL = "partial"
DAY_DOWN = "down"
DAY_STATUSES = (DAY_OPERATIONAL, DAY_PARTIAL, DAY_DOWN)

MAX_HISTORY_DAYS = 30

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_DAY_STATUS_FOR = {
    STATUS_OPERATIONAL: DAY_OPERATIONAL,
    STATUS_DEGRADED: DAY_PARTIAL,
    STATUS_DOWN: DAY_DOWN,
}


# ── Data classes ─────────────────────────────────────────────────


@dataclass
class DayEntry:
    """Aggregate of all checks for one service on one UTC date."""

    date: str
    status: str
    response_time: Optional[int]
    checks: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "status": self.status,
            "responseTime": self.response_time,
            "checks": self.checks,
        }


# ── Helpers ──────────────────────────────────────────────────────


def history_key(service: str) -> str:
    return f"uptime:{service}"


def utc_day(timestamp_ms: int) -> str:
    """Convert an epoch-milliseconds timestamp to its UTC ``YYYY-MM-DD`` date."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d")


def map_to_day_status(status: Optional[str]) -> str:
    """Map a per-check status onto the coarser per-day vocabulary.

    ``unknown`` (or a missing status) maps to ``operational``: a day that
    only saw unknown checks is shown optimistically.
    """
    return _DAY_STATUS_FOR.get(status, DAY_OPERATIONAL)


def escalate(existing: str, incoming: Optional[str]) -> str:
    """Combine a stored day status with a new per-check status.

    Monotonic within a day: once ``down`` always ``down``, once ``partial``
    never back to ``operational``.
    """
    if existing == DAY_DOWN or incoming == STATUS_DOWN:
        return DAY_DOWN
    if existing == DAY_PARTIAL or incoming == STATUS_DEGRADED:
        return DAY_PARTIAL
    return DAY_OPERATIONAL


def fold_response_time(existing: Optional[int], incoming: Optional[int]) -> Optional[int]:
    if existing is None:
        return incoming
    if incoming is None:
        return existing
    # Round half up
    return (existing + incoming + 1) // 2


def _coerce_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def coerce_history(raw: Any) -> list[DayEntry]:
    """
    Best-effort decode of a stored history array.

    Invalid items are skipped rather than failing the whole write, so a
    partially corrupted or older-format record heals on the next check.
    Legacy raw check statuses (``degraded``, ``unknown``) are folded into
    the day vocabulary. Duplicate dates keep their first occurrence.
    """
    if not isinstance(raw, list):
        return []

    entries: list[DayEntry] = []
    seen: set[str] = set()
    for item in raw:
        if not isinstance(item, dict):
            continue
        date = item.get("date")
        if not isinstance(date, str) or not _DATE_RE.match(date) or date in seen:
            continue
        seen.add(date)

        status = item.get("status")
        if status not in DAY_STATUSES:
            status = map_to_day_status(status)

        checks = _coerce_int(item.get("checks"))
        response_time = _coerce_int(item.get("responseTime"))

        entries.append(DayEntry(
            date=date,
            status=status,
            response_time=response_time,
            checks=checks if checks and checks > 0 else 1,
        ))

    return entries


# ── Aggregation ──────────────────────────────────────────────────


def aggregate(
    existing_history: Any,
    today: str,
    incoming=None,
) -> tuple[list[dict], dict]:
    """Fold one check result into a service's stored history.

    Args:
        existing_history: Stored history as read from the KV store (a list
            of entry dicts, or ``None`` when the key is absent).
        today: UTC date (``YYYY-MM-DD``) the check belongs to.
        incoming: The check result, any object with ``status`` and
            ``response_time`` attributes. ``None`` stands for an
            ``unknown`` check with no response time.

    Returns:
        ``(updated_history, updated_entry)`` as JSON-ready dicts; the
        history is oldest first and holds at most ``MAX_HISTORY_DAYS``
        entries.
    """
    status = getattr(incoming, "status", None) or STATUS_UNKNOWN
    response_time = getattr(incoming, "response_time", None)

    history = coerce_history(existing_history)
    existing = next((e for e in history if e.date == today), None)

    if existing is None:
        entry = DayEntry(
            date=today,
            status=map_to_day_status(status),
            response_time=response_time,
            checks=1,
        )
        dates = [e.date for e in history]
        if not dates or dates[-1] < today:
            history.append(entry)
        else:
            # Late check for an earlier date: keep history ordered by date
            history.insert(bisect_right(dates, today), entry)
            logger.debug("Inserted out-of-order entry for %s", today)
    else:
        entry = existing
        entry.checks = existing.checks + 1
        entry.status = escalate(existing.status, status)
        entry.response_time = fold_response_time(existing.response_time, response_time)

    history = history[-MAX_HISTORY_DAYS:]
    return [e.to_dict() for e in history], entry.to_dict()
