"""
SQLite-backed key-value store.

The rest of the service treats storage as an opaque JSON store addressed by
string keys (``uptime:<service>``, ``latest``). Each row carries a version
counter that is bumped on every write so read-modify-write callers can use
``kv_put_if_version`` as a compare-and-swap.
"""

import json
import os
import sqlite3
from pathlib import Path
from contextlib import contextmanager

from opentelemetry import trace
from opentelemetry.trace import SpanKind

from status_common.observability import observe_duration

DB_PATH = Path(os.environ.get("DATABASE_PATH", str(Path(__file__).parent.parent / "status.db")))

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    version INTEGER NOT NULL DEFAULT 1,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

# Set by telemetry.init when metrics are available
store_duration_histogram = None


def _get_db_path() -> Path:
    return DB_PATH


def init_db():
    db_path = _get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    should_reset = os.environ.get("DB_RESET_ON_START", "false").lower() == "true"

    with sqlite3.connect(str(db_path)) as conn:
        if should_reset:
            conn.execute("DROP TABLE IF EXISTS kv_store")
        conn.executescript(SCHEMA)


@contextmanager
def get_connection():
    conn = sqlite3.connect(str(_get_db_path()))
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def kv_get_versioned(key: str):
    """Return ``(value, version)`` for *key*; ``(None, 0)`` when absent."""
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(
        "kv get",
        kind=SpanKind.CLIENT,
        attributes={
            "db.system": "sqlite",
            "db.operation": "SELECT",
            "kv.key": key,
        }
    ) as span:
        with observe_duration(store_duration_histogram, operation="get"):
            with get_connection() as conn:
                row = conn.execute(
                    "SELECT value, version FROM kv_store WHERE key = ?", (key,)
                ).fetchone()

        span.set_attribute("kv.hit", row is not None)
        if row is None:
            return None, 0
        return json.loads(row["value"]), row["version"]


def kv_get(key: str):
    """Return the decoded JSON value stored under *key*, or ``None``."""
    value, _ = kv_get_versioned(key)
    return value


def kv_put(key: str, value) -> int:
    """Unconditionally store *value* under *key*. Returns the new version."""
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(
        "kv put",
        kind=SpanKind.CLIENT,
        attributes={
            "db.system": "sqlite",
            "db.operation": "UPSERT",
            "kv.key": key,
        }
    ):
        payload = json.dumps(value)
        with observe_duration(store_duration_histogram, operation="put"):
            with get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO kv_store (key, value, version, updated_at)
                    VALUES (?, ?, 1, datetime('now'))
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        version = kv_store.version + 1,
                        updated_at = excluded.updated_at
                    """,
                    (key, payload),
                )
                row = conn.execute(
                    "SELECT version FROM kv_store WHERE key = ?", (key,)
                ).fetchone()
        return row["version"]


def kv_put_if_version(key: str, value, expected_version: int) -> bool:
    """Store *value* only if *key* is still at *expected_version*.

    ``expected_version == 0`` means the key must not exist yet. Returns
    ``False`` when another writer got there first.
    """
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(
        "kv put_if_version",
        kind=SpanKind.CLIENT,
        attributes={
            "db.system": "sqlite",
            "db.operation": "UPSERT",
            "kv.key": key,
            "kv.expected_version": expected_version,
        }
    ) as span:
        payload = json.dumps(value)
        with observe_duration(store_duration_histogram, operation="put_if_version"):
            with get_connection() as conn:
                if expected_version == 0:
                    cursor = conn.execute(
                        "INSERT OR IGNORE INTO kv_store (key, value, version) VALUES (?, ?, 1)",
                        (key, payload),
                    )
                else:
                    cursor = conn.execute(
                        """
                        UPDATE kv_store
                        SET value = ?, version = version + 1, updated_at = datetime('now')
                        WHERE key = ? AND version = ?
                        """,
                        (payload, key, expected_version),
                    )
                written = cursor.rowcount == 1

        span.set_attribute("kv.written", written)
        return written


def count_keys() -> int:
    with get_connection() as conn:
        row = conn.execute("SELECT COUNT(*) AS cnt FROM kv_store").fetchone()
    return row["cnt"]


def check_connection() -> bool:
    try:
        with get_connection() as conn:
            conn.execute("SELECT 1")
        return True
    except sqlite3.Error:
        return False
