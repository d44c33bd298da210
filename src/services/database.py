"""
Backing store: connection handle, schema and transaction discipline.
====================================================================

All SQL goes through the ``databases`` library so the same queries run on
Postgres (production) and SQLite (local runs, tests). Identifiers and
timestamps are stored as text to keep both dialects on one schema.

Cross-record invariants (item status vs. recovery rows) are enforced with
database transactions only. ``run_in_transaction`` owns the begin/commit/
rollback lifecycle and retries the unit on transient transaction errors.
"""

import asyncio
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable, List, Tuple, TypeVar

from databases import Database

from .errors import ServerError, ServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SQLSTATE codes for serialization failure and deadlock
TRANSIENT_SQLSTATES = {"40001", "40P01"}

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        email TEXT NOT NULL UNIQUE,
        uid TEXT UNIQUE,
        is_admin BOOLEAN NOT NULL DEFAULT FALSE,
        photo_url TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS items (
        id TEXT PRIMARY KEY,
        post_type TEXT NOT NULL,
        thumbnail TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        category TEXT NOT NULL,
        location TEXT NOT NULL,
        date TEXT NOT NULL,
        contact_name TEXT NOT NULL,
        contact_email TEXT NOT NULL,
        user_id TEXT,
        status TEXT NOT NULL DEFAULT 'not-recovered',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_items_contact_email ON items (contact_email)",
    """
    CREATE TABLE IF NOT EXISTS recoveries (
        id TEXT PRIMARY KEY,
        item_id TEXT NOT NULL,
        original_post_type TEXT NOT NULL,
        original_title TEXT NOT NULL,
        original_description TEXT NOT NULL DEFAULT '',
        original_category TEXT NOT NULL,
        original_location TEXT NOT NULL,
        original_date TEXT NOT NULL,
        original_thumbnail TEXT NOT NULL,
        original_owner_name TEXT NOT NULL,
        original_owner_email TEXT NOT NULL,
        recovered_by_user_id TEXT NOT NULL,
        recovered_by_name TEXT NOT NULL,
        recovered_by_email TEXT NOT NULL,
        recovered_by_photo_url TEXT,
        recovered_location TEXT NOT NULL,
        recovered_date TEXT NOT NULL,
        notes TEXT NOT NULL DEFAULT '',
        recovery_status TEXT NOT NULL DEFAULT 'pending',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_recoveries_item_id ON recoveries (item_id)",
    """
    CREATE TABLE IF NOT EXISTS slides (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        image TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL
    )
    """,
]


def create_database(url: str) -> Database:
    """Create the (not yet connected) pooled database handle."""
    return Database(url)


async def init_schema(db: Database) -> None:
    """Create tables and indexes that do not exist yet."""
    for statement in SCHEMA_STATEMENTS:
        await db.execute(statement)
    logger.info("[Database] Schema ready")


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def in_clause(name: str, values: Iterable[Any]) -> Tuple[str, dict]:
    """Build ``:name0, :name1, ...`` placeholders for an IN (...) list."""
    params = {f"{name}{i}": value for i, value in enumerate(values)}
    placeholders = ", ".join(f":{key}" for key in params)
    return placeholders, params


def rows_to_dicts(rows: List[Any]) -> List[dict]:
    return [dict(row._mapping) if hasattr(row, "_mapping") else dict(row) for row in rows]


def row_to_dict(row: Any) -> dict:
    return dict(row._mapping) if hasattr(row, "_mapping") else dict(row)


def is_transient(exc: BaseException) -> bool:
    """True for transaction-layer failures that are safe to retry."""
    if getattr(exc, "sqlstate", None) in TRANSIENT_SQLSTATES:
        return True
    if isinstance(exc, sqlite3.OperationalError) and "locked" in str(exc):
        return True
    return False


async def run_in_transaction(
    db: Database,
    unit: Callable[[], Awaitable[T]],
    *,
    label: str,
    max_attempts: int = 3,
    backoff: float = 0.05,
) -> T:
    """
    Run ``unit`` inside a single all-or-nothing transaction.

    The transaction is rolled back on every failure path. Domain errors
    (``ServiceError``) raised by the unit are terminal and re-raised as-is.
    Transient transaction errors are retried up to ``max_attempts``; any
    other failure aborts immediately as ``ServerError``.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            async with db.transaction():
                return await unit()
        except ServiceError:
            raise
        except Exception as exc:
            if is_transient(exc) and attempt < max_attempts:
                logger.warning(
                    f"[Transaction] {label}: transient failure on attempt "
                    f"{attempt}/{max_attempts}, retrying: {exc}"
                )
                await asyncio.sleep(backoff * attempt)
                continue
            logger.error(f"[Transaction] {label} aborted after {attempt} attempt(s): {exc}")
            raise ServerError("Transaction failed") from exc


__all__ = [
    "create_database",
    "init_schema",
    "utcnow",
    "in_clause",
    "rows_to_dicts",
    "row_to_dict",
    "is_transient",
    "run_in_transaction",
]
