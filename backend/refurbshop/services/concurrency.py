# Overview: Transaction primitive for all state-changing service calls.

"""
Every mutation of InventoryItem/Order/Counter state runs as

    def _op():
        begin_write()
        row = lock_for_update(db.session.query(...)).first()
        ...
        db.session.commit()
        return result

    return run_with_retry(_op)

Conflict detection is layered:
- SQLite: BEGIN IMMEDIATE takes the write lock before the first read, so the
  read set and write set of a transaction are serialized.
- Servers with row locks: SELECT ... FOR UPDATE on the rows read.
- Everywhere: version_id_col on mutable rows turns a stale write into
  StaleDataError instead of a lost update.
"""

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import TransientStoreConflict
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write() covers it there.
    """
    return query.with_for_update()


def begin_write() -> None:
    """Open the transaction in write mode before anything is read."""
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Any other exception rolls the session back
    and propagates unchanged. When the attempts run out the caller gets a
    TransientStoreConflict.
    """
    if attempts is None:
        attempts = current_app.config.get("TXN_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("TXN_RETRY_BACKOFF", 0.05)
    attempts = max(1, attempts)

    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            current_app.logger.info(
                "Transaction conflict (attempt %s/%s): %s", attempt + 1, attempts, exc
            )
            if attempt < attempts - 1 and backoff_base:
                time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise

    raise TransientStoreConflict(
        "The store is busy, please retry",
        details={"retryable": True},
    ) from last_exc
