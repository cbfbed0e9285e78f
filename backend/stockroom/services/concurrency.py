# Overview: Row locking and transaction retry helpers shared by every workflow.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


# Lock waits/deadlocks and optimistic version_id conflicts
RETRYABLE_ERRORS = (OperationalError, StaleDataError)

# Unique keys of rows created lazily inside a workflow: two transactions may
# both miss the row and insert it. Constraint name as reported by PostgreSQL,
# table name as reported by SQLite.
LAZY_INSERT_KEYS = {
    "uq_stock_levels_key": "stock_levels",
}


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    populate_existing() refreshes rows already in the session so the locked
    read is never a stale identity-map copy.
    """
    return query.with_for_update().populate_existing()


def _retry_policy(attempts, backoff_base):
    if attempts is None:
        attempts = current_app.config.get("DB_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("DB_RETRY_BACKOFF", 0.1)
    return max(1, attempts), backoff_base


def is_lazy_insert_race(exc: IntegrityError) -> bool:
    """True when exc is a duplicate insert of one of the LAZY_INSERT_KEYS rows."""
    message = str(getattr(exc, "orig", None) or exc)
    for constraint, table in LAZY_INSERT_KEYS.items():
        if constraint in message or f"UNIQUE constraint failed: {table}." in message:
            return True
    return False


def _retryable(exc) -> bool:
    if isinstance(exc, IntegrityError):
        return is_lazy_insert_race(exc)
    return True


def run_with_retry(
    func,
    *,
    attempts: int | None = None,
    backoff_base: float | None = None,
    retry_on=RETRYABLE_ERRORS,
    retry_if=None,
):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts) by default. retry_if narrows retry_on:
    an exception it rejects is raised after the rollback without retrying.
    """
    attempts, backoff_base = _retry_policy(attempts, backoff_base)
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except retry_on as exc:
            db.session.rollback()
            last_exc = exc
            if retry_if is not None and not retry_if(exc):
                raise
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_in_transaction(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Run func as one all-or-nothing unit of work.

    Commits when func returns; rolls back on any exception so a rejected
    operation leaves no movements and no status change behind. Lock and
    version conflicts, plus the duplicate insert of a lazily created stock
    level, are retried from scratch. Any other IntegrityError is a real
    constraint violation and is raised on the first attempt.
    """
    def _op():
        try:
            result = func()
            db.session.commit()
            return result
        except RETRYABLE_ERRORS + (IntegrityError,):
            raise
        except Exception:
            db.session.rollback()
            raise

    return run_with_retry(
        _op,
        attempts=attempts,
        backoff_base=backoff_base,
        retry_on=RETRYABLE_ERRORS + (IntegrityError,),
        retry_if=_retryable,
    )
