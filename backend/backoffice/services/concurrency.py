# Overview: Transaction boundaries and row locking shared by the workflow services.

from __future__ import annotations

import time
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import AppError, ConflictError

RETRYABLE = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    SELECT ... FOR UPDATE on PostgreSQL.

    SQLite has no row locks and drops the clause; its single writer lock
    already serializes the transactions that use this.
    """
    return query.with_for_update()


@contextmanager
def atomic(session, *, conflict_message: str = "Record conflicts with existing data"):
    """
    One explicit transaction around a workflow.

    Commits when the block finishes; on any exception rolls back first and
    then re-raises. Integrity violations surface as ConflictError.
    """
    try:
        yield session
        session.commit()
    except AppError:
        session.rollback()
        raise
    except IntegrityError:
        session.rollback()
        raise ConflictError(conflict_message)
    except BaseException:
        session.rollback()
        raise


def run_with_retry(session, func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Call ``func`` until it succeeds or ``attempts`` run out.

    Only lock timeouts, deadlocks and stale rows are retried, with
    exponential backoff; the session is rolled back between tries.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE:
            session.rollback()
            if attempt == attempts:
                raise
            time.sleep(backoff_base * 2 ** (attempt - 1))
