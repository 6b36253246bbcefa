# Overview: Service-layer helpers for concurrency; row locks, retries and critical sections.

from __future__ import annotations

import threading
import time
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


_section_locks: dict[str, threading.Lock] = {}
_section_locks_guard = threading.Lock()


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def critical_section(name: str):
    """
    Serialize a check-then-write sequence within this process.

    Used where no single row can carry the guard (e.g. "no overlapping pay
    period" spans the whole table). Combine with lock_for_update so that
    databases with real row locks also serialize across processes.
    """
    with _section_locks_guard:
        lock = _section_locks.setdefault(name, threading.Lock())
    with lock:
        yield


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts).
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
