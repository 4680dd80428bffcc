# Overview: Commit helpers for the SQL-backed state store.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


logger = logging.getLogger(__name__)

# SQLite "database is locked" and a kv_records row whose version_id moved
RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Write one state document, retrying when another writer got there first.

    `func` must redo the whole write (load the record, set the value, commit):
    the session is rolled back between attempts, so nothing from a failed
    attempt survives. The last error is re-raised once attempts run out.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt == attempts:
                raise
            delay = backoff_base * (2 ** (attempt - 1))
            logger.warning("State write conflict (%s); retry %d/%d in %.2fs", type(exc).__name__, attempt, attempts - 1, delay)
            time.sleep(delay)
