"""
Key-value persistence for engine state.

The engine only needs get(key) / set(key, value) on serialized documents.
Services receive a store explicitly, so they run the same against the SQL
store in the app and the in-memory store in tests.

INVARIANTS:
- A mutating service call does its whole read-modify-write inside
  store.transaction(); no other logical operation sees a partial write.
- An unreadable document is treated as absent; callers regenerate from
  defaults rather than proceeding with corrupt state.
"""

from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Protocol

from .extensions import db
from .models.storage import KeyValueRecord
from .services.concurrency import run_with_retry


logger = logging.getLogger(__name__)


STORAGE_KEYS = {
    "TABLES": "club_tables",
    "SETTINGS": "club_settings",
    "SALES": "club_sales_transactions",
    "CLOSURES": "club_day_closures",
}


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def transaction(self): ...


class _LockingStore:
    """Process-wide re-entrant lock shared by every store instance of a class."""

    _lock = threading.RLock()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            yield


class InMemoryKeyValueStore(_LockingStore):
    """Dict-backed store for tests and embedding."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class SqlKeyValueStore(_LockingStore):
    """Store backed by the kv_records table (requires an app context)."""

    def get(self, key: str) -> Optional[str]:
        record = db.session.get(KeyValueRecord, key)
        return record.value if record else None

    def set(self, key: str, value: str) -> None:
        def _op():
            record = db.session.get(KeyValueRecord, key)
            if record is None:
                db.session.add(KeyValueRecord(key=key, value=value))
            else:
                record.value = value
            db.session.commit()

        run_with_retry(_op)

    def delete(self, key: str) -> None:
        def _op():
            db.session.query(KeyValueRecord).filter_by(key=key).delete()
            db.session.commit()

        run_with_retry(_op)


def read_json(store: KeyValueStore, key: str, default: Any = None) -> Any:
    """
    Load a JSON document.

    Missing -> default. Unparseable -> default, with a warning so the
    corruption is visible in the logs.
    """
    raw = store.get(key)
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Discarding unreadable state document %s", key)
        return default


def write_json(store: KeyValueStore, key: str, value: Any) -> None:
    store.set(key, json.dumps(value, separators=(",", ":")))
