from __future__ import annotations

import time
from datetime import date, datetime, timedelta, timezone
from typing import Optional


MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE


def now_ms() -> int:
    """Server-side 'now' as epoch milliseconds (the engine's clock)."""
    return int(time.time() * MS_PER_SECOND)


def ms_to_datetime(value: int) -> datetime:
    """Epoch milliseconds -> aware UTC datetime."""
    return datetime.fromtimestamp(value / MS_PER_SECOND, tz=timezone.utc)


def business_date(value: int) -> str:
    """
    Calendar date (YYYY-MM-DD) a timestamp belongs to.

    Dates are UTC dates, so a transaction's date is stable no matter which
    terminal rendered it.
    """
    return ms_to_datetime(value).date().isoformat()


def previous_business_date(value: int) -> str:
    """The calendar date before the one `value` falls on."""
    return (ms_to_datetime(value).date() - timedelta(days=1)).isoformat()


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a strict YYYY-MM-DD string.

    - None / "" -> None
    - anything that is not exactly YYYY-MM-DD raises ValueError
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    if len(s) != 10:
        raise ValueError(f"Invalid date: {value!r} (expected YYYY-MM-DD)")
    return date.fromisoformat(s)


def to_utc_z(value: Optional[int]) -> Optional[str]:
    """
    Serializes epoch milliseconds to ISO-8601 with trailing 'Z'.
    """
    if value is None:
        return None
    dt_utc = ms_to_datetime(value).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
