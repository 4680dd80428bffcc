# Overview: End-of-day reconciliation of counted takings against the ledger.

"""
Day Closure Service

WHY: At the end of a day the operator counts the drawer and card terminal
totals. The closure records expected vs counted amounts per instrument so a
shortfall is visible and explained.

LIFECYCLE:
- Manual close: counted amounts entered, variances computed, locked.
- Auto close: end-of-day sweep for yesterday when nobody closed it. Actual
  amounts are unknown, so it is saved unbalanced and unlocked.
- A manual close replaces an unlocked auto-close record for the same date.
- A locked closure is final. Transactions of that date stay readable.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from ..identifiers import generate_id
from ..models.finance import DayClosureRecord, DailySummary
from ..money import Amount, money_equals, round_money, subtract_money
from ..storage import KeyValueStore, STORAGE_KEYS, read_json, write_json
from ..time_utils import now_ms, previous_business_date
from ..validation import (
    ConflictError,
    ValidationError,
    validate_iso_date,
    validate_non_empty_string,
    validate_non_negative_number,
)
from .ledger_service import TransactionLedger


logger = logging.getLogger(__name__)


AUTO_CLOSE_USER = "system"
AUTO_CLOSE_NOTE = "Auto-closed - requires manual reconciliation. Actual amounts not recorded."


class ClosureError(ConflictError):
    """Raised when a day cannot be closed."""
    pass


def _load(store: KeyValueStore) -> list[DayClosureRecord]:
    data = read_json(store, STORAGE_KEYS["CLOSURES"], default=[])
    if not isinstance(data, list):
        logger.warning("Day closures document has unexpected shape; treating as empty")
        return []

    closures = []
    for row in data:
        try:
            closures.append(DayClosureRecord.from_dict(row))
        except (KeyError, TypeError, ValueError, ArithmeticError, AttributeError) as exc:
            logger.warning("Skipping unreadable day closure: %s", exc)
    return closures


def _save(store: KeyValueStore, closures: list[DayClosureRecord]) -> None:
    write_json(store, STORAGE_KEYS["CLOSURES"], [closure.to_dict() for closure in closures])


def list_closures(*, store: KeyValueStore) -> list[DayClosureRecord]:
    """All closures, newest date first."""
    return sorted(_load(store), key=lambda closure: closure.date, reverse=True)


def get_closure(date: str, *, store: KeyValueStore) -> Optional[DayClosureRecord]:
    validate_iso_date(date).raise_for_error()
    for closure in _load(store):
        if closure.date == date:
            return closure
    return None


def is_day_closed(date: str, *, store: KeyValueStore) -> bool:
    """True once any closure (manual or auto) exists for the date."""
    return get_closure(date, store=store) is not None


def _build_record(
    summary: DailySummary,
    *,
    closure_id: str,
    actual_cash: Amount,
    actual_card: Amount,
    actual_upi: Amount,
    notes: str,
    closed_by: str,
    closed_at: int,
    locked: bool,
    balanced: Optional[bool] = None,
) -> DayClosureRecord:
    cash_variance = subtract_money(actual_cash, summary.expected_cash)
    card_variance = subtract_money(actual_card, summary.expected_card)
    upi_variance = subtract_money(actual_upi, summary.expected_upi)

    if balanced is None:
        balanced = all(money_equals(variance, 0) for variance in (cash_variance, card_variance, upi_variance))

    return DayClosureRecord(
        id=closure_id,
        date=summary.date,
        total_sessions=summary.total_sessions,
        gross_revenue=summary.gross_revenue,
        total_discounts=summary.total_discounts,
        net_revenue=summary.net_revenue,
        expected_cash=summary.expected_cash,
        expected_card=summary.expected_card,
        expected_upi=summary.expected_upi,
        actual_cash=round_money(actual_cash),
        actual_card=round_money(actual_card),
        actual_upi=round_money(actual_upi),
        cash_variance=cash_variance,
        card_variance=card_variance,
        upi_variance=upi_variance,
        balanced=balanced,
        variance_notes=notes,
        emergency_pin_usage_count=summary.emergency_pin_usage_count,
        closed_by=closed_by,
        closed_at=closed_at,
        locked=locked,
    )


def close_day(
    date: str,
    actual_cash: Amount,
    actual_card: Amount,
    actual_upi: Amount = 0,
    notes: str = "",
    *,
    closed_by: str,
    store: KeyValueStore,
    clock: Callable[[], int] = now_ms,
    new_id: Callable[[str], str] = generate_id,
) -> DayClosureRecord:
    """
    Record the operator's count for `date` and lock it.

    Raises:
        ValidationError: bad date, negative amount, or unbalanced without notes
        ClosureError: the date already has a locked closure
    """
    validate_iso_date(date).raise_for_error()
    validate_non_empty_string(closed_by, "Closed by").raise_for_error()
    for value, label in ((actual_cash, "Actual cash"), (actual_card, "Actual card"), (actual_upi, "Actual UPI")):
        validate_non_negative_number(value, label).raise_for_error()

    with store.transaction():
        closures = _load(store)
        existing = next((closure for closure in closures if closure.date == date), None)
        if existing is not None and existing.locked:
            raise ClosureError(f"Day {date} is already closed")

        record = _build_record(
            TransactionLedger(store).daily_summary(date),
            closure_id=new_id("closure"),
            actual_cash=actual_cash,
            actual_card=actual_card,
            actual_upi=actual_upi,
            notes=(notes or "").strip(),
            closed_by=closed_by,
            closed_at=clock(),
            locked=True,
        )
        if not record.balanced and not record.variance_notes:
            raise ValidationError("Variance notes are required when the day does not balance")

        closures = [closure for closure in closures if closure.date != date]
        closures.append(record)
        _save(store, closures)

    logger.info(
        "Closed %s by %s: balanced=%s cash_variance=%s card_variance=%s upi_variance=%s",
        date,
        closed_by,
        record.balanced,
        record.cash_variance,
        record.card_variance,
        record.upi_variance,
    )
    return record


def auto_close_previous_day(
    *,
    store: KeyValueStore,
    clock: Callable[[], int] = now_ms,
    new_id: Callable[[str], str] = generate_id,
) -> Optional[DayClosureRecord]:
    """
    End-of-day sweep for yesterday (UTC).

    Returns None when yesterday is already closed or had no sessions.
    """
    now = clock()
    date = previous_business_date(now)

    with store.transaction():
        closures = _load(store)
        if any(closure.date == date for closure in closures):
            return None

        summary = TransactionLedger(store).daily_summary(date)
        if summary.total_sessions == 0:
            return None

        record = _build_record(
            summary,
            closure_id=new_id("closure"),
            actual_cash=0,
            actual_card=0,
            actual_upi=0,
            notes=AUTO_CLOSE_NOTE,
            closed_by=AUTO_CLOSE_USER,
            closed_at=now,
            locked=False,
            balanced=False,
        )
        closures.append(record)
        _save(store, closures)

    logger.warning("Auto-closed %s with %d sessions; manual reconciliation required", date, summary.total_sessions)
    return record
