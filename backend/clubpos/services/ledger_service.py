# Overview: Append-only store of sales transactions and the per-day finance views.

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ..models.finance import (
    CardPayment,
    CashPayment,
    DailySummary,
    ENDED_BY_EMERGENCY_PIN,
    SalesTransaction,
    SplitPayment,
    TENDER_CARD,
    TENDER_CASH,
    TENDER_UPI,
    UpiPayment,
)
from ..money import from_cents, money_to_json, subtract_money, sum_money, to_cents
from ..storage import KeyValueStore, STORAGE_KEYS, read_json, write_json
from ..validation import ConflictError, validate_iso_date
"""
Transaction Ledger Invariants (authoritative)

- Append-only: there is no update or delete operation.
- Every record is locked when created and stays locked.
- At most one transaction per session.
- Date filters compare YYYY-MM-DD strings lexicographically (inclusive),
  which orders the same as the calendar.
- Reads deserialize fresh frozen records; callers cannot reach stored state.
"""


logger = logging.getLogger(__name__)


class LedgerError(ConflictError):
    """Raised when a transaction cannot be appended."""
    pass


@dataclass(frozen=True)
class TenderTotals:
    """Money actually received per instrument (split parts counted separately)."""
    date: str
    cash: Decimal
    card: Decimal
    upi: Decimal

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "cash": money_to_json(self.cash),
            "card": money_to_json(self.card),
            "upi": money_to_json(self.upi),
        }


class TransactionLedger:
    """
    Sales transactions persisted as one list document.

    Unreadable entries are skipped (and logged) on read but kept in the
    stored document, so an append never destroys history it cannot parse.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def _raw(self) -> list:
        data = read_json(self.store, STORAGE_KEYS["SALES"], default=[])
        if not isinstance(data, list):
            logger.warning("Sales ledger document has unexpected shape; treating as empty")
            return []
        return data

    def _load(self) -> list[SalesTransaction]:
        records = []
        for row in self._raw():
            try:
                records.append(SalesTransaction.from_dict(row))
            except (KeyError, TypeError, ValueError, ArithmeticError, AttributeError) as exc:
                logger.warning("Skipping unreadable sales transaction %r: %s", _row_id(row), exc)
        return records

    # =========================================================================
    # WRITE
    # =========================================================================

    def append(self, transaction: SalesTransaction) -> SalesTransaction:
        if not transaction.locked:
            raise LedgerError("Only locked transactions can be recorded")

        with self.store.transaction():
            existing = self._load()
            for record in existing:
                if record.id == transaction.id:
                    raise LedgerError(f"Transaction {transaction.id} already recorded")
                if record.session_id == transaction.session_id:
                    raise LedgerError(f"Session {transaction.session_id} has already been billed")

            rows = self._raw()
            rows.append(transaction.to_dict())
            write_json(self.store, STORAGE_KEYS["SALES"], rows)

        logger.info(
            "Recorded transaction %s for %s: total=%s via %s",
            transaction.id,
            transaction.table_number,
            transaction.total,
            transaction.payment.kind,
        )
        return transaction

    # =========================================================================
    # READ
    # =========================================================================

    def all(self) -> list[SalesTransaction]:
        return self._load()

    def get(self, transaction_id: str) -> Optional[SalesTransaction]:
        for record in self._load():
            if record.id == transaction_id:
                return record
        return None

    def for_session(self, session_id: str) -> Optional[SalesTransaction]:
        for record in self._load():
            if record.session_id == session_id:
                return record
        return None

    def by_date(self, date: str) -> list[SalesTransaction]:
        validate_iso_date(date).raise_for_error()
        return [record for record in self._load() if record.date == date]

    def by_date_range(self, start: str, end: str) -> list[SalesTransaction]:
        validate_iso_date(start, "start").raise_for_error()
        validate_iso_date(end, "end").raise_for_error()
        return [record for record in self._load() if start <= record.date <= end]

    # =========================================================================
    # AGGREGATES
    # =========================================================================

    def daily_summary(self, date: str) -> DailySummary:
        """
        Expected takings for reconciliation.

        Expected tender totals follow the flat payment_method view, so a split
        payment's whole total lands in expected_cash.
        """
        records = self.by_date(date)

        gross = sum_money(record.subtotal for record in records)
        discounts = sum_money(record.discount_amount for record in records)

        def expected(method: str) -> Decimal:
            return sum_money(record.total for record in records if record.payment_method == method)

        return DailySummary(
            date=date,
            total_sessions=len(records),
            gross_revenue=gross,
            total_discounts=discounts,
            net_revenue=subtract_money(gross, discounts),
            expected_cash=expected(TENDER_CASH),
            expected_card=expected(TENDER_CARD),
            expected_upi=expected(TENDER_UPI),
            emergency_pin_usage_count=sum(
                1 for record in records if record.ended_using == ENDED_BY_EMERGENCY_PIN
            ),
        )

    def tender_totals(self, date: str) -> TenderTotals:
        cents = {TENDER_CASH: 0, TENDER_CARD: 0, TENDER_UPI: 0}
        for record in self.by_date(date):
            payment = record.payment
            if isinstance(payment, SplitPayment):
                cents[TENDER_CASH] += to_cents(payment.cash)
                cents[TENDER_CARD] += to_cents(payment.card)
            elif isinstance(payment, (CashPayment, CardPayment, UpiPayment)):
                cents[payment.kind] += to_cents(payment.amount)

        return TenderTotals(
            date=date,
            cash=from_cents(cents[TENDER_CASH]),
            card=from_cents(cents[TENDER_CARD]),
            upi=from_cents(cents[TENDER_UPI]),
        )


def _row_id(row) -> Optional[str]:
    if isinstance(row, dict):
        return row.get("id")
    return None
