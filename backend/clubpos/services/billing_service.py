# Overview: Bill computation for a table session and the checkout that records the sale.

"""
Billing Service

WHY: Turns a session and an end time into a bill, applies the operator's
discount, checks the tender and, on confirmation, writes the immutable sales
transaction and frees the table.

DESIGN PRINCIPLES:
- Pure calculators (compute_final_bill, apply_discount, validate_payment)
  take the clock reading as input; nothing inside them reads the time.
- End time is captured once at preview; checkout recomputes from that
  captured value so the confirmed bill equals what was shown.
- Every intermediate figure is rounded through the money module.
- Nothing is written unless every validation passes and the payment delay
  completed without the session changing underneath it.

TWO RATES:
- compute_final_bill: proportional, rate x hours after the grace period.
  This is what gets billed.
- estimate_live_amount: first hour flat, then each started half hour at half
  rate. Shown on the live table card only. The two disagree for most
  durations and are kept separate on purpose; see DESIGN.md.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional

from ..identifiers import generate_id
from ..models.finance import (
    BilledItem,
    CardPayment,
    CashPayment,
    ENDED_BY_OWNER,
    Payment,
    SalesTransaction,
    SplitPayment,
    TENDER_CARD,
    TENDER_CASH,
    TENDER_SPLIT,
    TENDER_UPI,
    UpiPayment,
    VALID_ENDED_USING,
)
from ..models.tables import Session, Table
from ..money import (
    Amount,
    add_money,
    max_money,
    money_equals,
    money_to_json,
    multiply_money,
    percentage_of,
    round_money,
    subtract_money,
    sum_money,
)
from ..storage import KeyValueStore
from ..time_utils import MS_PER_HOUR, MS_PER_MINUTE, business_date, now_ms
from ..validation import (
    ConflictError,
    OK,
    ValidationError,
    ValidationResult,
    validate_discount_amount,
    validate_percentage,
)
from .catalog_service import get_activity, load_settings
from .ledger_service import TransactionLedger
from .session_service import SessionStateError
from .table_service import find_table, load_tables, save_tables


logger = logging.getLogger(__name__)


GRACE_PERIOD_MS = 5 * MS_PER_MINUTE

DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_FIXED = "fixed"

VALID_DISCOUNT_TYPES = [DISCOUNT_PERCENTAGE, DISCOUNT_FIXED]


class BillingError(ConflictError):
    """Raised when a checkout cannot be completed."""
    pass


# =============================================================================
# BILL TYPES
# =============================================================================

@dataclass(frozen=True)
class BillBreakdown:
    """Charges for one session up to a fixed end time (before discount)."""
    session_id: str
    start_time: int
    end_time: int
    raw_duration_ms: int
    billable_duration_ms: int
    hours: Decimal
    hourly_rate: Decimal
    table_charge: Decimal
    food_charge: Decimal
    subtotal: Decimal

    @property
    def grace_applied(self) -> bool:
        return self.raw_duration_ms > GRACE_PERIOD_MS

    @property
    def duration_minutes(self) -> int:
        """Actual (not grace-adjusted) duration in whole minutes."""
        return max(0, self.raw_duration_ms) // MS_PER_MINUTE

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "duration": self.raw_duration_ms,
            "billableDuration": self.billable_duration_ms,
            "hours": float(self.hours),
            "hourlyRate": money_to_json(self.hourly_rate),
            "tableCharge": money_to_json(self.table_charge),
            "foodCharge": money_to_json(self.food_charge),
            "subtotal": money_to_json(self.subtotal),
            "graceApplied": self.grace_applied,
        }


@dataclass(frozen=True)
class Discount:
    kind: str
    value: Decimal
    reason: str = ""

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["Discount"]:
        """Request payload -> Discount; missing or empty payload means no discount."""
        if not data:
            return None
        kind = data.get("type") or data.get("kind")
        if kind not in VALID_DISCOUNT_TYPES:
            raise ValidationError(f"Discount type must be one of: {', '.join(VALID_DISCOUNT_TYPES)}")
        try:
            value = round_money(data.get("value", 0))
        except (TypeError, ValueError, ArithmeticError):
            raise ValidationError("Discount must be a number")
        return cls(kind=kind, value=value, reason=str(data.get("reason") or ""))


@dataclass(frozen=True)
class BillQuote:
    """A breakdown with the discount applied: what the customer is asked to pay."""
    breakdown: BillBreakdown
    discount_amount: Decimal
    discount_reason: str
    total: Decimal

    def to_dict(self) -> dict:
        data = self.breakdown.to_dict()
        data.update({
            "discountAmount": money_to_json(self.discount_amount),
            "discountReason": self.discount_reason,
            "total": money_to_json(self.total),
        })
        return data


# =============================================================================
# CALCULATORS
# =============================================================================

def compute_final_bill(session: Session, now: int) -> BillBreakdown:
    """
    Proportional bill for `session` ending at `now`.

    The first GRACE_PERIOD_MS of every session is free, whatever its length;
    a session shorter than the grace period pays food only.
    """
    raw_duration = session.elapsed_ms(now)
    billable_duration = max(0, raw_duration - GRACE_PERIOD_MS)
    hours = Decimal(billable_duration) / Decimal(MS_PER_HOUR)

    table_charge = round_money(multiply_money(session.hourly_rate, hours))
    food_charge = round_money(sum_money(item.line_total for item in session.food_items))
    subtotal = round_money(add_money(table_charge, food_charge))

    return BillBreakdown(
        session_id=session.id,
        start_time=session.start_time,
        end_time=now,
        raw_duration_ms=raw_duration,
        billable_duration_ms=billable_duration,
        hours=hours,
        hourly_rate=session.hourly_rate,
        table_charge=table_charge,
        food_charge=food_charge,
        subtotal=subtotal,
    )


def estimate_live_amount(session: Session, now: int, hourly_rate: Optional[Amount] = None) -> Decimal:
    """
    Running amount shown on the table card while a session is open.

    First hour (or any part of it) at the full rate, then every started
    half hour at half the rate, plus food. Not used for billing.
    """
    rate = round_money(hourly_rate) if hourly_rate is not None else session.hourly_rate
    minutes = Decimal(max(0, session.elapsed_ms(now))) / Decimal(MS_PER_MINUTE)

    table_charge = rate
    if minutes > 60:
        half_hours = math.ceil((minutes - 60) / 30)
        table_charge = add_money(rate, multiply_money(rate, Decimal(half_hours) / 2))

    food_charge = sum_money(item.line_total for item in session.food_items)
    return add_money(table_charge, food_charge)


def apply_discount(breakdown: BillBreakdown, discount: Optional[Discount] = None) -> BillQuote:
    """
    Apply a percentage or fixed discount to the subtotal.

    Raises:
        ValidationError: out-of-range value, or a non-zero discount without a reason
    """
    subtotal = breakdown.subtotal
    if discount is None:
        return BillQuote(breakdown=breakdown, discount_amount=round_money(0), discount_reason="", total=subtotal)

    if discount.kind == DISCOUNT_PERCENTAGE:
        validate_percentage(discount.value).raise_for_error()
        discount_amount = round_money(percentage_of(subtotal, discount.value))
    elif discount.kind == DISCOUNT_FIXED:
        validate_discount_amount(discount.value, subtotal).raise_for_error()
        discount_amount = round_money(discount.value)
    else:
        raise ValidationError(f"Unknown discount type: {discount.kind}")

    reason = discount.reason.strip()
    if discount_amount > 0 and not reason:
        raise ValidationError("Please provide a reason for the discount")

    total = max_money(0, round_money(subtract_money(subtotal, discount_amount)))
    return BillQuote(
        breakdown=breakdown,
        discount_amount=discount_amount,
        discount_reason=reason,
        total=total,
    )


# =============================================================================
# PAYMENT
# =============================================================================

def resolve_payment(
    method: str,
    total: Amount,
    cash_amount: Optional[Amount] = None,
    card_amount: Optional[Amount] = None,
) -> Payment:
    """
    Build the tender for a checkout.

    Single tenders pay the whole total. Split takes the operator-entered
    cash and card parts as given; validate_payment checks them.
    """
    if method == TENDER_SPLIT:
        if cash_amount is None or card_amount is None:
            raise ValidationError("Split payment requires both cash and card amounts")
        try:
            return SplitPayment(cash=round_money(cash_amount), card=round_money(card_amount))
        except (TypeError, ValueError, ArithmeticError):
            raise ValidationError("Split payment amounts must be numbers")

    single = {TENDER_CASH: CashPayment, TENDER_CARD: CardPayment, TENDER_UPI: UpiPayment}
    if method not in single:
        raise ValidationError(f"Unknown payment method: {method}")
    return single[method](amount=round_money(total))


def validate_payment(payment: Payment, total: Amount) -> ValidationResult:
    if isinstance(payment, SplitPayment):
        split_total = round_money(add_money(payment.cash, payment.card))
        if not money_equals(split_total, total):
            return ValidationResult(
                valid=False,
                error=f"Split payment amounts must equal total: {round_money(total)}. Current: {split_total}",
            )
        if payment.cash <= 0 or payment.card <= 0:
            return ValidationResult(
                valid=False,
                error="Both cash and card amounts must be greater than zero for split payment",
            )
        return OK

    if not money_equals(payment.amount, total):
        return ValidationResult(valid=False, error=f"Payment amount must equal total: {round_money(total)}")
    return OK


# =============================================================================
# TRANSACTION
# =============================================================================

def activity_name_for(table: Table, store: KeyValueStore) -> str:
    """Activity display name, or the first word of the table label."""
    activity = get_activity(load_settings(store), table.activity_id)
    if activity is not None:
        return activity.name
    return table.number.split(" ")[0]


def build_transaction(
    *,
    transaction_id: str,
    session: Session,
    table_number: str,
    activity_name: str,
    quote: BillQuote,
    payment: Payment,
    operator: Optional[str],
    created_at: int,
    ended_using: str = ENDED_BY_OWNER,
) -> SalesTransaction:
    """Freeze the figures of `quote` into a sales transaction."""
    if ended_using not in VALID_ENDED_USING:
        raise ValidationError(f"ended_using must be one of: {', '.join(VALID_ENDED_USING)}")

    breakdown = quote.breakdown
    staff = operator or "Unknown"

    return SalesTransaction(
        id=transaction_id,
        session_id=session.id,
        date=business_date(created_at),
        table_number=table_number,
        activity_name=activity_name,
        start_time=session.start_time,
        end_time=breakdown.end_time,
        duration=breakdown.duration_minutes,
        table_charge=breakdown.table_charge,
        fnb_items=tuple(BilledItem.from_food_item(item) for item in session.food_items),
        fnb_total=breakdown.food_charge,
        subtotal=breakdown.subtotal,
        discount_amount=quote.discount_amount,
        discount_reason=quote.discount_reason or "No discount",
        discount_approved_by=staff if quote.discount_amount > 0 else "",
        total=quote.total,
        payment=payment,
        started_by=session.started_by or staff,
        ended_by=staff,
        ended_using=ended_using,
        created_at=created_at,
        customer_name=session.customer_name,
        customer_phone=session.customer_phone,
    )


def _active_session(table: Table, action: str) -> Session:
    if table.session is None:
        raise SessionStateError(f"Cannot {action}: {table.number} has no active session")
    return table.session


def _quote_at(session: Session, end_time, discount: Optional[Discount], now: int) -> BillQuote:
    if not isinstance(end_time, int) or isinstance(end_time, bool):
        raise ValidationError("end_time must be epoch milliseconds")
    if end_time < session.start_time or end_time > now:
        raise ValidationError("end_time must fall between the session start and now")
    return apply_discount(compute_final_bill(session, end_time), discount)


def preview_bill(
    table_id: int,
    discount: Optional[Discount] = None,
    *,
    store: KeyValueStore,
    clock: Callable[[], int] = now_ms,
) -> BillQuote:
    """
    Bill as of now, for display before payment.

    The returned breakdown carries the captured end_time; pass it back to
    checkout_table so the confirmed bill matches the preview.
    """
    now = clock()
    return quote_bill(table_id, now, discount, store=store, clock=lambda: now)


def quote_bill(
    table_id: int,
    end_time: int,
    discount: Optional[Discount] = None,
    *,
    store: KeyValueStore,
    clock: Callable[[], int] = now_ms,
) -> BillQuote:
    """Bill for the table's session ending at a previously captured end_time."""
    table = find_table(load_tables(store), table_id)
    session = _active_session(table, "bill")
    return _quote_at(session, end_time, discount, clock())


def checkout_table(
    table_id: int,
    *,
    end_time: int,
    payment: Payment,
    operator: Optional[str],
    store: KeyValueStore,
    discount: Optional[Discount] = None,
    ended_using: str = ENDED_BY_OWNER,
    processing_delay: float = 0,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], int] = now_ms,
    new_id: Callable[[str], str] = generate_id,
) -> SalesTransaction:
    """
    Confirm payment for a table's session.

    FLOW:
    1. Recompute the bill from the captured end_time and validate discount
       and payment
    2. Wait the payment processing delay (store lock released)
    3. Re-read the table; abort if the session changed during the wait
    4. Append the transaction, detach the session, save the tables

    Raises:
        ValidationError: bad end time, discount or payment
        SessionStateError: table has no active session
        BillingError: session already billed, or changed during processing
    """
    ledger = TransactionLedger(store)

    with store.transaction():
        table = find_table(load_tables(store), table_id)
        session = _active_session(table, "check out")
        snapshot = session.to_dict()

        if ledger.for_session(session.id) is not None:
            raise BillingError(f"Session {session.id} has already been billed")

        quote = _quote_at(session, end_time, discount, clock())
        validate_payment(payment, quote.total).raise_for_error()

    if processing_delay > 0:
        sleep(processing_delay)

    with store.transaction():
        tables = load_tables(store)
        table = find_table(tables, table_id)
        if table.session is None or table.session.to_dict() != snapshot:
            raise BillingError("Session changed while the payment was processing; review the bill and try again")

        transaction = build_transaction(
            transaction_id=new_id("trans"),
            session=table.session,
            table_number=table.number,
            activity_name=activity_name_for(table, store),
            quote=quote,
            payment=payment,
            operator=operator,
            created_at=clock(),
            ended_using=ended_using,
        )
        ledger.append(transaction)
        table.end()
        save_tables(store, tables)

    logger.info(
        "Checked out %s (session %s): subtotal=%s discount=%s total=%s",
        table.number,
        session.id,
        quote.breakdown.subtotal,
        quote.discount_amount,
        quote.total,
    )
    return transaction
