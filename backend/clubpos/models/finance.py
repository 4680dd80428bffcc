from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import ClassVar, Optional, Union

from clubpos.money import add_money, money_to_json, round_money
from clubpos.models.tables import FoodItem


# =============================================================================
# TENDER TYPES (CONSTANTS)
# =============================================================================

TENDER_CASH = "cash"
TENDER_CARD = "card"
TENDER_UPI = "upi"
TENDER_SPLIT = "split"

VALID_TENDER_TYPES = [
    TENDER_CASH,
    TENDER_CARD,
    TENDER_UPI,
    TENDER_SPLIT,
]

ENDED_BY_OWNER = "owner"
ENDED_BY_EMERGENCY_PIN = "emergency_pin"

VALID_ENDED_USING = [ENDED_BY_OWNER, ENDED_BY_EMERGENCY_PIN]


# =============================================================================
# PAYMENT (TAGGED UNION)
# =============================================================================

@dataclass(frozen=True)
class CashPayment:
    amount: Decimal
    kind: ClassVar[str] = TENDER_CASH

    def to_dict(self) -> dict:
        return {"kind": self.kind, "amount": money_to_json(self.amount)}


@dataclass(frozen=True)
class CardPayment:
    amount: Decimal
    kind: ClassVar[str] = TENDER_CARD

    def to_dict(self) -> dict:
        return {"kind": self.kind, "amount": money_to_json(self.amount)}


@dataclass(frozen=True)
class UpiPayment:
    amount: Decimal
    kind: ClassVar[str] = TENDER_UPI

    def to_dict(self) -> dict:
        return {"kind": self.kind, "amount": money_to_json(self.amount)}


@dataclass(frozen=True)
class SplitPayment:
    """One total paid partly in cash and partly by card."""
    cash: Decimal
    card: Decimal
    kind: ClassVar[str] = TENDER_SPLIT

    @property
    def amount(self) -> Decimal:
        return add_money(self.cash, self.card)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "cash": money_to_json(self.cash),
            "card": money_to_json(self.card),
        }


Payment = Union[CashPayment, CardPayment, UpiPayment, SplitPayment]

_SINGLE_TENDERS = {
    TENDER_CASH: CashPayment,
    TENDER_CARD: CardPayment,
    TENDER_UPI: UpiPayment,
}


def payment_from_dict(data: dict) -> Payment:
    kind = data.get("kind")
    if kind == TENDER_SPLIT:
        return SplitPayment(cash=round_money(data["cash"]), card=round_money(data["card"]))
    if kind in _SINGLE_TENDERS:
        return _SINGLE_TENDERS[kind](amount=round_money(data["amount"]))
    raise ValueError(f"Unknown payment kind: {kind}")


def legacy_payment_method(payment: Payment) -> str:
    """
    Flat tender tag older consumers filter on.

    Split payments are reported as 'cash'; the true breakdown lives in the
    split_payment view.
    """
    if isinstance(payment, SplitPayment):
        return TENDER_CASH
    return payment.kind


# =============================================================================
# SALES TRANSACTION
# =============================================================================

@dataclass(frozen=True)
class BilledItem:
    """Frozen copy of a session's food line as it was billed."""
    id: str
    name: str
    price: Decimal
    quantity: int
    is_bundle: bool = False
    bundle_items: tuple[str, ...] = ()
    menu_item_id: Optional[str] = None
    bundle_id: Optional[str] = None

    @classmethod
    def from_food_item(cls, item: FoodItem) -> "BilledItem":
        return cls(
            id=item.id,
            name=item.name,
            price=item.price,
            quantity=item.quantity,
            is_bundle=item.is_bundle,
            bundle_items=tuple(item.bundle_items),
            menu_item_id=item.menu_item_id,
            bundle_id=item.bundle_id,
        )

    def to_dict(self) -> dict:
        return FoodItem(
            id=self.id,
            name=self.name,
            price=self.price,
            quantity=self.quantity,
            is_bundle=self.is_bundle,
            bundle_items=list(self.bundle_items),
            menu_item_id=self.menu_item_id,
            bundle_id=self.bundle_id,
        ).to_dict()

    @classmethod
    def from_dict(cls, data: dict) -> "BilledItem":
        return cls.from_food_item(FoodItem.from_dict(data))


@dataclass(frozen=True)
class SalesTransaction:
    """
    Immutable record of a billed session.

    WHY: The finance views and day closure reconcile against these records,
    so they are written once when payment is confirmed and never changed.

    PAYMENT: `payment` is the tagged union. `payment_method` and
    `split_payment` are the compatibility view kept for consumers that filter
    on a flat 'cash' / 'card' tag (split is reported as 'cash').
    """
    id: str
    session_id: str
    date: str  # YYYY-MM-DD
    table_number: str
    activity_name: str

    # Time tracking (epoch ms; duration in whole minutes, actual not grace-adjusted)
    start_time: int
    end_time: int
    duration: int

    # Charges
    table_charge: Decimal
    fnb_items: tuple[BilledItem, ...]
    fnb_total: Decimal
    subtotal: Decimal

    # Discount
    discount_amount: Decimal
    discount_reason: str
    discount_approved_by: str

    total: Decimal
    payment: Payment

    # Staff
    started_by: str
    ended_by: str
    created_at: int
    ended_using: str = ENDED_BY_OWNER

    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    locked: bool = field(default=True)

    def __post_init__(self):
        if not self.locked:
            raise ValueError("Sales transactions are always created locked")

    @property
    def payment_method(self) -> str:
        return legacy_payment_method(self.payment)

    @property
    def split_payment(self) -> Optional[dict]:
        if isinstance(self.payment, SplitPayment):
            return {"cash": self.payment.cash, "card": self.payment.card}
        return None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "sessionId": self.session_id,
            "date": self.date,
            "tableNumber": self.table_number,
            "activityName": self.activity_name,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "duration": self.duration,
            "tableCharge": money_to_json(self.table_charge),
            "fnbItems": [item.to_dict() for item in self.fnb_items],
            "fnbTotal": money_to_json(self.fnb_total),
            "subtotal": money_to_json(self.subtotal),
            "discountAmount": money_to_json(self.discount_amount),
            "discountReason": self.discount_reason,
            "discountApprovedBy": self.discount_approved_by,
            "total": money_to_json(self.total),
            "paymentMethod": self.payment_method,
            "payment": self.payment.to_dict(),
            "startedBy": self.started_by,
            "endedBy": self.ended_by,
            "endedUsing": self.ended_using,
            "createdAt": self.created_at,
            "locked": self.locked,
        }
        split = self.split_payment
        if split is not None:
            data["splitPayment"] = {
                "cash": money_to_json(split["cash"]),
                "card": money_to_json(split["card"]),
            }
        if self.customer_name:
            data["customerName"] = self.customer_name
        if self.customer_phone:
            data["customerPhone"] = self.customer_phone
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SalesTransaction":
        total = round_money(data["total"])
        if "payment" in data:
            payment = payment_from_dict(data["payment"])
        elif data.get("splitPayment"):
            # Records written before the tagged payment existed
            split = data["splitPayment"]
            payment = SplitPayment(cash=round_money(split["cash"]), card=round_money(split["card"]))
        else:
            payment = payment_from_dict({"kind": data["paymentMethod"], "amount": total})

        return cls(
            id=str(data["id"]),
            session_id=str(data["sessionId"]),
            date=str(data["date"]),
            table_number=str(data["tableNumber"]),
            activity_name=str(data.get("activityName", "")),
            start_time=int(data["startTime"]),
            end_time=int(data["endTime"]),
            duration=int(data["duration"]),
            table_charge=round_money(data["tableCharge"]),
            fnb_items=tuple(BilledItem.from_dict(item) for item in data.get("fnbItems", [])),
            fnb_total=round_money(data["fnbTotal"]),
            subtotal=round_money(data["subtotal"]),
            discount_amount=round_money(data["discountAmount"]),
            discount_reason=data.get("discountReason", ""),
            discount_approved_by=data.get("discountApprovedBy", ""),
            total=total,
            payment=payment,
            started_by=data.get("startedBy", "Unknown"),
            ended_by=data.get("endedBy", "Unknown"),
            ended_using=data.get("endedUsing", ENDED_BY_OWNER),
            created_at=int(data["createdAt"]),
            customer_name=data.get("customerName"),
            customer_phone=data.get("customerPhone"),
        )


# =============================================================================
# DAY SUMMARY / CLOSURE
# =============================================================================

@dataclass(frozen=True)
class DailySummary:
    date: str
    total_sessions: int
    gross_revenue: Decimal
    total_discounts: Decimal
    net_revenue: Decimal
    expected_cash: Decimal
    expected_card: Decimal
    expected_upi: Decimal
    emergency_pin_usage_count: int = 0

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "totalSessions": self.total_sessions,
            "grossRevenue": money_to_json(self.gross_revenue),
            "totalDiscounts": money_to_json(self.total_discounts),
            "netRevenue": money_to_json(self.net_revenue),
            "expectedCash": money_to_json(self.expected_cash),
            "expectedCard": money_to_json(self.expected_card),
            "expectedUpi": money_to_json(self.expected_upi),
            "emergencyPinUsageCount": self.emergency_pin_usage_count,
        }


@dataclass(frozen=True)
class DayClosureRecord:
    """
    Reconciliation snapshot for one calendar date.

    LIFECYCLE:
    - Manual close: counted amounts recorded, locked immediately.
    - Auto close (end-of-day sweep): actuals unknown, unbalanced, left
      unlocked until a manual reconciliation replaces it.
    """
    id: str
    date: str

    # Summary
    total_sessions: int
    gross_revenue: Decimal
    total_discounts: Decimal
    net_revenue: Decimal

    # Expected (from system)
    expected_cash: Decimal
    expected_card: Decimal
    expected_upi: Decimal

    # Actual (counted)
    actual_cash: Decimal
    actual_card: Decimal
    actual_upi: Decimal

    # Variance (actual - expected)
    cash_variance: Decimal
    card_variance: Decimal
    upi_variance: Decimal
    balanced: bool

    closed_by: str
    closed_at: int
    locked: bool
    variance_notes: str = ""
    emergency_pin_usage_count: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "totalSessions": self.total_sessions,
            "grossRevenue": money_to_json(self.gross_revenue),
            "totalDiscounts": money_to_json(self.total_discounts),
            "netRevenue": money_to_json(self.net_revenue),
            "expectedCash": money_to_json(self.expected_cash),
            "expectedCard": money_to_json(self.expected_card),
            "expectedUpi": money_to_json(self.expected_upi),
            "actualCash": money_to_json(self.actual_cash),
            "actualCard": money_to_json(self.actual_card),
            "actualUpi": money_to_json(self.actual_upi),
            "cashVariance": money_to_json(self.cash_variance),
            "cardVariance": money_to_json(self.card_variance),
            "upiVariance": money_to_json(self.upi_variance),
            "balanced": self.balanced,
            "varianceNotes": self.variance_notes,
            "emergencyPinUsageCount": self.emergency_pin_usage_count,
            "closedBy": self.closed_by,
            "closedAt": self.closed_at,
            "locked": self.locked,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DayClosureRecord":
        return cls(
            id=str(data["id"]),
            date=str(data["date"]),
            total_sessions=int(data["totalSessions"]),
            gross_revenue=round_money(data["grossRevenue"]),
            total_discounts=round_money(data["totalDiscounts"]),
            net_revenue=round_money(data["netRevenue"]),
            expected_cash=round_money(data["expectedCash"]),
            expected_card=round_money(data["expectedCard"]),
            expected_upi=round_money(data.get("expectedUpi", 0)),
            actual_cash=round_money(data["actualCash"]),
            actual_card=round_money(data["actualCard"]),
            actual_upi=round_money(data.get("actualUpi", 0)),
            cash_variance=round_money(data["cashVariance"]),
            card_variance=round_money(data["cardVariance"]),
            upi_variance=round_money(data.get("upiVariance", 0)),
            balanced=bool(data["balanced"]),
            variance_notes=data.get("varianceNotes") or "",
            emergency_pin_usage_count=int(data.get("emergencyPinUsageCount", 0)),
            closed_by=str(data["closedBy"]),
            closed_at=int(data["closedAt"]),
            locked=bool(data["locked"]),
        )
