from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from clubpos.money import money_to_json, multiply_money, round_money


TABLE_AVAILABLE = "available"
TABLE_OCCUPIED = "occupied"
TABLE_PAUSED = "paused"
TABLE_MAINTENANCE = "maintenance"

VALID_TABLE_STATUSES = [
    TABLE_AVAILABLE,
    TABLE_OCCUPIED,
    TABLE_PAUSED,
    TABLE_MAINTENANCE,
]

# Statuses that must carry a session (and the only ones that may)
SESSION_STATUSES = {TABLE_OCCUPIED, TABLE_PAUSED}


class TableStateError(Exception):
    """Raised when a lifecycle action is not available in the table's current state."""
    pass


@dataclass
class FoodItem:
    """
    One F&B line on a session: a menu item or an expanded bundle.

    Repeated additions of the same source item merge into one line, so a
    session never holds two lines for the same menu_item_id / bundle_id.
    """
    id: str
    name: str
    price: Decimal
    quantity: int
    is_bundle: bool = False
    bundle_items: list[str] = field(default_factory=list)
    menu_item_id: Optional[str] = None
    bundle_id: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return multiply_money(self.price, self.quantity)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "price": money_to_json(self.price),
            "quantity": self.quantity,
        }
        if self.is_bundle:
            data["isBundle"] = True
            data["bundleItems"] = list(self.bundle_items)
        if self.menu_item_id is not None:
            data["menuItemId"] = self.menu_item_id
        if self.bundle_id is not None:
            data["bundleId"] = self.bundle_id
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "FoodItem":
        quantity = int(data["quantity"])
        if quantity <= 0:
            raise ValueError(f"Food line {data.get('id')} has non-positive quantity")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            price=round_money(data["price"]),
            quantity=quantity,
            is_bundle=bool(data.get("isBundle", False)),
            bundle_items=list(data.get("bundleItems") or []),
            menu_item_id=data.get("menuItemId"),
            bundle_id=data.get("bundleId"),
        )


@dataclass
class Session:
    """
    One customer occupation of a table.

    hourly_rate is a snapshot taken at start; later edits to the table's rate
    do not reach an open session.
    """
    id: str
    table_id: int
    customer_name: str
    start_time: int
    hourly_rate: Decimal
    customer_phone: Optional[str] = None
    paused_at: Optional[int] = None
    paused_duration: int = 0
    food_items: list[FoodItem] = field(default_factory=list)
    started_by: Optional[str] = None

    @property
    def is_paused(self) -> bool:
        return self.paused_at is not None

    def elapsed_ms(self, now: int) -> int:
        """
        Billable wall time up to `now`: paused spans excluded, frozen while paused.

        A `now` earlier than the current pause (a captured end time) wins.
        """
        end = min(now, self.paused_at) if self.paused_at is not None else now
        return end - self.start_time - self.paused_duration

    def find_line(self, *, menu_item_id: str | None = None, bundle_id: str | None = None) -> Optional[FoodItem]:
        for item in self.food_items:
            if menu_item_id is not None and item.menu_item_id == menu_item_id:
                return item
            if bundle_id is not None and item.bundle_id == bundle_id:
                return item
        return None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "tableId": self.table_id,
            "customerName": self.customer_name,
            "startTime": self.start_time,
            "pausedDuration": self.paused_duration,
            "foodItems": [item.to_dict() for item in self.food_items],
            "hourlyRate": money_to_json(self.hourly_rate),
        }
        if self.customer_phone:
            data["customerPhone"] = self.customer_phone
        if self.paused_at is not None:
            data["pausedAt"] = self.paused_at
        if self.started_by:
            data["startedBy"] = self.started_by
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        paused_duration = int(data.get("pausedDuration", 0))
        if paused_duration < 0:
            raise ValueError(f"Session {data.get('id')} has negative pausedDuration")
        paused_at = data.get("pausedAt")
        return cls(
            id=str(data["id"]),
            table_id=int(data["tableId"]),
            customer_name=str(data["customerName"]),
            start_time=int(data["startTime"]),
            hourly_rate=round_money(data["hourlyRate"]),
            customer_phone=data.get("customerPhone") or None,
            paused_at=int(paused_at) if paused_at is not None else None,
            paused_duration=paused_duration,
            food_items=[FoodItem.from_dict(item) for item in data.get("foodItems", [])],
            started_by=data.get("startedBy"),
        )


@dataclass
class Table:
    """
    Bookable station (snooker table, dart board, ...) and aggregate root.

    LIFECYCLE:
    - available -> occupied (start)
    - occupied <-> paused (pause / resume)
    - occupied | paused -> available (end)
    - available <-> maintenance (outside the session lifecycle)

    The methods below are the only mutators of a table's session. Each one
    checks its precondition first and raises TableStateError without touching
    state when it does not hold.
    """
    id: int
    number: str
    hourly_rate: Decimal
    status: str = TABLE_AVAILABLE
    activity_id: Optional[str] = None
    session: Optional[Session] = None

    def _require_session(self, action: str) -> Session:
        if self.session is None or self.status not in SESSION_STATUSES:
            raise TableStateError(f"Cannot {action}: {self.number} has no active session")
        return self.session

    def start(
        self,
        *,
        session_id: str,
        customer_name: str,
        customer_phone: str | None,
        now: int,
        started_by: str | None = None,
    ) -> Session:
        if self.status != TABLE_AVAILABLE:
            raise TableStateError(f"Cannot start session: {self.number} is {self.status}")

        self.session = Session(
            id=session_id,
            table_id=self.id,
            customer_name=customer_name,
            customer_phone=customer_phone or None,
            start_time=now,
            hourly_rate=self.hourly_rate,
            started_by=started_by,
        )
        self.status = TABLE_OCCUPIED
        return self.session

    def pause(self, *, now: int) -> Session:
        session = self._require_session("pause")
        if self.status != TABLE_OCCUPIED:
            raise TableStateError(f"Cannot pause: {self.number} is already paused")

        session.paused_at = now
        self.status = TABLE_PAUSED
        return session

    def resume(self, *, now: int) -> Session:
        session = self._require_session("resume")
        if self.status != TABLE_PAUSED or session.paused_at is None:
            raise TableStateError(f"Cannot resume: {self.number} is not paused")

        session.paused_duration += max(0, now - session.paused_at)
        session.paused_at = None
        self.status = TABLE_OCCUPIED
        return session

    def add_food_item(self, *, line_id: str, menu_item_id: str, name: str, price: Decimal, quantity: int) -> FoodItem:
        session = self._require_session("add food")

        existing = session.find_line(menu_item_id=menu_item_id)
        if existing is not None:
            existing.quantity += quantity
            return existing

        item = FoodItem(
            id=line_id,
            name=name,
            price=price,
            quantity=quantity,
            menu_item_id=menu_item_id,
        )
        session.food_items.append(item)
        return item

    def add_bundle(
        self,
        *,
        line_id: str,
        bundle_id: str,
        name: str,
        price: Decimal,
        components: list[str],
        quantity: int,
    ) -> FoodItem:
        session = self._require_session("add bundle")

        existing = session.find_line(bundle_id=bundle_id)
        if existing is not None:
            existing.quantity += quantity
            return existing

        item = FoodItem(
            id=line_id,
            name=name,
            price=price,
            quantity=quantity,
            is_bundle=True,
            bundle_items=list(components),
            bundle_id=bundle_id,
        )
        session.food_items.append(item)
        return item

    def remove_food_item(self, item_id: str) -> FoodItem:
        """Drop the whole line regardless of quantity."""
        session = self._require_session("remove food")

        for index, item in enumerate(session.food_items):
            if item.id == item_id:
                return session.food_items.pop(index)
        raise TableStateError(f"Food line {item_id} is not on {self.number}")

    def end(self) -> Session:
        """Detach and return the session. Billing is the caller's job."""
        session = self._require_session("end session")
        self.session = None
        self.status = TABLE_AVAILABLE
        return session

    def set_maintenance(self, enabled: bool) -> None:
        if self.session is not None:
            raise TableStateError(f"Cannot change maintenance: {self.number} has an active session")
        self.status = TABLE_MAINTENANCE if enabled else TABLE_AVAILABLE

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "number": self.number,
            "hourlyRate": money_to_json(self.hourly_rate),
            "status": self.status,
            "activityId": self.activity_id,
        }
        if self.session is not None:
            data["session"] = self.session.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Table":
        status = data["status"]
        if status not in VALID_TABLE_STATUSES:
            raise ValueError(f"Unknown table status: {status}")

        session_data = data.get("session")
        session = Session.from_dict(session_data) if session_data else None
        if (session is not None) != (status in SESSION_STATUSES):
            raise ValueError(f"Table {data.get('id')} status {status} does not match its session")
        if session is not None and (session.paused_at is not None) != (status == TABLE_PAUSED):
            raise ValueError(f"Table {data.get('id')} pause marker does not match status {status}")

        return cls(
            id=int(data["id"]),
            number=str(data["number"]),
            hourly_rate=round_money(data["hourlyRate"]),
            status=status,
            activity_id=data.get("activityId"),
            session=session,
        )
