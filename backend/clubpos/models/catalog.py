from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from clubpos.money import money_to_json, round_money


MENU_CATEGORIES = ["drinks", "snacks", "meals"]


@dataclass(frozen=True)
class MenuItem:
    id: str
    name: str
    price: Decimal
    category: str = "snacks"
    available: bool = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": money_to_json(self.price),
            "category": self.category,
            "available": self.available,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MenuItem":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            price=round_money(data["price"]),
            category=data.get("category", "snacks"),
            available=bool(data.get("available", True)),
        )


@dataclass(frozen=True)
class BundleItem:
    menu_item_id: str
    quantity: int

    def to_dict(self) -> dict:
        return {"menuItemId": self.menu_item_id, "quantity": self.quantity}

    @classmethod
    def from_dict(cls, data: dict) -> "BundleItem":
        return cls(menu_item_id=str(data["menuItemId"]), quantity=int(data["quantity"]))


@dataclass(frozen=True)
class Bundle:
    """Pre-configured group of menu items sold at a discounted combined price."""
    id: str
    name: str
    items: tuple[BundleItem, ...]
    original_price: Decimal
    bundle_price: Decimal
    description: str = ""
    discount: int = 0  # percentage, display only
    available: bool = True
    icon: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "items": [item.to_dict() for item in self.items],
            "originalPrice": money_to_json(self.original_price),
            "bundlePrice": money_to_json(self.bundle_price),
            "discount": self.discount,
            "available": self.available,
        }
        if self.icon:
            data["icon"] = self.icon
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Bundle":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            description=data.get("description", ""),
            items=tuple(BundleItem.from_dict(item) for item in data.get("items", [])),
            original_price=round_money(data["originalPrice"]),
            bundle_price=round_money(data["bundlePrice"]),
            discount=int(data.get("discount", 0)),
            available=bool(data.get("available", True)),
            icon=data.get("icon"),
        )


@dataclass(frozen=True)
class Activity:
    """Category of bookable stations; tables are generated from enabled activities."""
    id: str
    name: str
    default_rate: Decimal
    station_count: int
    station_type: str = "Table"
    enabled: bool = True
    order: int = 0
    icon: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "defaultRate": money_to_json(self.default_rate),
            "stationCount": self.station_count,
            "stationType": self.station_type,
            "enabled": self.enabled,
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Activity":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            icon=data.get("icon", ""),
            default_rate=round_money(data["defaultRate"]),
            station_count=int(data["stationCount"]),
            station_type=data.get("stationType", "Table"),
            enabled=bool(data.get("enabled", True)),
            order=int(data.get("order", 0)),
        )


@dataclass(frozen=True)
class ClubSettings:
    club_name: str = "Snooker Club"
    currency: str = "SAR"
    menu_items: tuple[MenuItem, ...] = field(default_factory=tuple)
    bundles: tuple[Bundle, ...] = field(default_factory=tuple)
    activities: tuple[Activity, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "clubName": self.club_name,
            "currency": self.currency,
            "menuItems": [item.to_dict() for item in self.menu_items],
            "bundles": [bundle.to_dict() for bundle in self.bundles],
            "activities": [activity.to_dict() for activity in self.activities],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ClubSettings":
        return cls(
            club_name=data.get("clubName", "Snooker Club"),
            currency=data.get("currency", "SAR"),
            menu_items=tuple(MenuItem.from_dict(item) for item in data.get("menuItems", [])),
            bundles=tuple(Bundle.from_dict(bundle) for bundle in data.get("bundles", [])),
            activities=tuple(Activity.from_dict(activity) for activity in data.get("activities", [])),
        )


# =============================================================================
# DEFAULT CATALOG
# =============================================================================

DEFAULT_MENU_ITEMS = (
    MenuItem("1", "Coca Cola", Decimal("2.50"), "drinks"),
    MenuItem("2", "Pepsi", Decimal("2.50"), "drinks"),
    MenuItem("3", "Water", Decimal("1.50"), "drinks"),
    MenuItem("4", "Coffee", Decimal("3.00"), "drinks"),
    MenuItem("5", "Tea", Decimal("2.00"), "drinks"),
    MenuItem("6", "Chips", Decimal("3.50"), "snacks"),
    MenuItem("7", "Sandwich", Decimal("5.00"), "snacks"),
    MenuItem("8", "Burger", Decimal("8.00"), "meals"),
    MenuItem("9", "Pizza Slice", Decimal("6.50"), "meals"),
)

DEFAULT_BUNDLES = (
    Bundle(
        id="bundle-1",
        name="Game Night Special",
        description="2 Burgers + 2 Drinks + Chips",
        items=(BundleItem("8", 2), BundleItem("1", 2), BundleItem("6", 1)),
        original_price=Decimal("21.50"),
        bundle_price=Decimal("18.00"),
        discount=16,
    ),
    Bundle(
        id="bundle-2",
        name="Snack Pack",
        description="Chips + Sandwich + Drink",
        items=(BundleItem("6", 1), BundleItem("7", 1), BundleItem("2", 1)),
        original_price=Decimal("11.00"),
        bundle_price=Decimal("9.00"),
        discount=18,
    ),
)

DEFAULT_ACTIVITIES = (
    Activity("snooker", "Snooker", Decimal("15.00"), 3, "Table", True, 1),
    Activity("pool", "Pool", Decimal("12.00"), 2, "Table", True, 2),
    Activity("darts", "Darts", Decimal("8.00"), 4, "Board", True, 3),
    Activity("table-tennis", "Table Tennis", Decimal("10.00"), 2, "Table", True, 4),
    Activity("arcade", "Arcade", Decimal("5.00"), 6, "Machine", True, 5),
    Activity("foosball", "Foosball", Decimal("10.00"), 2, "Table", False, 6),
    Activity("air-hockey", "Air Hockey", Decimal("10.00"), 2, "Table", False, 7),
    Activity("bowling", "Bowling", Decimal("20.00"), 4, "Lane", False, 8),
    Activity("karaoke", "Karaoke", Decimal("15.00"), 3, "Room", False, 9),
    Activity("mini-golf", "Mini Golf", Decimal("12.00"), 1, "Course", False, 10),
)

DEFAULT_SETTINGS = ClubSettings(
    menu_items=DEFAULT_MENU_ITEMS,
    bundles=DEFAULT_BUNDLES,
    activities=DEFAULT_ACTIVITIES,
)
