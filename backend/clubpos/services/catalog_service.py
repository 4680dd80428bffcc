# Overview: Menu, bundle and activity lookups over the stored club settings.

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Optional

from ..models.catalog import Activity, Bundle, ClubSettings, DEFAULT_ACTIVITIES, DEFAULT_SETTINGS, MenuItem
from ..storage import KeyValueStore, STORAGE_KEYS, read_json, write_json


logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Raised when a menu item, bundle or activity cannot be used."""
    pass


@dataclass(frozen=True)
class BundleSnapshot:
    """What a food line copies from a bundle at add time."""
    id: str
    name: str
    price: Decimal
    components: tuple[str, ...]


def load_settings(store: KeyValueStore) -> ClubSettings:
    """
    Stored settings, or the defaults when absent or unreadable.

    Default activities missing from stored settings are appended so new
    activity types show up without wiping operator edits.
    """
    data = read_json(store, STORAGE_KEYS["SETTINGS"])
    if data is None:
        return DEFAULT_SETTINGS

    try:
        settings = ClubSettings.from_dict(data)
    except (KeyError, TypeError, ValueError, ArithmeticError):
        logger.warning("Stored settings are malformed; using defaults")
        return DEFAULT_SETTINGS

    known = {activity.id for activity in settings.activities}
    missing = tuple(activity for activity in DEFAULT_ACTIVITIES if activity.id not in known)
    if missing:
        settings = replace(settings, activities=settings.activities + missing)
        save_settings(store, settings)
    return settings


def save_settings(store: KeyValueStore, settings: ClubSettings) -> None:
    write_json(store, STORAGE_KEYS["SETTINGS"], settings.to_dict())


def lookup_menu_item(settings: ClubSettings, menu_item_id: str) -> MenuItem:
    for item in settings.menu_items:
        if item.id == menu_item_id:
            if not item.available:
                raise CatalogError(f"Menu item {item.name} is not available")
            return item
    raise CatalogError(f"Menu item {menu_item_id} not found")


def lookup_bundle(settings: ClubSettings, bundle_id: str) -> BundleSnapshot:
    bundle = _find_bundle(settings, bundle_id)
    if not bundle.available:
        raise CatalogError(f"Bundle {bundle.name} is not available")

    names = {item.id: item.name for item in settings.menu_items}
    components = tuple(
        f"{part.quantity}x {names[part.menu_item_id]}"
        for part in bundle.items
        if part.menu_item_id in names
    )
    return BundleSnapshot(
        id=bundle.id,
        name=bundle.name,
        price=bundle.bundle_price,
        components=components,
    )


def _find_bundle(settings: ClubSettings, bundle_id: str) -> Bundle:
    for bundle in settings.bundles:
        if bundle.id == bundle_id:
            return bundle
    raise CatalogError(f"Bundle {bundle_id} not found")


def get_activity(settings: ClubSettings, activity_id: Optional[str]) -> Optional[Activity]:
    for activity in settings.activities:
        if activity.id == activity_id:
            return activity
    return None


def enabled_activities(settings: ClubSettings) -> list[Activity]:
    return sorted(
        (activity for activity in settings.activities if activity.enabled),
        key=lambda activity: activity.order,
    )
