# Overview: Table session lifecycle (start, pause, resume, F&B lines, end).

"""
Table Session Service

WHY: A session is one customer's occupation of a table. Its elapsed time,
pauses and attached food lines are what the billing calculator turns into a
bill, so every change goes through here.

DESIGN PRINCIPLES:
- One read-modify-write per call, inside store.transaction()
- The Table aggregate owns the state transitions; this layer adds the clock,
  ids, input validation and the catalog snapshot
- A rejected call writes nothing
- Ending a session only detaches it; billing happens in billing_service

STATES:
    available -> occupied <-> paused
    occupied | paused -> available
"""

from __future__ import annotations

import logging
from typing import Callable

from ..identifiers import generate_id
from ..models.tables import FoodItem, Session, Table, TableStateError
from ..storage import KeyValueStore
from ..time_utils import now_ms
from ..validation import (
    ValidationError,
    sanitize_string,
    validate_non_empty_string,
    validate_phone_number,
    validate_positive_number,
)
from .catalog_service import load_settings, lookup_bundle, lookup_menu_item
from .table_service import find_table, load_tables, save_tables


logger = logging.getLogger(__name__)


class SessionError(Exception):
    """Raised for session operation errors."""
    pass


class SessionStateError(SessionError):
    """The action is not available in the table's current state."""
    pass


Clock = Callable[[], int]
IdGenerator = Callable[[str], str]


def _validate_quantity(quantity) -> int:
    validate_positive_number(quantity, "Quantity").raise_for_error()
    if isinstance(quantity, float) and not quantity.is_integer():
        raise ValidationError("Quantity must be a whole number")
    if not isinstance(quantity, (int, float)):
        raise ValidationError("Quantity must be a whole number")
    return int(quantity)


def _mutate(store: KeyValueStore, table_id: int, action: Callable[[Table], object]):
    """
    Load all tables, apply `action` to one, save all tables.

    TableStateError from the aggregate becomes SessionStateError and nothing
    is written.
    """
    with store.transaction():
        tables = load_tables(store)
        table = find_table(tables, table_id)
        try:
            result = action(table)
        except TableStateError as exc:
            raise SessionStateError(str(exc))
        save_tables(store, tables)
    return table, result


# =============================================================================
# LIFECYCLE
# =============================================================================

def start_session(
    table_id: int,
    customer_name: str,
    customer_phone: str | None = None,
    *,
    store: KeyValueStore,
    started_by: str | None = None,
    clock: Clock = now_ms,
    new_id: IdGenerator = generate_id,
) -> Session:
    """
    Open a session on an available table.

    The table's current hourly rate is copied into the session.

    Raises:
        ValidationError: empty customer name or malformed phone
        SessionStateError: table is not available
    """
    validate_non_empty_string(customer_name, "Customer name").raise_for_error()
    validate_phone_number(customer_phone).raise_for_error()

    name = sanitize_string(customer_name)
    phone = customer_phone.strip() if customer_phone and customer_phone.strip() else None

    table, session = _mutate(
        store,
        table_id,
        lambda t: t.start(
            session_id=new_id("session"),
            customer_name=name,
            customer_phone=phone,
            now=clock(),
            started_by=started_by,
        ),
    )
    logger.info("Session %s started on %s for %s", session.id, table.number, name)
    return session


def pause_session(table_id: int, *, store: KeyValueStore, clock: Clock = now_ms) -> Session:
    table, session = _mutate(store, table_id, lambda t: t.pause(now=clock()))
    logger.info("Session %s paused on %s", session.id, table.number)
    return session


def resume_session(table_id: int, *, store: KeyValueStore, clock: Clock = now_ms) -> Session:
    table, session = _mutate(store, table_id, lambda t: t.resume(now=clock()))
    logger.info("Session %s resumed on %s (paused %d ms total)", session.id, table.number, session.paused_duration)
    return session


def end_session(table_id: int, *, store: KeyValueStore) -> Session:
    """
    Detach the session from its table and return it.

    The table becomes available again. The caller turns the returned session
    into a sales transaction; nothing is billed here.
    """
    table, session = _mutate(store, table_id, lambda t: t.end())
    logger.info("Session %s ended on %s", session.id, table.number)
    return session


# =============================================================================
# FOOD & BEVERAGE LINES
# =============================================================================

def add_food_item(
    table_id: int,
    menu_item_id: str,
    quantity=1,
    *,
    store: KeyValueStore,
    new_id: IdGenerator = generate_id,
) -> FoodItem:
    """
    Add a menu item to the table's session.

    A line for the same menu item is merged (quantity incremented). Name and
    price are copied from the menu now; later menu edits do not change it.

    Raises:
        ValidationError: quantity is not a positive whole number
        CatalogError: unknown or unavailable menu item
        SessionStateError: table has no active session
    """
    qty = _validate_quantity(quantity)

    with store.transaction():
        menu_item = lookup_menu_item(load_settings(store), menu_item_id)
        _, line = _mutate(
            store,
            table_id,
            lambda t: t.add_food_item(
                line_id=new_id("item"),
                menu_item_id=menu_item.id,
                name=menu_item.name,
                price=menu_item.price,
                quantity=qty,
            ),
        )
    return line


def add_bundle(
    table_id: int,
    bundle_id: str,
    quantity=1,
    *,
    store: KeyValueStore,
    new_id: IdGenerator = generate_id,
) -> FoodItem:
    """Same as add_food_item, keyed by bundle id, priced at the bundle price."""
    qty = _validate_quantity(quantity)

    with store.transaction():
        bundle = lookup_bundle(load_settings(store), bundle_id)
        _, line = _mutate(
            store,
            table_id,
            lambda t: t.add_bundle(
                line_id=new_id("bundle"),
                bundle_id=bundle.id,
                name=bundle.name,
                price=bundle.price,
                components=list(bundle.components),
                quantity=qty,
            ),
        )
    return line


def remove_food_item(table_id: int, item_id: str, *, store: KeyValueStore) -> FoodItem:
    """Remove a whole food line (not a single unit)."""
    _, line = _mutate(store, table_id, lambda t: t.remove_food_item(item_id))
    return line
