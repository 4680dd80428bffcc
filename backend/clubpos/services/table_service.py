# Overview: Loading, saving and configuring the club's tables.

"""
Table Store

WHY: Tables are generated from the enabled activities and persisted as one
document. Every session operation reads the full list, changes one table and
writes the full list back.

DESIGN:
- Absent, unreadable, pre-activity or structurally invalid documents are
  discarded and the tables regenerated; a corrupt session is never used.
- Tables are never deleted during operation, only status changes.
- Rate edits apply to the next session; an open session keeps its snapshot.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..models.catalog import ClubSettings
from ..models.tables import Table, TABLE_AVAILABLE
from ..money import round_money
from ..storage import KeyValueStore, STORAGE_KEYS, read_json, write_json
from ..validation import validate_positive_number
from .catalog_service import enabled_activities, load_settings


logger = logging.getLogger(__name__)


class TableNotFoundError(LookupError):
    """Raised when a table id does not exist."""
    pass


def generate_tables(settings: ClubSettings) -> list[Table]:
    """One table per station of each enabled activity, ids from 1."""
    tables: list[Table] = []
    table_id = 1
    for activity in enabled_activities(settings):
        for index in range(activity.station_count):
            tables.append(
                Table(
                    id=table_id,
                    number=f"{activity.name} {activity.station_type} {index + 1}",
                    hourly_rate=activity.default_rate,
                    status=TABLE_AVAILABLE,
                    activity_id=activity.id,
                )
            )
            table_id += 1
    return tables


def load_tables(store: KeyValueStore, settings: Optional[ClubSettings] = None) -> list[Table]:
    data = read_json(store, STORAGE_KEYS["TABLES"])
    settings = settings or load_settings(store)

    if isinstance(data, list):
        if not data:
            # Stays empty only while no activity is enabled
            if not enabled_activities(settings):
                return []
            logger.info("No stored tables but activities are enabled; generating")
        elif all(isinstance(row, dict) and row.get("activityId") for row in data):
            try:
                return [Table.from_dict(row) for row in data]
            except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
                logger.error("Stored tables are corrupt (%s); regenerating", exc)
        else:
            logger.info("Stored tables predate activities; regenerating")
    elif data is not None:
        logger.warning("Stored tables document has unexpected shape; regenerating")

    tables = generate_tables(settings)
    save_tables(store, tables)
    return tables


def save_tables(store: KeyValueStore, tables: list[Table]) -> None:
    write_json(store, STORAGE_KEYS["TABLES"], [table.to_dict() for table in tables])


def find_table(tables: list[Table], table_id: int) -> Table:
    for table in tables:
        if table.id == table_id:
            return table
    raise TableNotFoundError(f"Table {table_id} not found")


def list_tables(store: KeyValueStore) -> list[Table]:
    return load_tables(store)


def get_table(table_id: int, *, store: KeyValueStore) -> Table:
    return find_table(load_tables(store), table_id)


def update_table_rate(table_id: int, hourly_rate, *, store: KeyValueStore) -> Table:
    """
    Change a table's configured rate.

    Only future sessions see the new rate.
    """
    validate_positive_number(hourly_rate, "Hourly rate").raise_for_error()

    with store.transaction():
        tables = load_tables(store)
        table = find_table(tables, table_id)
        table.hourly_rate = round_money(hourly_rate)
        save_tables(store, tables)

    logger.info("Table %s rate set to %s", table.number, table.hourly_rate)
    return table


def set_maintenance(table_id: int, enabled: bool, *, store: KeyValueStore) -> Table:
    with store.transaction():
        tables = load_tables(store)
        table = find_table(tables, table_id)
        table.set_maintenance(enabled)
        save_tables(store, tables)
    return table
