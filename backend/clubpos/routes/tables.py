# Overview: Flask API routes for tables and their sessions; parses input and returns JSON responses.

# backend/clubpos/routes/tables.py
"""
Table & Session API Routes

WHY: The floor view drives everything through these endpoints: starting and
pausing sessions, adding drinks and snacks, taking a table out of service.

DESIGN:
- Each mutating endpoint is one service call (one read-modify-write)
- State conflicts (pause a paused table, start an occupied one) return 409
- Bad input returns 400, unknown table 404

ERRORS:
- 400: ValidationError, CatalogError
- 404: TableNotFoundError
- 409: SessionStateError
- 500: anything else (logged)
"""

from flask import Blueprint, request, jsonify, current_app

from ..models.tables import TableStateError
from ..services import session_service, table_service
from ..services.billing_service import compute_final_bill, estimate_live_amount
from ..services.catalog_service import CatalogError
from ..services.session_service import SessionStateError
from ..services.table_service import TableNotFoundError
from ..storage import SqlKeyValueStore
from ..money import money_to_json
from ..time_utils import now_ms
from ..validation import ValidationError


tables_bp = Blueprint("tables", __name__, url_prefix="/api/tables")


def _error(exc: Exception, message: str):
    """Map a service exception to a JSON error response."""
    if isinstance(exc, (ValidationError, CatalogError)):
        return jsonify({"error": str(exc)}), 400
    if isinstance(exc, TableNotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, (SessionStateError, TableStateError)):
        return jsonify({"error": str(exc)}), 409
    current_app.logger.exception(message)
    return jsonify({"error": "Internal server error"}), 500


def _table_json(table_id: int, store) -> dict:
    return table_service.get_table(table_id, store=store).to_dict()


# =============================================================================
# TABLES
# =============================================================================

@tables_bp.get("")
def list_tables_route():
    try:
        tables = table_service.list_tables(SqlKeyValueStore())
        return jsonify({"tables": [table.to_dict() for table in tables]}), 200
    except Exception as e:
        return _error(e, "Failed to list tables")


@tables_bp.get("/<int:table_id>")
def get_table_route(table_id: int):
    try:
        return jsonify({"table": _table_json(table_id, SqlKeyValueStore())}), 200
    except Exception as e:
        return _error(e, "Failed to get table")


@tables_bp.patch("/<int:table_id>")
def update_table_route(table_id: int):
    """
    Update table configuration.

    Request body:
    {
        "hourly_rate": 18.00,   (optional, applies to the next session)
        "maintenance": true     (optional, only when no session is open)
    }
    """
    try:
        data = request.get_json() or {}
        store = SqlKeyValueStore()

        if "hourly_rate" not in data and "maintenance" not in data:
            return jsonify({"error": "hourly_rate or maintenance required"}), 400

        if "hourly_rate" in data:
            table_service.update_table_rate(table_id, data["hourly_rate"], store=store)
        if "maintenance" in data:
            table_service.set_maintenance(table_id, bool(data["maintenance"]), store=store)

        return jsonify({"table": _table_json(table_id, store)}), 200
    except Exception as e:
        return _error(e, "Failed to update table")


# =============================================================================
# SESSION LIFECYCLE
# =============================================================================

@tables_bp.post("/<int:table_id>/start")
def start_session_route(table_id: int):
    """
    Start a session on an available table.

    Request body:
    {
        "customer_name": "Ali",
        "customer_phone": "+966 55 123 4567",  (optional)
        "operator": "Owner"                    (optional)
    }

    Returns:
        201: Session started (table with session)
    """
    try:
        data = request.get_json() or {}
        store = SqlKeyValueStore()

        session_service.start_session(
            table_id,
            data.get("customer_name"),
            data.get("customer_phone"),
            store=store,
            started_by=data.get("operator"),
        )
        return jsonify({"table": _table_json(table_id, store)}), 201
    except Exception as e:
        return _error(e, "Failed to start session")


@tables_bp.post("/<int:table_id>/pause")
def pause_session_route(table_id: int):
    try:
        store = SqlKeyValueStore()
        session_service.pause_session(table_id, store=store)
        return jsonify({"table": _table_json(table_id, store)}), 200
    except Exception as e:
        return _error(e, "Failed to pause session")


@tables_bp.post("/<int:table_id>/resume")
def resume_session_route(table_id: int):
    try:
        store = SqlKeyValueStore()
        session_service.resume_session(table_id, store=store)
        return jsonify({"table": _table_json(table_id, store)}), 200
    except Exception as e:
        return _error(e, "Failed to resume session")


@tables_bp.post("/<int:table_id>/end")
def end_session_route(table_id: int):
    """
    End a session without billing (void / walk-out).

    Paid sessions end through POST /api/billing/<table_id>/checkout.
    """
    try:
        store = SqlKeyValueStore()
        session = session_service.end_session(table_id, store=store)
        current_app.logger.warning("Session %s ended on table %s without checkout", session.id, table_id)
        return jsonify({
            "session": session.to_dict(),
            "table": _table_json(table_id, store),
        }), 200
    except Exception as e:
        return _error(e, "Failed to end session")


# =============================================================================
# FOOD & BEVERAGE
# =============================================================================

@tables_bp.post("/<int:table_id>/food")
def add_food_route(table_id: int):
    """
    Request body:
    {
        "menu_item_id": "1",
        "quantity": 2   (optional, default 1)
    }
    """
    try:
        data = request.get_json() or {}
        menu_item_id = data.get("menu_item_id")
        if not menu_item_id:
            return jsonify({"error": "menu_item_id required"}), 400

        store = SqlKeyValueStore()
        line = session_service.add_food_item(
            table_id, str(menu_item_id), data.get("quantity", 1), store=store
        )
        return jsonify({"item": line.to_dict(), "table": _table_json(table_id, store)}), 201
    except Exception as e:
        return _error(e, "Failed to add food item")


@tables_bp.post("/<int:table_id>/bundles")
def add_bundle_route(table_id: int):
    """
    Request body:
    {
        "bundle_id": "bundle-1",
        "quantity": 1   (optional, default 1)
    }
    """
    try:
        data = request.get_json() or {}
        bundle_id = data.get("bundle_id")
        if not bundle_id:
            return jsonify({"error": "bundle_id required"}), 400

        store = SqlKeyValueStore()
        line = session_service.add_bundle(
            table_id, str(bundle_id), data.get("quantity", 1), store=store
        )
        return jsonify({"item": line.to_dict(), "table": _table_json(table_id, store)}), 201
    except Exception as e:
        return _error(e, "Failed to add bundle")


@tables_bp.delete("/<int:table_id>/food/<item_id>")
def remove_food_route(table_id: int, item_id: str):
    try:
        store = SqlKeyValueStore()
        session_service.remove_food_item(table_id, item_id, store=store)
        return jsonify({"table": _table_json(table_id, store)}), 200
    except Exception as e:
        return _error(e, "Failed to remove food item")


# =============================================================================
# LIVE ESTIMATE
# =============================================================================

@tables_bp.get("/<int:table_id>/estimate")
def estimate_route(table_id: int):
    """
    Running amounts for the table card.

    Returns both the tiered display estimate and the proportional bill as of
    now. Only the latter is what checkout charges. The estimate follows the
    table's current rate; the bill uses the rate frozen at session start.
    """
    try:
        table = table_service.get_table(table_id, store=SqlKeyValueStore())
        if table.session is None:
            return jsonify({"error": f"{table.number} has no active session"}), 409

        now = now_ms()
        bill = compute_final_bill(table.session, now)
        return jsonify({
            "tableId": table.id,
            "elapsed": table.session.elapsed_ms(now),
            "paused": table.session.is_paused,
            "estimate": money_to_json(estimate_live_amount(table.session, now, hourly_rate=table.hourly_rate)),
            "bill": bill.to_dict(),
        }), 200
    except Exception as e:
        return _error(e, "Failed to estimate table amount")
