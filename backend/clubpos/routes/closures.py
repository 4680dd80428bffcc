# Overview: Flask API routes for day closures; parses input and returns JSON responses.

# backend/clubpos/routes/closures.py
"""
Day Closure API Routes

WHY: The operator closes each day by entering counted cash, card and UPI
totals. The auto-close endpoint is what a scheduler hits after midnight.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import closure_service
from ..services.closure_service import ClosureError
from ..storage import SqlKeyValueStore
from ..validation import ValidationError


closures_bp = Blueprint("closures", __name__, url_prefix="/api/closures")


@closures_bp.get("")
def list_closures_route():
    try:
        closures = closure_service.list_closures(store=SqlKeyValueStore())
        return jsonify({"closures": [closure.to_dict() for closure in closures]}), 200
    except Exception:
        current_app.logger.exception("Failed to list day closures")
        return jsonify({"error": "Internal server error"}), 500


@closures_bp.get("/<date>")
def get_closure_route(date: str):
    try:
        closure = closure_service.get_closure(date, store=SqlKeyValueStore())
        if closure is None:
            return jsonify({"error": f"Day {date} is not closed"}), 404
        return jsonify({"closure": closure.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to get day closure")
        return jsonify({"error": "Internal server error"}), 500


@closures_bp.post("")
def close_day_route():
    """
    Close a day.

    Request body:
    {
        "date": "2024-06-10",
        "actual_cash": 120.00,
        "actual_card": 80.50,
        "actual_upi": 0,          (optional)
        "notes": "Short 2.00",    (required when the day does not balance)
        "closed_by": "Owner"
    }

    Returns:
        201: Closure recorded and locked
        400: Invalid input or missing variance notes
        409: Day already closed
    """
    try:
        data = request.get_json() or {}

        date = data.get("date")
        if not date or data.get("actual_cash") is None or data.get("actual_card") is None:
            return jsonify({"error": "date, actual_cash and actual_card required"}), 400

        closure = closure_service.close_day(
            date,
            data["actual_cash"],
            data["actual_card"],
            data.get("actual_upi", 0),
            data.get("notes") or "",
            closed_by=data.get("closed_by"),
            store=SqlKeyValueStore(),
        )
        return jsonify({"closure": closure.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ClosureError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to close day")
        return jsonify({"error": "Internal server error"}), 500


@closures_bp.post("/auto-close")
def auto_close_route():
    """
    Auto-close yesterday if nobody did.

    Returns:
        201: Closure created (unlocked, needs reconciliation)
        200: Nothing to do (already closed or no sessions)
    """
    try:
        closure = closure_service.auto_close_previous_day(store=SqlKeyValueStore())
        if closure is None:
            return jsonify({"closure": None}), 200
        return jsonify({"closure": closure.to_dict()}), 201
    except Exception:
        current_app.logger.exception("Failed to auto-close previous day")
        return jsonify({"error": "Internal server error"}), 500
