# Overview: Flask API routes for the sales ledger; read-only queries and daily figures.

# backend/clubpos/routes/ledger.py
"""
Sales Ledger API Routes

WHY: Bills history, the finance page and exports read sales through here.
There is no write endpoint: transactions are only created by checkout.

QUERY PARAMETERS:
- date=YYYY-MM-DD               one day
- start=YYYY-MM-DD&end=YYYY-MM-DD  inclusive range
- (none)                        every transaction
"""

from flask import Blueprint, request, jsonify, current_app

from ..services.ledger_service import TransactionLedger
from ..storage import SqlKeyValueStore
from ..validation import ValidationError


ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


def _ledger() -> TransactionLedger:
    return TransactionLedger(SqlKeyValueStore())


@ledger_bp.get("/transactions")
def list_transactions_route():
    try:
        date = request.args.get("date")
        start = request.args.get("start")
        end = request.args.get("end")
        ledger = _ledger()

        if date:
            records = ledger.by_date(date)
        elif start or end:
            if not (start and end):
                return jsonify({"error": "start and end are both required"}), 400
            records = ledger.by_date_range(start, end)
        else:
            records = ledger.all()

        return jsonify({
            "transactions": [record.to_dict() for record in records],
            "count": len(records),
        }), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list transactions")
        return jsonify({"error": "Internal server error"}), 500


@ledger_bp.get("/transactions/<transaction_id>")
def get_transaction_route(transaction_id: str):
    try:
        record = _ledger().get(transaction_id)
        if record is None:
            return jsonify({"error": f"Transaction {transaction_id} not found"}), 404
        return jsonify({"transaction": record.to_dict()}), 200
    except Exception:
        current_app.logger.exception("Failed to get transaction")
        return jsonify({"error": "Internal server error"}), 500


@ledger_bp.get("/summary")
def daily_summary_route():
    """
    Expected takings for a day (split payments counted under cash).

    Query: date=YYYY-MM-DD (required)
    """
    try:
        date = request.args.get("date")
        if not date:
            return jsonify({"error": "date required"}), 400
        return jsonify({"summary": _ledger().daily_summary(date).to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build daily summary")
        return jsonify({"error": "Internal server error"}), 500


@ledger_bp.get("/tenders")
def tender_totals_route():
    """
    Money received per instrument for a day (split parts counted separately).

    Query: date=YYYY-MM-DD (required)
    """
    try:
        date = request.args.get("date")
        if not date:
            return jsonify({"error": "date required"}), 400
        return jsonify({"tenders": _ledger().tender_totals(date).to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build tender totals")
        return jsonify({"error": "Internal server error"}), 500
