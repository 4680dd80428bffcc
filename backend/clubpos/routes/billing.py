# Overview: Flask API routes for bill preview and checkout; parses input and returns JSON responses.

# backend/clubpos/routes/billing.py
"""
Billing API Routes

WHY: Payment is two steps. Preview captures the end time and shows the bill;
checkout confirms it with the same end time so time that passes while the
operator takes payment is not billed.

FLOW:
1. POST /preview  -> bill with endTime
2. POST /checkout -> {"end_time": <endTime from preview>, payment, discount}

TENDERS:
- cash / card / upi: the whole total
- split: cash_amount + card_amount must equal the total (within a cent),
  both greater than zero
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import billing_service
from ..services.billing_service import BillingError, Discount
from ..services.session_service import SessionStateError
from ..services.table_service import TableNotFoundError
from ..storage import SqlKeyValueStore
from ..models.finance import ENDED_BY_OWNER
from ..validation import ValidationError


billing_bp = Blueprint("billing", __name__, url_prefix="/api/billing")


@billing_bp.post("/<int:table_id>/preview")
def preview_route(table_id: int):
    """
    Request body (optional):
    {
        "discount": {"type": "percentage", "value": 10, "reason": "loyalty"}
    }

    Returns:
        200: Bill with endTime to pass to checkout
        400: Invalid discount
        404: Unknown table
        409: No active session
    """
    try:
        data = request.get_json(silent=True) or {}
        discount = Discount.from_dict(data.get("discount"))

        quote = billing_service.preview_bill(table_id, discount, store=SqlKeyValueStore())
        return jsonify({"bill": quote.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except TableNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except SessionStateError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to preview bill")
        return jsonify({"error": "Internal server error"}), 500


@billing_bp.post("/<int:table_id>/checkout")
def checkout_route(table_id: int):
    """
    Confirm payment and close the session.

    Request body:
    {
        "end_time": 1718000000000,
        "payment_method": "split",
        "cash_amount": 12.50,      (split only)
        "card_amount": 10.00,      (split only)
        "discount": {"type": "percentage", "value": 10, "reason": "loyalty"},
        "operator": "Owner",
        "ended_using": "owner"     (optional: owner | emergency_pin)
    }

    Returns:
        201: Transaction recorded
        400: Invalid discount / payment / end time
        404: Unknown table
        409: No active session, already billed, or session changed
    """
    try:
        data = request.get_json() or {}

        end_time = data.get("end_time")
        payment_method = data.get("payment_method")
        if end_time is None or not payment_method:
            return jsonify({"error": "end_time and payment_method required"}), 400

        store = SqlKeyValueStore()
        discount = Discount.from_dict(data.get("discount"))

        # Single tenders pay the total of the bill at the captured end time
        quote = billing_service.quote_bill(table_id, end_time, discount, store=store)
        payment = billing_service.resolve_payment(
            payment_method,
            quote.total,
            cash_amount=data.get("cash_amount"),
            card_amount=data.get("card_amount"),
        )

        transaction = billing_service.checkout_table(
            table_id,
            end_time=end_time,
            payment=payment,
            operator=data.get("operator"),
            store=store,
            discount=discount,
            ended_using=data.get("ended_using") or ENDED_BY_OWNER,
            processing_delay=current_app.config["PAYMENT_PROCESSING_DELAY_SECONDS"],
        )
        return jsonify({"transaction": transaction.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except TableNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (SessionStateError, BillingError) as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to check out table")
        return jsonify({"error": "Internal server error"}), 500
