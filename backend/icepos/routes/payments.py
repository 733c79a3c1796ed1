# Overview: Flask API routes for cash payment checks at the register.

# backend/icepos/routes/payments.py
from flask import Blueprint, jsonify

from ..decorators import api_errors, json_body
from ..services import payment_service
from ..validation import ValidationError, coerce_cents

payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.route("/validate", methods=["POST"])
@api_errors
def validate():
    """
    Request body: {"tendered_cents": int, "due_cents": int}

    Returns:
        200: {"is_valid", "change_cents", "status", "message"}
    """
    data = json_body()
    result = payment_service.validate_payment(
        coerce_cents(data.get("tendered_cents"), "tendered_cents"),
        coerce_cents(data.get("due_cents"), "due_cents"),
    )
    return jsonify(result.to_dict()), 200


@payments_bp.route("/quick-amount", methods=["POST"])
@api_errors
def quick_amount():
    """Request body: {"current_cents": int, "increment_cents": int (may be negative)}"""
    data = json_body()
    increment = data.get("increment_cents")
    if isinstance(increment, bool) or not isinstance(increment, int):
        raise ValidationError("increment_cents must be an integer")
    total = payment_service.add_quick_amount(
        coerce_cents(data.get("current_cents", 0), "current_cents"),
        increment,
    )
    return jsonify({"amount_cents": total}), 200
