# Overview: Flask API routes for the gas cylinder deposit ledger; parses input and returns JSON responses.

# backend/icepos/routes/cylinders.py
"""
Gas cylinder deposit ledger: price quotes, returns, refills, outstanding deposits.
"""
from flask import Blueprint, jsonify, request

from ..decorators import api_errors, acting_user_id, json_body, arg_int
from ..models import GasProduct
from ..services import gas_service
from ..services.product_service import get_product
from ..validation import ValidationError, coerce_quantity

cylinders_bp = Blueprint("cylinders", __name__, url_prefix="/api/cylinders")


@cylinders_bp.route("/classify", methods=["POST"])
@api_errors
def classify():
    """
    Request body: {"product_id": int, "mode": "exchange|deposit|outright", "quantity": number}
    """
    data = json_body()
    if data.get("product_id") is None:
        raise ValidationError("product_id is required")
    product = get_product(data["product_id"])
    if not isinstance(product, GasProduct):
        raise ValidationError(f"Product {product.id} is not a gas product")
    quantity = coerce_quantity(data.get("quantity", 1), "quantity", allow_zero=False)

    result = gas_service.classify_sale(product, data.get("mode"), quantity)
    return jsonify({
        "sale_type": result.sale_type,
        "label": gas_service.sale_type_label(result.sale_type),
        "unit_price_cents": result.unit_price_cents,
        "deposit_per_unit_cents": result.deposit_per_unit_cents,
        "price_cents": result.price_cents,
        "deposit_cents": result.deposit_cents,
        "total_cents": result.total_cents,
        "creates_liability": result.creates_liability,
        "stock_changes": [{"stock_type": c.stock_type, "amount": c.amount} for c in result.stock_changes],
    }), 200


@cylinders_bp.route("/return", methods=["POST"])
@api_errors
def return_cylinders():
    """
    Take back deposited cylinders.

    Request body:
    {
        "product_id": int,
        "quantity": number,
        "outstanding_id": int (optional, settles that deposit record),
        "note": str (optional)
    }

    Returns:
        200: {"refund_cents": int, "empty_stock": number, ...}
    """
    data = json_body()
    if data.get("product_id") is None:
        raise ValidationError("product_id is required")
    result = gas_service.process_return(
        data["product_id"],
        data.get("quantity"),
        user_id=acting_user_id(),
        note=data.get("note"),
        outstanding_id=data.get("outstanding_id"),
    )
    return jsonify({
        "product_id": result.product_id,
        "quantity": result.quantity,
        "refund_cents": result.refund_cents,
        "empty_stock": result.empty_stock,
        "stock_log_id": result.log_id,
        "outstanding_id": result.outstanding_id,
    }), 200


@cylinders_bp.route("/refill", methods=["POST"])
@api_errors
def refill():
    data = json_body()
    if data.get("product_id") is None:
        raise ValidationError("product_id is required")
    logs = gas_service.process_refill(
        data["product_id"],
        data.get("quantity"),
        user_id=acting_user_id(),
        note=data.get("note"),
    )
    return jsonify({"logs": [log.to_dict() for log in logs]}), 200


@cylinders_bp.route("/outstanding", methods=["GET"])
@api_errors
def outstanding():
    rows = gas_service.list_outstanding(
        status=request.args.get("status", "pending") or None,
        customer_id=arg_int("customer_id"),
        product_id=arg_int("product_id"),
    )
    return jsonify({"items": [r.to_dict() for r in rows], "count": len(rows)}), 200


@cylinders_bp.route("/outstanding/summary", methods=["GET"])
@api_errors
def outstanding_summary():
    return jsonify(gas_service.outstanding_summary()), 200
