# Overview: Flask API routes for checkout and sale history; serves printable receipts.

# backend/icepos/routes/sales.py
"""
Checkout, sale history and receipts.
"""
from flask import Blueprint, Response, jsonify, request

from ..decorators import api_errors, acting_user_id, json_body, arg_datetime, arg_int, arg_bool
from ..models.sales import PAYMENT_CASH
from ..services import sales_service, receipt_service

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.route("", methods=["POST"])
@api_errors
def checkout():
    """
    Complete a sale in one step.

    Request body:
    {
        "items": [{"product_id": int, "quantity": number, "gas_sale_type": "exchange|deposit|outright"}],
        "payment_method": "cash|transfer|credit",
        "payment_cents": int (cash tendered),
        "customer_id": int (optional, required for credit),
        "discount_id": int (optional),
        "points_used": int (optional),
        "note": str (optional)
    }

    Returns:
        201: Sale recorded
        400: Invalid request / missing customer for credit
        404: Product, customer or discount not found
        409: Insufficient cash, discount not applicable, too many points
    """
    data = json_body()
    sale = sales_service.complete_sale(
        data.get("items"),
        data.get("payment_method") or PAYMENT_CASH,
        data.get("payment_cents"),
        customer_id=data.get("customer_id"),
        discount_id=data.get("discount_id"),
        points_used=data.get("points_used") or 0,
        user_id=acting_user_id(),
        note=data.get("note"),
    )
    return jsonify(sale.to_dict()), 201


@sales_bp.route("/quote", methods=["POST"])
@api_errors
def quote():
    """Cart totals for the checkout screen; nothing is recorded."""
    data = json_body()
    result = sales_service.quote_cart(
        data.get("items"),
        discount_id=data.get("discount_id"),
        points_used=data.get("points_used") or 0,
        customer_id=data.get("customer_id"),
    )
    return jsonify(result), 200


@sales_bp.route("", methods=["GET"])
@api_errors
def list_sales():
    sales = sales_service.list_sales(
        start=arg_datetime("start"),
        end=arg_datetime("end"),
        customer_id=arg_int("customer_id"),
        user_id=arg_int("user_id"),
        payment_method=request.args.get("payment_method"),
        limit=arg_int("limit", 100),
    )
    return jsonify({
        "items": [s.to_dict(include_items=arg_bool("include_items")) for s in sales],
        "count": len(sales),
    }), 200


@sales_bp.route("/<int:sale_id>", methods=["GET"])
@api_errors
def get_sale(sale_id: int):
    return jsonify(sales_service.get_sale(sale_id).to_dict()), 200


@sales_bp.route("/<int:sale_id>/receipt", methods=["GET"])
@api_errors
def receipt_html(sale_id: int):
    """80mm printable receipt. ?print=0 disables the automatic print dialog."""
    sale = sales_service.get_sale(sale_id)
    html = receipt_service.render_receipt_html(sale, auto_print=arg_bool("print", True))
    return Response(html, mimetype="text/html")


@sales_bp.route("/<int:sale_id>/receipt.txt", methods=["GET"])
@api_errors
def receipt_text(sale_id: int):
    sale = sales_service.get_sale(sale_id)
    return Response(receipt_service.render_receipt_text(sale), mimetype="text/plain")


@sales_bp.route("/<int:sale_id>/printed", methods=["POST"])
@api_errors
def mark_printed(sale_id: int):
    sale = sales_service.mark_receipt_printed(sale_id)
    return jsonify(sale.to_dict(include_items=False)), 200
