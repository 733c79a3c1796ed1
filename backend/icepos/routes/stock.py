# Overview: Flask API routes for stock receipts, adjustments, daily ice counts and melt loss.

# backend/icepos/routes/stock.py
"""
Stock receipts, manual adjustments, audit log, low-stock alerts, daily ice
counts and melt-loss calculation.
"""
from flask import Blueprint, jsonify, request

from ..decorators import api_errors, acting_user_id, json_body, arg_date, arg_datetime, arg_int
from ..models.inventory import STOCK_FULL
from ..services import melt_loss_service, stock_service
from ..validation import ValidationError, coerce_cents
from icepos.time_utils import parse_iso_date

stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


def _require(data: dict, key: str):
    if data.get(key) is None:
        raise ValidationError(f"{key} is required")
    return data[key]


@stock_bp.route("/receipts", methods=["POST"])
@api_errors
def receive():
    """
    Request body: {"product_id": int, "quantity": number, "cost_per_unit_cents": int?, "note": str?}
    """
    data = json_body()
    cost = data.get("cost_per_unit_cents")
    receipt = stock_service.receive_stock(
        _require(data, "product_id"),
        _require(data, "quantity"),
        cost_per_unit_cents=coerce_cents(cost, "cost_per_unit_cents", allow_none=True),
        note=data.get("note"),
        user_id=acting_user_id(),
    )
    return jsonify(receipt.to_dict()), 201


@stock_bp.route("/receipts", methods=["GET"])
@api_errors
def list_receipts():
    receipts = stock_service.list_stock_receipts(
        start=arg_datetime("start"),
        end=arg_datetime("end"),
        limit=arg_int("limit", 200),
    )
    return jsonify({"items": [r.to_dict() for r in receipts], "count": len(receipts)}), 200


@stock_bp.route("/adjust", methods=["POST"])
@api_errors
def adjust():
    """
    Request body: {"product_id": int, "new_stock": number, "stock_type": "full|empty", "note": str?}
    """
    data = json_body()
    log = stock_service.adjust_stock(
        _require(data, "product_id"),
        _require(data, "new_stock"),
        note=data.get("note"),
        user_id=acting_user_id(),
        stock_type=data.get("stock_type") or STOCK_FULL,
    )
    return jsonify(log.to_dict()), 200


@stock_bp.route("/logs", methods=["GET"])
@api_errors
def logs():
    rows = stock_service.list_stock_logs(
        product_id=arg_int("product_id"),
        reason=request.args.get("reason"),
        start=arg_datetime("start"),
        end=arg_datetime("end"),
        limit=arg_int("limit", 200),
    )
    return jsonify({"items": [r.to_dict() for r in rows], "count": len(rows)}), 200


@stock_bp.route("/low", methods=["GET"])
@api_errors
def low_stock():
    products = stock_service.low_stock_products()
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200


@stock_bp.route("/counts", methods=["POST"])
@api_errors
def record_count():
    """
    End-of-day ice count.

    Request body:
    {
        "product_id": int,
        "actual_stock": number,
        "count_date": "YYYY-MM-DD" (optional, default today),
        "sold_quantity": number (optional, default: today's recorded sales),
        "note": str (optional)
    }
    """
    data = json_body()
    count_date = None
    if data.get("count_date"):
        try:
            count_date = parse_iso_date(str(data["count_date"]))
        except ValueError:
            raise ValidationError("count_date must be a date (YYYY-MM-DD)")
    row = melt_loss_service.record_daily_count(
        _require(data, "product_id"),
        _require(data, "actual_stock"),
        user_id=acting_user_id(),
        note=data.get("note"),
        count_date=count_date,
        sold_quantity=data.get("sold_quantity"),
    )
    return jsonify(row.to_dict()), 201


@stock_bp.route("/counts", methods=["GET"])
@api_errors
def list_counts():
    rows = melt_loss_service.list_daily_counts(
        start_date=arg_date("start_date"),
        end_date=arg_date("end_date"),
        product_id=arg_int("product_id"),
    )
    return jsonify({"items": [r.to_dict() for r in rows], "count": len(rows)}), 200


@stock_bp.route("/melt-loss/compute", methods=["POST"])
@api_errors
def compute_melt_loss():
    """
    Pure calculation, nothing is stored.

    Request body: {"start_stock", "sold_quantity", "actual_stock", "expected_melt_percent", "unit_cost_cents"}
    """
    data = json_body()
    result = melt_loss_service.compute_loss(
        data.get("start_stock"),
        data.get("sold_quantity"),
        data.get("actual_stock"),
        data.get("expected_melt_percent", melt_loss_service.DEFAULT_MELT_RATE_PERCENT),
        data.get("unit_cost_cents", 0),
    )
    return jsonify(result.to_dict()), 200


@stock_bp.route("/melt-loss/report", methods=["GET"])
@api_errors
def melt_loss_report():
    report = melt_loss_service.melt_loss_report(arg_date("start_date"), arg_date("end_date"))
    return jsonify(report), 200
