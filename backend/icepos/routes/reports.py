# Overview: Flask API routes for profit and sales reporting; returns JSON responses.

# backend/icepos/routes/reports.py
from flask import Blueprint, jsonify, request

from ..decorators import api_errors, arg_datetime, arg_int
from ..services import reporting_service

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.route("/profit", methods=["GET"])
@api_errors
def profit():
    return jsonify(reporting_service.profit_report(arg_datetime("start"), arg_datetime("end"))), 200


@reports_bp.route("/sales", methods=["GET"])
@api_errors
def sales():
    report = reporting_service.sales_report(
        start=arg_datetime("start"),
        end=arg_datetime("end"),
        customer_id=arg_int("customer_id"),
        user_id=arg_int("user_id"),
        payment_method=request.args.get("payment_method"),
        product_id=arg_int("product_id"),
    )
    return jsonify(report), 200


@reports_bp.route("/top-products", methods=["GET"])
@api_errors
def top_products():
    items = reporting_service.top_selling_products(
        limit=arg_int("limit"),
        start=arg_datetime("start"),
        end=arg_datetime("end"),
    )
    return jsonify({"items": items, "count": len(items)}), 200


@reports_bp.route("/trend", methods=["GET"])
@api_errors
def trend():
    return jsonify({"days": reporting_service.sales_trend(arg_int("days", 7))}), 200


@reports_bp.route("/today", methods=["GET"])
@api_errors
def today():
    return jsonify(reporting_service.today_summary()), 200
