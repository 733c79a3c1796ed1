# Overview: Flask API routes for customers; parses input and returns JSON responses.

# backend/icepos/routes/customers.py
from flask import Blueprint, jsonify, request

from ..decorators import api_errors, json_body, arg_int
from ..models.inventory import OUTSTANDING_PENDING
from ..services import customer_service, gas_service

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.route("", methods=["GET"])
@api_errors
def list_customers():
    customers = customer_service.list_customers(
        search=request.args.get("search"),
        limit=arg_int("limit", 200),
    )
    return jsonify({"items": [c.to_dict() for c in customers], "count": len(customers)}), 200


@customers_bp.route("", methods=["POST"])
@api_errors
def create_customer():
    customer = customer_service.create_customer(json_body())
    return jsonify(customer.to_dict()), 201


@customers_bp.route("/<int:customer_id>", methods=["GET"])
@api_errors
def get_customer(customer_id: int):
    return jsonify(customer_service.get_customer(customer_id).to_dict()), 200


@customers_bp.route("/<int:customer_id>", methods=["PUT"])
@api_errors
def update_customer(customer_id: int):
    customer = customer_service.update_customer(customer_id, json_body())
    return jsonify(customer.to_dict()), 200


@customers_bp.route("/<int:customer_id>/cylinders", methods=["GET"])
@api_errors
def customer_cylinders(customer_id: int):
    """Cylinders this customer still holds on deposit."""
    customer_service.get_customer(customer_id)
    rows = gas_service.list_outstanding(
        status=request.args.get("status", OUTSTANDING_PENDING) or None,
        customer_id=customer_id,
    )
    return jsonify({"items": [r.to_dict() for r in rows], "count": len(rows)}), 200
