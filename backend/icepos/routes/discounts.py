# Overview: Flask API routes for promotional discounts; parses input and returns JSON responses.

# backend/icepos/routes/discounts.py
from flask import Blueprint, jsonify

from ..decorators import api_errors, json_body, arg_bool
from ..services import discount_service
from ..services.cart import Cart

discounts_bp = Blueprint("discounts", __name__, url_prefix="/api/discounts")


def _with_label(discount) -> dict:
    data = discount.to_dict()
    data["label"] = discount_service.discount_label(discount)
    return data


@discounts_bp.route("", methods=["GET"])
@api_errors
def list_discounts():
    if arg_bool("active"):
        discounts = discount_service.active_discounts()
    else:
        discounts = discount_service.list_discounts()
    return jsonify({"items": [_with_label(d) for d in discounts], "count": len(discounts)}), 200


@discounts_bp.route("", methods=["POST"])
@api_errors
def create_discount():
    discount = discount_service.create_discount(json_body())
    return jsonify(_with_label(discount)), 201


@discounts_bp.route("/<int:discount_id>", methods=["PUT"])
@api_errors
def update_discount(discount_id: int):
    discount = discount_service.update_discount(discount_id, json_body())
    return jsonify(_with_label(discount)), 200


@discounts_bp.route("/<int:discount_id>", methods=["DELETE"])
@api_errors
def delete_discount(discount_id: int):
    discount = discount_service.delete_discount(discount_id)
    return jsonify(_with_label(discount)), 200


@discounts_bp.route("/applicable", methods=["POST"])
@api_errors
def applicable_discounts():
    """Body: {"items": [...]} as for checkout."""
    cart = Cart.from_payload(json_body().get("items"))
    discounts = discount_service.applicable_discounts(cart)
    return jsonify({"items": [_with_label(d) for d in discounts], "count": len(discounts)}), 200


@discounts_bp.route("/<int:discount_id>/validate", methods=["POST"])
@api_errors
def validate_discount(discount_id: int):
    cart = Cart.from_payload(json_body().get("items"))
    result = discount_service.validate_discount(discount_service.get_discount(discount_id), cart)
    return jsonify(result.to_dict()), 200
