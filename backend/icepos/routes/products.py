# Overview: Flask API routes for the ice, gas and water catalogue; parses input and returns JSON responses.

# backend/icepos/routes/products.py
from flask import Blueprint, jsonify, request

from ..decorators import api_errors, acting_user_id, json_body, arg_bool
from ..services import product_service

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.route("", methods=["GET"])
@api_errors
def list_products():
    """
    Query params:
        category: ice | gas | water
        search: name fragment or exact barcode
        include_inactive: true to include soft-deleted products
    """
    products = product_service.list_products(
        category=request.args.get("category"),
        search=request.args.get("search"),
        include_inactive=arg_bool("include_inactive"),
    )
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200


@products_bp.route("", methods=["POST"])
@api_errors
def create_product():
    product = product_service.create_product(json_body(), user_id=acting_user_id())
    return jsonify(product.to_dict()), 201


@products_bp.route("/<int:product_id>", methods=["GET"])
@api_errors
def get_product(product_id: int):
    return jsonify(product_service.get_product(product_id).to_dict()), 200


@products_bp.route("/barcode/<barcode>", methods=["GET"])
@api_errors
def get_by_barcode(barcode: str):
    return jsonify(product_service.find_by_barcode(barcode).to_dict()), 200


@products_bp.route("/<int:product_id>", methods=["PUT"])
@api_errors
def update_product(product_id: int):
    product = product_service.update_product(product_id, json_body())
    return jsonify(product.to_dict()), 200


@products_bp.route("/<int:product_id>", methods=["DELETE"])
@api_errors
def delete_product(product_id: int):
    product = product_service.delete_product(product_id)
    return jsonify(product.to_dict()), 200
