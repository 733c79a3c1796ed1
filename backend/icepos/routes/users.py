# Overview: Flask API routes for shop staff accounts; parses input and returns JSON responses.

# backend/icepos/routes/users.py
from flask import Blueprint, jsonify

from ..decorators import api_errors, acting_user_id, json_body, arg_bool
from ..services import user_service

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.route("", methods=["GET"])
@api_errors
def list_users():
    users = user_service.list_users(include_inactive=arg_bool("include_inactive", True))
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)}), 200


@users_bp.route("", methods=["POST"])
@api_errors
def create_user():
    user = user_service.create_user(json_body())
    return jsonify(user.to_dict()), 201


@users_bp.route("/<int:user_id>", methods=["PUT"])
@api_errors
def update_user(user_id: int):
    user = user_service.update_user(user_id, json_body(), acting_user_id=acting_user_id())
    return jsonify(user.to_dict()), 200


@users_bp.route("/<int:user_id>/deactivate", methods=["POST"])
@api_errors
def deactivate_user(user_id: int):
    """409 when the acting user (X-User-Id) deactivates their own account."""
    user = user_service.deactivate_user(user_id, acting_user_id=acting_user_id())
    return jsonify(user.to_dict()), 200
