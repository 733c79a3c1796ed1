# Overview: Flask API routes for health checks and application settings.

# backend/icepos/routes/system.py
"""
System health and application settings endpoints.
"""

import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from ..decorators import api_errors, json_body
from ..extensions import db
from ..services import settings_service, offline_queue_service
from icepos.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api")


@system_bp.route("/health", methods=["GET"])
def health():
    """Database round-trip and pending offline work."""
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        database = {"status": "healthy", "response_time_ms": round((time.time() - start_time) * 1000, 2)}
        pending = offline_queue_service.pending_count()
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception("Health check failed")
        return jsonify({
            "status": "unhealthy",
            "timestamp": to_utc_z(utcnow()),
            "database": {"status": "unhealthy", "error": str(e)},
        }), 503

    return jsonify({
        "status": "healthy",
        "timestamp": to_utc_z(utcnow()),
        "database": database,
        "pending_operations": pending,
        "shop": current_app.config.get("SHOP_NAME"),
    }), 200


@system_bp.route("/settings", methods=["GET"])
@api_errors
def list_settings():
    return jsonify({"settings": settings_service.all_settings()}), 200


@system_bp.route("/settings/<key>", methods=["GET"])
@api_errors
def get_setting(key: str):
    return jsonify({"key": key, "value": settings_service.get_setting(key)}), 200


@system_bp.route("/settings/<key>", methods=["PUT"])
@api_errors
def put_setting(key: str):
    data = json_body()
    row = settings_service.set_setting(key, data.get("value"))
    return jsonify(row.to_dict()), 200
