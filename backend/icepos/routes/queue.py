# Overview: Flask API routes for the offline operation queue.

# backend/icepos/routes/queue.py
"""
Offline operation queue: registers that lost connectivity post their captured
writes here and trigger a replay once back online.
"""
from flask import Blueprint, jsonify, request

from ..decorators import api_errors, json_body
from ..services import offline_queue_service

queue_bp = Blueprint("queue", __name__, url_prefix="/api/queue")


@queue_bp.route("", methods=["GET"])
@api_errors
def list_operations():
    ops = offline_queue_service.list_operations(request.args.get("status", "pending") or None)
    return jsonify({"items": [op.to_dict() for op in ops], "count": len(ops)}), 200


@queue_bp.route("", methods=["POST"])
@api_errors
def enqueue():
    """Request body: {"type": "sale|product_create|...", "payload": {...}}"""
    data = json_body()
    op = offline_queue_service.enqueue(data.get("type"), data.get("payload"))
    return jsonify(op.to_dict()), 201


@queue_bp.route("/replay", methods=["POST"])
@api_errors
def replay():
    return jsonify(offline_queue_service.replay()), 200


@queue_bp.route("/<int:op_id>/retry", methods=["POST"])
@api_errors
def retry(op_id: int):
    return jsonify(offline_queue_service.retry_failed(op_id).to_dict()), 200


@queue_bp.route("/<int:op_id>", methods=["DELETE"])
@api_errors
def discard(op_id: int):
    offline_queue_service.discard(op_id)
    return jsonify({"deleted": op_id}), 200
