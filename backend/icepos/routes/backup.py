# Overview: Flask API routes for backups; serves JSON bundles and CSV exports, imports bundles, and tracks the reminder.

# backend/icepos/routes/backup.py
"""
Backup download (JSON bundle, per-entity CSV), restore, and the weekly reminder.
"""
from flask import Blueprint, Response, jsonify, request

from ..decorators import api_errors, acting_user_id, json_body, arg_datetime
from ..services import backup_service
from icepos.time_utils import utcnow, to_utc_z

backup_bp = Blueprint("backup", __name__, url_prefix="/api/backup")


@backup_bp.route("", methods=["GET"])
@api_errors
def download_backup():
    """
    Query params:
        include: comma separated bundle sections (products,sales,customers,stockLogs,stockReceipts,discounts)
        start, end: limit sales and stock history
    """
    include = request.args.get("include")
    bundle = backup_service.create_backup(
        include=tuple(s.strip() for s in include.split(",") if s.strip()) if include else None,
        start=arg_datetime("start"),
        end=arg_datetime("end"),
        exported_by_user_id=acting_user_id(),
    )
    response = jsonify(bundle)
    response.headers["Content-Disposition"] = f'attachment; filename="backup-{utcnow().date().isoformat()}.json"'
    return response, 200


@backup_bp.route("/csv/<entity>", methods=["GET"])
@api_errors
def download_csv(entity: str):
    body = backup_service.export_csv(entity, arg_datetime("start"), arg_datetime("end"))
    return Response(
        body,
        mimetype="text/csv",
        headers={
            "Content-Type": "text/csv; charset=utf-8",
            "Content-Disposition": f'attachment; filename="{entity}_{utcnow().date().isoformat()}.csv"',
        },
    )


@backup_bp.route("/import", methods=["POST"])
@api_errors
def import_backup():
    """
    Body: a backup bundle. Rows are imported one by one; the response lists
    what was imported and which rows failed.
    """
    result = backup_service.import_backup(json_body())
    return jsonify(result.to_dict()), 200 if result.success else 400


@backup_bp.route("/reminder", methods=["GET"])
@api_errors
def reminder():
    last = backup_service.last_backup_at()
    return jsonify({
        "show_reminder": backup_service.should_show_backup_reminder(),
        "last_backup_at": to_utc_z(last),
    }), 200


@backup_bp.route("/reminder/dismiss", methods=["POST"])
@api_errors
def dismiss_reminder():
    backup_service.dismiss_backup_reminder()
    return jsonify({"show_reminder": backup_service.should_show_backup_reminder()}), 200
