# Overview: Request helpers and the error-mapping decorator shared by API routes.

from __future__ import annotations

from functools import wraps

from flask import current_app, g, jsonify, request

from .extensions import db
from .time_utils import parse_iso_datetime, parse_iso_date
from .validation import ValidationError, NotFoundError, BusinessRuleError


def api_errors(f):
    """
    Translate service exceptions into JSON error responses.

    - ValidationError (incl. MissingReferenceError) -> 400
    - NotFoundError -> 404
    - BusinessRuleError -> 409
    - anything else is logged and answered with 500

    The session is rolled back before any error response.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except ValidationError as e:
            db.session.rollback()
            return jsonify({"error": str(e)}), 400
        except NotFoundError as e:
            db.session.rollback()
            return jsonify({"error": str(e)}), 404
        except BusinessRuleError as e:
            db.session.rollback()
            return jsonify({"error": str(e)}), 409
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Unhandled error in %s %s", request.method, request.path)
            return jsonify({"error": "Internal server error"}), 500

    return decorated_function


def acting_user_id() -> int | None:
    """
    The staff member performing the request, from the X-User-Id header.

    Authentication is handled outside this service; the header is trusted.
    """
    if "acting_user_id" in g:
        return g.acting_user_id
    raw = request.headers.get("X-User-Id")
    if raw is None or not raw.strip():
        g.acting_user_id = None
    elif raw.strip().isdigit():
        g.acting_user_id = int(raw.strip())
    else:
        raise ValidationError("X-User-Id must be an integer")
    return g.acting_user_id


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def arg_datetime(name: str):
    try:
        return parse_iso_datetime(request.args.get(name))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 datetime")


def arg_date(name: str):
    try:
        return parse_iso_date(request.args.get(name))
    except ValueError:
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")


def arg_int(name: str, default: int | None = None) -> int | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


def arg_bool(name: str, default: bool = False) -> bool:
    raw = request.args.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")
