# Overview: Offline write queue: capture operations while disconnected and replay them in FIFO order.

"""
Offline Queue Service

Operations are stored as (type, JSON payload) and replayed in id order.
Replay reapplies each operation as recorded. There is no conflict check
against rows changed since the operation was captured; the last write wins.

A failing operation is rolled back, its retry counter is incremented and the
error kept; after OFFLINE_QUEUE_MAX_RETRIES attempts it is marked failed and
no longer replayed. A failure does not block later operations.

PAYLOADS:
- sale: complete_sale keyword arguments ({"items": [...], "payment_method", ...})
- product_create: product fields
- product_update: {"id": 1, "updates": {...}}
- product_delete: {"id": 1}
- customer_create: customer fields
- stock_receipt: {"product_id", "quantity", "cost_per_unit_cents"?, "note"?}
"""

from __future__ import annotations

from typing import Any, Callable

from flask import current_app, has_app_context
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import QueuedOperation
from ..models.system import QUEUE_STATUS_PENDING, QUEUE_STATUS_DONE, QUEUE_STATUS_FAILED
from icepos.time_utils import utcnow
from ..validation import ValidationError, NotFoundError, BusinessRuleError
from . import customer_service, product_service, sales_service, stock_service


OP_SALE = "sale"
OP_PRODUCT_CREATE = "product_create"
OP_PRODUCT_UPDATE = "product_update"
OP_PRODUCT_DELETE = "product_delete"
OP_CUSTOMER_CREATE = "customer_create"
OP_STOCK_RECEIPT = "stock_receipt"

OPERATION_TYPES = (
    OP_SALE,
    OP_PRODUCT_CREATE,
    OP_PRODUCT_UPDATE,
    OP_PRODUCT_DELETE,
    OP_CUSTOMER_CREATE,
    OP_STOCK_RECEIPT,
)

DEFAULT_MAX_RETRIES = 3

Handler = Callable[[dict], Any]


def _replay_sale(payload: dict):
    return sales_service.complete_sale(**payload)


def _replay_product_update(payload: dict):
    return product_service.update_product(payload["id"], payload.get("updates") or {})


def _replay_stock_receipt(payload: dict):
    return stock_service.receive_stock(
        payload["product_id"],
        payload.get("quantity"),
        cost_per_unit_cents=payload.get("cost_per_unit_cents"),
        note=payload.get("note"),
        user_id=payload.get("user_id"),
    )


DEFAULT_HANDLERS: dict[str, Handler] = {
    OP_SALE: _replay_sale,
    OP_PRODUCT_CREATE: lambda payload: product_service.create_product(payload),
    OP_PRODUCT_UPDATE: _replay_product_update,
    OP_PRODUCT_DELETE: lambda payload: product_service.delete_product(payload["id"]),
    OP_CUSTOMER_CREATE: lambda payload: customer_service.create_customer(payload),
    OP_STOCK_RECEIPT: _replay_stock_receipt,
}

REPLAY_ERRORS = (ValidationError, NotFoundError, BusinessRuleError, KeyError, TypeError, SQLAlchemyError)


def _max_retries() -> int:
    if has_app_context():
        return int(current_app.config.get("OFFLINE_QUEUE_MAX_RETRIES", DEFAULT_MAX_RETRIES))
    return DEFAULT_MAX_RETRIES


def enqueue(op_type: str, payload: dict) -> QueuedOperation:
    if op_type not in OPERATION_TYPES:
        raise ValidationError(f"Invalid operation type: {op_type}. Must be one of {list(OPERATION_TYPES)}")
    if not isinstance(payload, dict):
        raise ValidationError("payload must be an object")
    op = QueuedOperation(type=op_type, payload=payload, status=QUEUE_STATUS_PENDING, retries=0)
    db.session.add(op)
    db.session.commit()
    return op


def list_operations(status: str | None = QUEUE_STATUS_PENDING) -> list[QueuedOperation]:
    query = db.session.query(QueuedOperation)
    if status:
        query = query.filter(QueuedOperation.status == status)
    return query.order_by(QueuedOperation.id.asc()).all()


def pending_count() -> int:
    return db.session.query(QueuedOperation).filter_by(status=QUEUE_STATUS_PENDING).count()


def replay(handlers: dict[str, Handler] | None = None) -> dict:
    """
    Apply every pending operation, oldest first.

    Returns:
        {"processed": n, "succeeded": n, "failed": n, "remaining": n, "errors": [...]}
    """
    handlers = handlers or DEFAULT_HANDLERS
    max_retries = _max_retries()
    summary = {"processed": 0, "succeeded": 0, "failed": 0, "remaining": 0, "errors": []}

    op_ids = [op.id for op in list_operations(QUEUE_STATUS_PENDING)]
    for op_id in op_ids:
        op = db.session.get(QueuedOperation, op_id)
        if op is None or op.status != QUEUE_STATUS_PENDING:
            continue
        summary["processed"] += 1
        handler = handlers.get(op.type)

        try:
            if handler is None:
                raise ValidationError(f"No handler for operation type {op.type}")
            handler(dict(op.payload or {}))
        except REPLAY_ERRORS as e:
            db.session.rollback()
            op = db.session.get(QueuedOperation, op_id)
            op.retries = (op.retries or 0) + 1
            op.last_error = str(e)
            if op.retries >= max_retries:
                op.status = QUEUE_STATUS_FAILED
                op.processed_at = utcnow()
                summary["failed"] += 1
                current_app.logger.error("Queued %s #%s failed permanently: %s", op.type, op.id, e)
            else:
                current_app.logger.warning("Queued %s #%s failed (attempt %s/%s): %s", op.type, op.id, op.retries, max_retries, e)
            summary["errors"].append({"id": op.id, "type": op.type, "error": str(e)})
            db.session.commit()
            continue

        op = db.session.get(QueuedOperation, op_id)
        op.status = QUEUE_STATUS_DONE
        op.processed_at = utcnow()
        op.last_error = None
        db.session.commit()
        summary["succeeded"] += 1

    summary["remaining"] = pending_count()
    return summary


def retry_failed(op_id: int) -> QueuedOperation:
    """Put a failed operation back in the queue with a fresh retry budget."""
    op = db.session.get(QueuedOperation, op_id)
    if op is None:
        raise NotFoundError(f"Queued operation {op_id} not found")
    if op.status != QUEUE_STATUS_FAILED:
        raise BusinessRuleError(f"Operation {op_id} is {op.status}, not failed")
    op.status = QUEUE_STATUS_PENDING
    op.retries = 0
    db.session.commit()
    return op


def discard(op_id: int) -> None:
    op = db.session.get(QueuedOperation, op_id)
    if op is None:
        raise NotFoundError(f"Queued operation {op_id} not found")
    db.session.delete(op)
    db.session.commit()
