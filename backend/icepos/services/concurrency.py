# Overview: Row locking and retry helpers for read-modify-write stock updates.

from __future__ import annotations

import time
from functools import wraps

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Product
from ..validation import NotFoundError


def lock_for_update(query):
    """
    Apply row-level locking for stock read-modify-write.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; the product version_id column
    still turns a lost update into a StaleDataError there.
    """
    return query.with_for_update()


def get_product_for_update(product_id: int, *, active_only: bool = True) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if active_only:
        query = query.filter(Product.is_active.is_(True))
    product = lock_for_update(query).first()
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def retry_on_conflict(attempts: int = 3, backoff_base: float = 0.1):
    """
    Re-run a unit of work when another writer got there first.

    Retries on OperationalError (locks) and StaleDataError (another register
    changed the same row between our read and our write). The session is
    rolled back before each retry so the function starts from fresh state.

    Only wrap top-level units of work that commit themselves; the rollback
    would discard any outer transaction.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            for attempt in range(attempts):
                try:
                    return func(*args, **kwargs)
                except (OperationalError, StaleDataError):
                    db.session.rollback()
                    if attempt >= attempts - 1:
                        raise
                    time.sleep(backoff_base * (2 ** attempt))
        return wrapper
    return decorator
