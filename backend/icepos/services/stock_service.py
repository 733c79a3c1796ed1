# Overview: Service-layer operations for stock; the only code path that changes product stock.

from __future__ import annotations

"""
Stock invariants (authoritative)

- Product.stock (and GasProduct.empty_stock) is never written anywhere except
  apply_stock_change(), which appends a StockLog row in the same transaction.
- StockLog.change_amount is the delta actually applied. Counters floor at zero,
  so a requested decrement below zero is logged as the smaller applied delta.
- Quantities are floats; ice may be received, sold and counted in fractions.
"""

from datetime import datetime

from ..extensions import db
from ..models import Product, GasProduct, StockLog, StockReceipt
from ..models.inventory import (
    STOCK_FULL,
    STOCK_EMPTY,
    STOCK_LOG_REASONS,
    REASON_RECEIPT,
    REASON_ADJUSTMENT,
)
from ..validation import ValidationError, coerce_quantity
from .concurrency import get_product_for_update, retry_on_conflict


def apply_stock_change(
    product: Product,
    delta: float,
    reason: str,
    *,
    user_id: int | None = None,
    note: str | None = None,
    stock_type: str = STOCK_FULL,
    sale_id: int | None = None,
) -> StockLog:
    """
    Apply a signed delta to a product's full or empty stock and log it.

    The caller is responsible for having loaded `product` with a row lock
    (get_product_for_update) and for committing.
    """
    if reason not in STOCK_LOG_REASONS:
        raise ValidationError(f"Invalid stock log reason: {reason}")

    if stock_type == STOCK_EMPTY:
        if not isinstance(product, GasProduct):
            raise ValidationError("Only gas products have empty cylinder stock")
        before = product.empty_stock or 0
        after = max(0.0, before + delta)
        product.empty_stock = after
    elif stock_type == STOCK_FULL:
        before = product.stock or 0
        after = max(0.0, before + delta)
        product.stock = after
    else:
        raise ValidationError(f"Invalid stock type: {stock_type}")

    log = StockLog(
        product_id=product.id,
        change_amount=after - before,
        stock_type=stock_type,
        stock_after=after,
        reason=reason,
        note=note,
        user_id=user_id,
        sale_id=sale_id,
    )
    db.session.add(log)
    return log


@retry_on_conflict()
def receive_stock(
    product_id: int,
    quantity,
    *,
    cost_per_unit_cents: int | None = None,
    note: str | None = None,
    user_id: int | None = None,
) -> StockReceipt:
    """Record goods received and add them to sellable stock."""
    qty = coerce_quantity(quantity, "quantity", allow_zero=False)
    product = get_product_for_update(product_id)

    total_cost_cents = None
    if cost_per_unit_cents is not None:
        total_cost_cents = int(round(cost_per_unit_cents * qty))

    receipt = StockReceipt(
        product_id=product.id,
        quantity=qty,
        cost_per_unit_cents=cost_per_unit_cents,
        total_cost_cents=total_cost_cents,
        note=note,
        user_id=user_id,
    )
    db.session.add(receipt)

    apply_stock_change(
        product,
        qty,
        REASON_RECEIPT,
        user_id=user_id,
        note=note or f"รับสินค้าเข้า {qty:g} {product.unit}",
    )

    db.session.commit()
    return receipt


@retry_on_conflict()
def adjust_stock(
    product_id: int,
    new_stock,
    *,
    note: str | None = None,
    user_id: int | None = None,
    stock_type: str = STOCK_FULL,
    reason: str = REASON_ADJUSTMENT,
) -> StockLog:
    """Set a stock counter to an absolute value (manual correction)."""
    target = coerce_quantity(new_stock, "new_stock")
    product = get_product_for_update(product_id)

    if stock_type == STOCK_EMPTY:
        if not isinstance(product, GasProduct):
            raise ValidationError("Only gas products have empty cylinder stock")
        current = product.empty_stock or 0
    else:
        current = product.stock
    log = apply_stock_change(
        product,
        target - current,
        reason,
        user_id=user_id,
        note=note or f"ปรับสต็อก {current:g} → {target:g}",
        stock_type=stock_type,
    )

    db.session.commit()
    return log


def low_stock_products() -> list[Product]:
    return (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .filter(Product.stock <= Product.low_stock_threshold)
        .order_by(Product.stock.asc(), Product.name.asc())
        .all()
    )


def list_stock_logs(
    *,
    product_id: int | None = None,
    reason: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = 200,
) -> list[StockLog]:
    query = db.session.query(StockLog)
    if product_id is not None:
        query = query.filter(StockLog.product_id == product_id)
    if reason:
        query = query.filter(StockLog.reason == reason)
    if start is not None:
        query = query.filter(StockLog.created_at >= start)
    if end is not None:
        query = query.filter(StockLog.created_at <= end)
    query = query.order_by(StockLog.created_at.desc(), StockLog.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def list_stock_receipts(
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = 200,
) -> list[StockReceipt]:
    query = db.session.query(StockReceipt)
    if start is not None:
        query = query.filter(StockReceipt.received_at >= start)
    if end is not None:
        query = query.filter(StockReceipt.received_at <= end)
    query = query.order_by(StockReceipt.received_at.desc(), StockReceipt.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()
