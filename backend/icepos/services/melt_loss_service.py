# Overview: Ice melt-loss calculation, daily stock counts, and melt-loss reporting.

from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date

from flask import current_app, has_app_context
from sqlalchemy import func

from ..extensions import db
from ..models import IceProduct, Sale, SaleItem, DailyStockCount
from ..models.inventory import REASON_MELT_LOSS, REASON_ADJUSTMENT
from icepos.time_utils import day_bounds, local_today
from ..validation import ValidationError, NotFoundError, coerce_quantity
from .concurrency import lock_for_update, retry_on_conflict
from .stock_service import apply_stock_change


OUTCOME_LOSS = "loss"
OUTCOME_ABNORMAL_LOSS = "abnormal_loss"
OUTCOME_SURPLUS = "surplus"
OUTCOME_EXACT = "exact"

DEFAULT_MELT_RATE_PERCENT = 5.0


@dataclass(frozen=True)
class MeltLossResult:
    start_stock: float
    sold_quantity: float
    actual_stock: float
    expected_stock: float
    melt_loss: float
    melt_loss_value_cents: int
    melt_percent: float
    expected_melt_percent: float
    is_abnormal: bool
    surplus: float
    outcome: str

    def to_dict(self) -> dict:
        return asdict(self)


def compute_loss(
    start_stock,
    sold_quantity,
    actual_counted_stock,
    expected_melt_percent,
    unit_cost_cents,
) -> MeltLossResult:
    """
    Shrinkage between system stock and a physical count, net of sales.

    expected = max(0, start - sold)
    loss = max(0, expected - actual); value = loss * unit cost
    melt % = loss / start * 100 (0 when start is 0), reported rounded to 2 dp
    abnormal when the unrounded melt % is strictly greater than the expected melt %.

    A count above expected is a surplus (unrecorded receipt or miscount), not
    negative melt; it is never abnormal.

    Raises:
        ValidationError: any input is negative or not a number
    """
    start = coerce_quantity(start_stock, "start_stock")
    sold = coerce_quantity(sold_quantity, "sold_quantity")
    actual = coerce_quantity(actual_counted_stock, "actual_counted_stock")
    expected_pct = coerce_quantity(expected_melt_percent, "expected_melt_percent")
    cost = coerce_quantity(unit_cost_cents, "unit_cost_cents")

    expected = max(0.0, start - sold)
    loss = max(0.0, expected - actual)
    surplus = max(0.0, actual - expected)
    raw_percent = loss / start * 100 if start > 0 else 0.0
    melt_percent = round(raw_percent, 2)
    is_abnormal = raw_percent > expected_pct

    if surplus > 0:
        outcome = OUTCOME_SURPLUS
    elif loss == 0:
        outcome = OUTCOME_EXACT
    elif is_abnormal:
        outcome = OUTCOME_ABNORMAL_LOSS
    else:
        outcome = OUTCOME_LOSS

    return MeltLossResult(
        start_stock=start,
        sold_quantity=sold,
        actual_stock=actual,
        expected_stock=expected,
        melt_loss=loss,
        melt_loss_value_cents=int(round(loss * cost)),
        melt_percent=melt_percent,
        expected_melt_percent=expected_pct,
        is_abnormal=is_abnormal,
        surplus=surplus,
        outcome=outcome,
    )


def expected_melt_percent_for(product: IceProduct) -> float:
    if product.melt_rate_percent is not None:
        return product.melt_rate_percent
    if has_app_context():
        return float(current_app.config.get("DEFAULT_MELT_RATE_PERCENT", DEFAULT_MELT_RATE_PERCENT))
    return DEFAULT_MELT_RATE_PERCENT


def _utc_offset_hours() -> float:
    if has_app_context():
        return float(current_app.config.get("RECEIPT_UTC_OFFSET_HOURS", 7))
    return 7.0


def sold_quantity_on(product_id: int, day: date) -> float:
    """Quantity sold during the shop's local calendar day."""
    start, end = day_bounds(day, _utc_offset_hours())
    total = (
        db.session.query(func.coalesce(func.sum(SaleItem.quantity), 0))
        .join(Sale, Sale.id == SaleItem.sale_id)
        .filter(
            SaleItem.product_id == product_id,
            Sale.created_at >= start,
            Sale.created_at < end,
        )
        .scalar()
    )
    return float(total or 0)


@retry_on_conflict()
def record_daily_count(
    product_id: int,
    actual_stock,
    *,
    user_id: int | None = None,
    note: str | None = None,
    count_date: date | None = None,
    sold_quantity=None,
) -> DailyStockCount:
    """
    Close the day for an ice product.

    The system stock at closing is taken as the opening stock for the
    calculation, with today's recorded sales added back. The product's stock is
    then set to the counted value through a melt_loss (or adjustment, for a
    surplus) stock log.

    Re-recording the same day replaces the earlier row and keeps its opening
    stock and sold quantity as the baseline, so the row holds the whole day's
    loss rather than the difference between the two counts.
    """
    actual = coerce_quantity(actual_stock, "actual_stock")
    count_date = count_date or local_today(_utc_offset_hours())

    product = lock_for_update(
        db.session.query(IceProduct).filter_by(id=product_id, is_active=True)
    ).first()
    if product is None:
        raise NotFoundError(f"Ice product {product_id} not found")

    row = db.session.query(DailyStockCount).filter_by(product_id=product.id, count_date=count_date).first()

    if sold_quantity is not None:
        sold = coerce_quantity(sold_quantity, "sold_quantity")
    elif row is not None:
        sold = row.sold_quantity
    else:
        sold = sold_quantity_on(product.id, count_date)
    start_stock = row.system_stock if row is not None else product.stock + sold

    result = compute_loss(
        start_stock,
        sold,
        actual,
        expected_melt_percent_for(product),
        product.cost_cents or 0,
    )

    if row is None:
        row = DailyStockCount(product_id=product.id, count_date=count_date)
        db.session.add(row)

    row.system_stock = start_stock
    row.sold_quantity = sold
    row.expected_stock = result.expected_stock
    row.actual_stock = actual
    row.melt_loss = result.melt_loss
    row.melt_loss_value_cents = result.melt_loss_value_cents
    row.melt_percent = result.melt_percent
    row.expected_melt_percent = result.expected_melt_percent
    row.surplus = result.surplus
    row.is_abnormal = result.is_abnormal
    row.note = note
    row.user_id = user_id

    delta = actual - product.stock
    if delta != 0:
        if delta < 0:
            reason = REASON_MELT_LOSS
            text = note or f"ละลาย {-delta:g} {product.unit} ({result.melt_percent:.1f}%)"
        else:
            reason = REASON_ADJUSTMENT
            text = note or f"นับได้เกิน {delta:g} {product.unit}"
        apply_stock_change(product, delta, reason, user_id=user_id, note=text)

    db.session.commit()
    return row


def list_daily_counts(
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    product_id: int | None = None,
) -> list[DailyStockCount]:
    query = db.session.query(DailyStockCount)
    if start_date is not None:
        query = query.filter(DailyStockCount.count_date >= start_date)
    if end_date is not None:
        query = query.filter(DailyStockCount.count_date <= end_date)
    if product_id is not None:
        query = query.filter(DailyStockCount.product_id == product_id)
    return query.order_by(DailyStockCount.count_date.desc(), DailyStockCount.product_id.asc()).all()


def melt_loss_report(start_date: date | None = None, end_date: date | None = None) -> dict:
    if start_date and end_date and start_date > end_date:
        raise ValidationError("start_date must be on or before end_date")

    counts = list_daily_counts(start_date=start_date, end_date=end_date)

    by_product: dict[int, dict] = {}
    for c in counts:
        entry = by_product.setdefault(c.product_id, {
            "product_id": c.product_id,
            "product_name": c.product.name if c.product else None,
            "days": 0,
            "total_melt_loss": 0.0,
            "total_melt_loss_value_cents": 0,
            "abnormal_days": 0,
            "_percent_sum": 0.0,
        })
        entry["days"] += 1
        entry["total_melt_loss"] += c.melt_loss
        entry["total_melt_loss_value_cents"] += c.melt_loss_value_cents
        entry["abnormal_days"] += 1 if c.is_abnormal else 0
        entry["_percent_sum"] += c.melt_percent

    products = []
    for entry in by_product.values():
        percent_sum = entry.pop("_percent_sum")
        entry["average_melt_percent"] = round(percent_sum / entry["days"], 2) if entry["days"] else 0.0
        products.append(entry)
    products.sort(key=lambda e: e["total_melt_loss_value_cents"], reverse=True)

    return {
        "start_date": start_date.isoformat() if start_date else None,
        "end_date": end_date.isoformat() if end_date else None,
        "count_records": len(counts),
        "total_melt_loss": sum(c.melt_loss for c in counts),
        "total_melt_loss_value_cents": sum(c.melt_loss_value_cents for c in counts),
        "abnormal_count": sum(1 for c in counts if c.is_abnormal),
        "average_melt_percent": round(sum(c.melt_percent for c in counts) / len(counts), 2) if counts else 0.0,
        "products": products,
    }
