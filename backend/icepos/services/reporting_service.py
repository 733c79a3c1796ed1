# Overview: Service-layer operations for reporting; profit, sales, top products and trends.

from __future__ import annotations

from datetime import date, datetime, timedelta

from flask import current_app, has_app_context
from sqlalchemy import func
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Product, Sale, SaleItem
from icepos.time_utils import day_bounds, utcnow, to_utc_z
from ..validation import ValidationError


DEFAULT_TOP_PRODUCTS_LIMIT = 10


def _check_range(start: datetime | None, end: datetime | None) -> None:
    if start and end and start > end:
        raise ValidationError("start must be before end")


def _top_limit() -> int:
    if has_app_context():
        return int(current_app.config.get("TOP_PRODUCTS_LIMIT", DEFAULT_TOP_PRODUCTS_LIMIT))
    return DEFAULT_TOP_PRODUCTS_LIMIT


def _margin(revenue: int, profit: int) -> float:
    return round(profit / revenue * 100, 2) if revenue > 0 else 0.0


def _sales_in_range(start: datetime | None, end: datetime | None):
    query = db.session.query(Sale).options(selectinload(Sale.items))
    if start is not None:
        query = query.filter(Sale.created_at >= start)
    if end is not None:
        query = query.filter(Sale.created_at < end)
    return query.order_by(Sale.created_at.asc(), Sale.id.asc()).all()


def _item_cost(item: SaleItem) -> int:
    return int(round((item.unit_cost_cents or 0) * item.quantity))


def sale_revenue_cents(sale: Sale) -> int:
    """Money kept from a sale: the total less refundable cylinder deposits."""
    return sale.total_cents - (sale.deposit_total_cents or 0)


def sale_cost_cents(sale: Sale) -> int:
    return sum(_item_cost(item) for item in sale.items)


def profit_report(start: datetime | None = None, end: datetime | None = None) -> dict:
    """
    Revenue, cost and profit over [start, end).

    Cost uses the unit cost snapshotted on each sale item. Category and
    per-product figures are built from line subtotals, before sale-level
    discounts.
    """
    _check_range(start, end)
    sales = _sales_in_range(start, end)

    product_ids = {item.product_id for sale in sales for item in sale.items}
    categories = dict(
        db.session.query(Product.id, Product.category).filter(Product.id.in_(product_ids)).all()
    ) if product_ids else {}

    total_revenue = 0
    total_cost = 0
    by_category: dict[str, dict] = {}
    by_product: dict[int, dict] = {}

    for sale in sales:
        total_revenue += sale_revenue_cents(sale)
        for item in sale.items:
            cost = _item_cost(item)
            total_cost += cost
            category = categories.get(item.product_id, "unknown")

            cat = by_category.setdefault(category, {"revenue_cents": 0, "cost_cents": 0, "quantity": 0.0})
            cat["revenue_cents"] += item.subtotal_cents
            cat["cost_cents"] += cost
            cat["quantity"] += item.quantity

            prod = by_product.setdefault(item.product_id, {
                "product_id": item.product_id,
                "product_name": item.product_name,
                "category": category,
                "quantity_sold": 0.0,
                "revenue_cents": 0,
                "cost_cents": 0,
            })
            prod["quantity_sold"] += item.quantity
            prod["revenue_cents"] += item.subtotal_cents
            prod["cost_cents"] += cost

    for entry in list(by_category.values()) + list(by_product.values()):
        entry["profit_cents"] = entry["revenue_cents"] - entry["cost_cents"]
        entry["margin"] = _margin(entry["revenue_cents"], entry["profit_cents"])

    top = sorted(by_product.values(), key=lambda p: p["profit_cents"], reverse=True)[:_top_limit()]
    total_profit = total_revenue - total_cost

    return {
        "period": {"start": to_utc_z(start), "end": to_utc_z(end)},
        "total_revenue_cents": total_revenue,
        "total_cost_cents": total_cost,
        "total_profit_cents": total_profit,
        "profit_margin": _margin(total_revenue, total_profit),
        "transaction_count": len(sales),
        "category_breakdown": by_category,
        "top_profitable_products": top,
    }


def sales_report(
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    customer_id: int | None = None,
    user_id: int | None = None,
    payment_method: str | None = None,
    product_id: int | None = None,
) -> dict:
    _check_range(start, end)

    query = db.session.query(Sale).options(selectinload(Sale.items))
    if start is not None:
        query = query.filter(Sale.created_at >= start)
    if end is not None:
        query = query.filter(Sale.created_at < end)
    if customer_id is not None:
        query = query.filter(Sale.customer_id == customer_id)
    if user_id is not None:
        query = query.filter(Sale.user_id == user_id)
    if payment_method:
        query = query.filter(Sale.payment_method == payment_method)
    if product_id is not None:
        query = query.filter(Sale.items.any(SaleItem.product_id == product_id))
    sales = query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()

    total = sum(s.total_cents for s in sales)
    breakdown: dict[str, dict] = {}
    for sale in sales:
        entry = breakdown.setdefault(sale.payment_method, {"count": 0, "total_cents": 0})
        entry["count"] += 1
        entry["total_cents"] += sale.total_cents

    return {
        "sales": [s.to_dict() for s in sales],
        "summary": {
            "total_sales_cents": total,
            "total_discount_cents": sum(s.discount_cents + s.points_discount_cents for s in sales),
            "transaction_count": len(sales),
            "average_transaction_cents": total // len(sales) if sales else 0,
            "payment_method_breakdown": breakdown,
        },
    }


def top_selling_products(
    limit: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[dict]:
    """Products ranked by line revenue."""
    _check_range(start, end)
    limit = limit or _top_limit()

    revenue = func.sum(SaleItem.subtotal_cents)
    query = (
        db.session.query(
            SaleItem.product_id,
            func.max(SaleItem.product_name),
            Product.category,
            Product.unit,
            func.sum(SaleItem.quantity),
            revenue,
        )
        .join(Sale, Sale.id == SaleItem.sale_id)
        .outerjoin(Product, Product.id == SaleItem.product_id)
    )
    if start is not None:
        query = query.filter(Sale.created_at >= start)
    if end is not None:
        query = query.filter(Sale.created_at < end)

    rows = (
        query.group_by(SaleItem.product_id, Product.category, Product.unit)
        .order_by(revenue.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "product_id": product_id,
            "product_name": name,
            "category": category or "unknown",
            "unit": unit or "",
            "total_quantity": float(qty or 0),
            "total_revenue_cents": int(rev or 0),
        }
        for product_id, name, category, unit, qty, rev in rows
    ]


def sales_trend(days: int = 7, today: date | None = None) -> list[dict]:
    """Per-day totals for the last `days` days including today, oldest first."""
    if days <= 0:
        raise ValidationError("days must be positive")
    today = today or utcnow().date()
    first = today - timedelta(days=days - 1)
    start, _ = day_bounds(first)
    _, end = day_bounds(today)

    daily = {
        (first + timedelta(days=i)).isoformat(): {
            "date": (first + timedelta(days=i)).isoformat(),
            "total_cents": 0,
            "count": 0,
            "profit_cents": 0,
        }
        for i in range(days)
    }
    for sale in _sales_in_range(start, end):
        entry = daily.get(sale.created_at.date().isoformat())
        if entry is None:
            continue
        entry["total_cents"] += sale.total_cents
        entry["count"] += 1
        entry["profit_cents"] += sale_revenue_cents(sale) - sale_cost_cents(sale)

    return list(daily.values())


def today_summary(today: date | None = None) -> dict:
    start, end = day_bounds(today or utcnow().date())
    report = profit_report(start, end)
    return {
        "revenue_cents": report["total_revenue_cents"],
        "cost_cents": report["total_cost_cents"],
        "profit_cents": report["total_profit_cents"],
        "transaction_count": report["transaction_count"],
        "profit_margin": report["profit_margin"],
    }
