# Overview: Promotional discounts: validation, calculation, and CRUD.

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from ..extensions import db
from ..models import Discount, Product
from icepos.time_utils import utcnow, parse_iso_datetime
from ..validation import ValidationError, NotFoundError, require_text, coerce_cents
from .cart import Cart
from .payment_service import format_baht


DISCOUNT_PERCENT = "percent"
DISCOUNT_FIXED = "fixed"
DISCOUNT_BUY_X_GET_Y = "buy_x_get_y"

DISCOUNT_TYPES = (DISCOUNT_PERCENT, DISCOUNT_FIXED, DISCOUNT_BUY_X_GET_Y)

DISCOUNT_MUTABLE_FIELDS = {
    "name", "type", "value", "min_purchase_cents", "buy_quantity",
    "get_quantity", "product_id", "is_active", "start_date", "end_date",
}


@dataclass(frozen=True)
class DiscountCalculation:
    discount_cents: int
    description: str
    free_items: int = 0


@dataclass(frozen=True)
class DiscountValidation:
    is_valid: bool
    discount_cents: int = 0
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "discount_cents": self.discount_cents,
            "error": self.error,
        }


def _eligible_lines(discount: Discount, cart: Cart):
    if discount.product_id:
        return [line for line in cart.lines if line.product.id == discount.product_id]
    return list(cart.lines)


def calculate_percent(discount: Discount, subtotal_cents: int) -> DiscountCalculation:
    percent = min(100, max(0, discount.value or 0))
    return DiscountCalculation(
        discount_cents=(subtotal_cents * percent) // 100,
        description=f"ลด {percent}%",
    )


def calculate_fixed(discount: Discount, subtotal_cents: int) -> DiscountCalculation:
    value = discount.value or 0
    return DiscountCalculation(
        discount_cents=max(0, min(value, subtotal_cents)),
        description=f"ลด {format_baht(value)}",
    )


def calculate_buy_x_get_y(discount: Discount, cart: Cart) -> DiscountCalculation:
    """
    For every (buy + get) eligible units, `get` units are free. The free units
    are taken from the cheapest eligible lines first.
    """
    buy_qty = discount.buy_quantity or 0
    get_qty = discount.get_quantity or 0
    if buy_qty <= 0 or get_qty <= 0:
        return DiscountCalculation(0, "ข้อมูลไม่ถูกต้อง")

    lines = _eligible_lines(discount, cart)
    total_qty = sum(line.quantity for line in lines)
    free_items = math.floor(total_qty / (buy_qty + get_qty)) * get_qty

    if free_items <= 0:
        return DiscountCalculation(0, f"ซื้อ {buy_qty} แถม {get_qty}")

    amount = 0.0
    remaining = free_items
    for line in sorted(lines, key=lambda l: l.unit_price_cents):
        if remaining <= 0:
            break
        free_here = min(remaining, line.quantity)
        amount += free_here * line.unit_price_cents
        remaining -= free_here

    return DiscountCalculation(
        discount_cents=math.floor(amount),
        description=f"ซื้อ {buy_qty} แถม {get_qty} (ฟรี {free_items} ชิ้น)",
        free_items=free_items,
    )


def calculate_discount(discount: Discount, cart: Cart) -> DiscountCalculation:
    subtotal = cart.subtotal_cents()
    if discount.type == DISCOUNT_PERCENT:
        return calculate_percent(discount, subtotal)
    if discount.type == DISCOUNT_FIXED:
        return calculate_fixed(discount, subtotal)
    if discount.type == DISCOUNT_BUY_X_GET_Y:
        return calculate_buy_x_get_y(discount, cart)
    return DiscountCalculation(0, "ประเภทส่วนลดไม่ถูกต้อง")


def is_in_date_range(discount: Discount, now: datetime | None = None) -> bool:
    now = now or utcnow()
    if discount.start_date and discount.start_date > now:
        return False
    if discount.end_date and discount.end_date < now:
        return False
    return True


def validate_discount(discount: Discount | None, cart: Cart, now: datetime | None = None) -> DiscountValidation:
    """
    Check a discount against the current cart and compute its amount.

    Discounts apply to the goods subtotal; cylinder deposits are never discounted.
    """
    if discount is None:
        return DiscountValidation(False, error="ไม่พบส่วนลด")

    if not discount.is_active:
        return DiscountValidation(False, error="ส่วนลดนี้ไม่ได้เปิดใช้งาน")

    now = now or utcnow()
    if discount.start_date and discount.start_date > now:
        return DiscountValidation(False, error="ส่วนลดยังไม่เริ่มใช้งาน")
    if discount.end_date and discount.end_date < now:
        return DiscountValidation(False, error="ส่วนลดหมดอายุแล้ว")

    subtotal = cart.subtotal_cents()
    if discount.min_purchase_cents and subtotal < discount.min_purchase_cents:
        return DiscountValidation(False, error=f"ยอดซื้อขั้นต่ำ {format_baht(discount.min_purchase_cents)}")

    if discount.type == DISCOUNT_BUY_X_GET_Y:
        buy_qty = discount.buy_quantity or 0
        get_qty = discount.get_quantity or 0
        if buy_qty <= 0 or get_qty <= 0:
            return DiscountValidation(False, error="ข้อมูลโปรโมชั่นไม่ถูกต้อง")
        eligible_qty = sum(line.quantity for line in _eligible_lines(discount, cart))
        if eligible_qty < buy_qty:
            return DiscountValidation(False, error=f"ต้องซื้อสินค้าอย่างน้อย {buy_qty} ชิ้น")

    calc = calculate_discount(discount, cart)
    return DiscountValidation(True, discount_cents=calc.discount_cents)


def discount_label(discount: Discount) -> str:
    if discount.type == DISCOUNT_PERCENT:
        return f"ลด {discount.value}%"
    if discount.type == DISCOUNT_FIXED:
        return f"ลด {format_baht(discount.value or 0)}"
    if discount.type == DISCOUNT_BUY_X_GET_Y:
        return f"ซื้อ {discount.buy_quantity} แถม {discount.get_quantity}"
    return discount.name


def list_discounts(active_only: bool = False) -> list[Discount]:
    query = db.session.query(Discount)
    if active_only:
        query = query.filter(Discount.is_active.is_(True))
    return query.order_by(Discount.created_at.desc(), Discount.id.desc()).all()


def active_discounts(now: datetime | None = None) -> list[Discount]:
    return [d for d in list_discounts(active_only=True) if is_in_date_range(d, now)]


def applicable_discounts(cart: Cart, now: datetime | None = None) -> list[Discount]:
    return [d for d in active_discounts(now) if validate_discount(d, cart, now).is_valid]


def get_discount(discount_id: int) -> Discount:
    discount = db.session.get(Discount, discount_id)
    if discount is None:
        raise NotFoundError(f"Discount {discount_id} not found")
    return discount


def coerce_discount_fields(data: dict) -> dict:
    fields = {}
    for key in DISCOUNT_MUTABLE_FIELDS:
        if key in data:
            fields[key] = data[key]

    if "type" in fields and fields["type"] not in DISCOUNT_TYPES:
        raise ValidationError(f"Invalid discount type: {fields['type']}. Must be one of {list(DISCOUNT_TYPES)}")
    for key in ("value", "min_purchase_cents"):
        if key in fields:
            fields[key] = coerce_cents(fields[key], key)
    for key in ("buy_quantity", "get_quantity", "product_id"):
        if key in fields and fields[key] is not None:
            fields[key] = coerce_cents(fields[key], key)
    for key in ("start_date", "end_date"):
        if key in fields and isinstance(fields[key], str):
            try:
                fields[key] = parse_iso_datetime(fields[key])
            except ValueError:
                raise ValidationError(f"{key} must be an ISO-8601 datetime")
    if fields.get("product_id") is not None and db.session.get(Product, fields["product_id"]) is None:
        raise NotFoundError(f"Product {fields['product_id']} not found")
    return fields


def create_discount(data: dict) -> Discount:
    name = require_text(data, "name", "ชื่อส่วนลด")
    fields = coerce_discount_fields(data)
    fields["name"] = name
    fields.setdefault("type", DISCOUNT_PERCENT)
    fields.setdefault("value", 0)

    if fields["type"] == DISCOUNT_PERCENT and fields["value"] > 100:
        raise ValidationError("Percent discount cannot exceed 100")

    discount = Discount(**fields)
    db.session.add(discount)
    db.session.commit()
    return discount


def update_discount(discount_id: int, data: dict) -> Discount:
    discount = get_discount(discount_id)
    if "name" in data:
        data = {**data, "name": require_text(data, "name", "ชื่อส่วนลด")}
    fields = coerce_discount_fields(data)
    if fields.get("type", discount.type) == DISCOUNT_PERCENT and fields.get("value", discount.value or 0) > 100:
        raise ValidationError("Percent discount cannot exceed 100")
    for key, value in fields.items():
        setattr(discount, key, value)
    db.session.commit()
    return discount


def delete_discount(discount_id: int) -> Discount:
    """Soft delete; recorded sales keep their discount reference."""
    discount = get_discount(discount_id)
    discount.is_active = False
    db.session.commit()
    return discount
