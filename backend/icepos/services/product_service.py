# Overview: Product catalogue CRUD; category selects the product subclass.

"""
Products Service

Stock is not a mutable field here. Opening stock given at creation is
booked through stock_service as an adjustment so it has a StockLog entry;
later changes go through receipts, adjustments, sales and counts.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Product, GasProduct, IceProduct
from ..models.catalog import CATEGORIES, PRODUCT_CLASSES
from ..models.inventory import REASON_ADJUSTMENT, STOCK_EMPTY
from ..validation import (
    ValidationError,
    NotFoundError,
    require_text,
    optional_text,
    coerce_cents,
    coerce_quantity,
)
from .stock_service import apply_stock_change


PRODUCT_MUTABLE_FIELDS = {"name", "unit", "barcode", "image", "price_cents", "cost_cents", "low_stock_threshold", "is_active"}
CATEGORY_FIELDS = {
    IceProduct: {"melt_rate_percent"},
    GasProduct: {"deposit_amount_cents", "outright_price_cents"},
}

CENTS_FIELDS = {"price_cents", "cost_cents", "deposit_amount_cents", "outright_price_cents"}
OPENING_STOCK_NOTE = "ยอดยกมา"


def coerce_product_fields(cls, data: dict, product_id: int | None = None) -> dict:
    allowed = PRODUCT_MUTABLE_FIELDS | CATEGORY_FIELDS.get(cls, set())
    fields = {k: v for k, v in data.items() if k in allowed}

    if "name" in fields:
        fields["name"] = require_text(fields, "name", "ชื่อสินค้า")
    for key in ("unit", "barcode", "image"):
        if key in fields:
            fields[key] = optional_text(fields, key)
    if "unit" in fields and fields["unit"] is None:
        del fields["unit"]
    for key in CENTS_FIELDS & fields.keys():
        fields[key] = coerce_cents(fields[key], key, allow_none=key == "outright_price_cents")
    if "low_stock_threshold" in fields:
        fields["low_stock_threshold"] = coerce_quantity(fields["low_stock_threshold"], "low_stock_threshold")
    if fields.get("melt_rate_percent") is not None:
        fields["melt_rate_percent"] = coerce_quantity(fields["melt_rate_percent"], "melt_rate_percent")
    if "is_active" in fields:
        fields["is_active"] = bool(fields["is_active"])

    barcode = fields.get("barcode")
    if barcode:
        clash = db.session.query(Product).filter(Product.barcode == barcode).first()
        if clash is not None and clash.id != product_id:
            raise ValidationError(f"Barcode {barcode} is already used by {clash.name}")
    return fields


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def list_products(
    *,
    category: str | None = None,
    search: str | None = None,
    include_inactive: bool = False,
) -> list[Product]:
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if category:
        if category not in CATEGORIES:
            raise ValidationError(f"Invalid category: {category}")
        query = query.filter(Product.category == category)
    if search and search.strip():
        term = search.strip()
        query = query.filter(
            (Product.name.ilike(f"%{term}%")) | (Product.barcode == term)
        )
    return query.order_by(Product.category.asc(), Product.name.asc()).all()


def find_by_barcode(barcode: str) -> Product:
    product = db.session.query(Product).filter_by(barcode=barcode, is_active=True).first()
    if product is None:
        raise NotFoundError(f"No product with barcode {barcode}")
    return product


def create_product(data: dict, *, user_id: int | None = None) -> Product:
    """
    Create a product of the subclass named by data["category"].

    Raises:
        ValidationError: missing name, unknown category, negative money or stock
    """
    category = data.get("category")
    if category not in PRODUCT_CLASSES:
        raise ValidationError(f"Invalid category: {category}. Must be one of {list(CATEGORIES)}")
    cls = PRODUCT_CLASSES[category]

    require_text(data, "name", "ชื่อสินค้า")
    fields = coerce_product_fields(cls, data)
    fields.setdefault("price_cents", 0)

    opening_stock = coerce_quantity(data.get("stock", 0) or 0, "stock")
    opening_empty = coerce_quantity(data.get("empty_stock", 0) or 0, "empty_stock") if cls is GasProduct else 0

    product = cls(**fields)
    product.stock = 0
    if cls is GasProduct:
        product.empty_stock = 0
    db.session.add(product)
    db.session.flush()

    if opening_stock:
        apply_stock_change(product, opening_stock, REASON_ADJUSTMENT, user_id=user_id, note=OPENING_STOCK_NOTE)
    if opening_empty:
        apply_stock_change(
            product, opening_empty, REASON_ADJUSTMENT,
            user_id=user_id, note=OPENING_STOCK_NOTE, stock_type=STOCK_EMPTY,
        )

    db.session.commit()
    return product


def update_product(product_id: int, data: dict) -> Product:
    product = get_product(product_id)
    if "category" in data and data["category"] != product.category:
        raise ValidationError("Product category cannot be changed")
    fields = coerce_product_fields(type(product), data, product.id)
    for key, value in fields.items():
        setattr(product, key, value)
    db.session.commit()
    return product


def delete_product(product_id: int) -> Product:
    """Soft delete; sale history keeps pointing at the row."""
    product = get_product(product_id)
    product.is_active = False
    db.session.commit()
    return product
