# Overview: JSON backup bundles, CSV exports, backup import, and the weekly backup reminder.

"""
Backup Service

BUNDLE FORMAT (version 2.0):
{
  "version": "2.0",
  "exportDate": "...Z",
  "exportedBy": "name" | null,
  "data": {"products": [...], "sales": [...], "customers": [...],
           "stockLogs": [...], "stockReceipts": [...], "discounts": [...]},
  "summary": {"productsCount", "salesCount", "customersCount",
              "totalRevenueCents", "dateRange"?}
}
Rows are the models' to_dict() output, so money is in satang.

IMPORT:
Products, customers and discounts are upserted by id, one row at a time.
A bad row is rolled back and reported; the rest still import. Sales and
logs in a bundle are history and are not re-imported.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from flask import current_app, has_app_context
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Customer, Discount, GasProduct, Product, Sale, User
from ..models.catalog import PRODUCT_CLASSES
from ..models.inventory import REASON_ADJUSTMENT, STOCK_FULL, STOCK_EMPTY
from icepos.time_utils import utcnow, to_utc_z, parse_iso_datetime
from ..validation import ValidationError, NotFoundError, require_text, coerce_cents, coerce_quantity, optional_text
from . import settings_service
from .discount_service import coerce_discount_fields
from .product_service import coerce_product_fields
from .stock_service import apply_stock_change, list_stock_logs, list_stock_receipts


DEFAULT_BACKUP_VERSION = "2.0"
DEFAULT_REMINDER_DAYS = 7
# Dismissing the reminder counts as a backup made this many days ago
DISMISS_BACKDATE_DAYS = 3

IMPORT_NOTE = "นำเข้าจากไฟล์สำรองข้อมูล"

CSV_ENTITIES = ("products", "sales", "customers", "stock_logs")

CSV_HEADERS = {
    "products": [
        "รหัส", "ชื่อสินค้า", "หมวดหมู่", "หน่วย", "ราคาขาย", "ต้นทุน",
        "สต็อก", "ถังเปล่า", "ค่ามัดจำ", "บาร์โค้ด", "แจ้งเตือนเมื่อต่ำกว่า", "สถานะ",
    ],
    "sales": [
        "เลขที่", "วันที่", "ยอดรวม", "รับเงิน", "เงินทอน", "ส่วนลด",
        "มัดจำ", "วิธีชำระ", "ลูกค้า", "พนักงาน", "จำนวนรายการ", "รายละเอียด",
    ],
    "customers": ["รหัส", "ชื่อ", "เบอร์โทร", "แต้มสะสม", "ยอดซื้อรวม", "จำนวนครั้งที่ซื้อ", "วันที่สมัคร"],
    "stock_logs": ["รหัส", "วันที่", "สินค้า", "ประเภทสต็อก", "จำนวน", "คงเหลือ", "เหตุผล", "หมายเหตุ", "ผู้ทำรายการ"],
}


@dataclass
class ImportResult:
    success: bool = False
    imported: dict = field(default_factory=lambda: {"products": 0, "customers": 0, "discounts": 0})
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"success": self.success, "imported": dict(self.imported), "errors": list(self.errors)}


def _config(key: str, default):
    if has_app_context():
        return current_app.config.get(key, default)
    return default


def _baht(cents: int | None) -> str:
    return f"{(cents or 0) / 100:.2f}"


def create_backup(
    *,
    include: tuple[str, ...] | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    exported_by_user_id: int | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Build a backup bundle. `include` limits the data sections (bundle key
    names); start/end limit the time-based ones (sales, stock logs, receipts).
    Records the backup time for the reminder.
    """
    include = include or ("products", "sales", "customers", "stockLogs", "stockReceipts", "discounts")
    now = now or utcnow()

    exported_by = None
    if exported_by_user_id is not None:
        user = db.session.get(User, exported_by_user_id)
        exported_by = user.name if user else None

    data: dict = {}
    summary: dict = {"productsCount": 0, "salesCount": 0, "customersCount": 0, "totalRevenueCents": 0}

    if "products" in include:
        data["products"] = [p.to_dict() for p in db.session.query(Product).order_by(Product.category, Product.id).all()]
        summary["productsCount"] = len(data["products"])

    if "sales" in include:
        sales = _query_sales(start, end)
        data["sales"] = [s.to_dict() for s in sales]
        summary["salesCount"] = len(sales)
        summary["totalRevenueCents"] = sum(s.total_cents for s in sales)

    if "customers" in include:
        data["customers"] = [c.to_dict() for c in db.session.query(Customer).order_by(Customer.name).all()]
        summary["customersCount"] = len(data["customers"])

    if "stockLogs" in include:
        data["stockLogs"] = [log.to_dict() for log in list_stock_logs(start=start, end=end, limit=None)]

    if "stockReceipts" in include:
        data["stockReceipts"] = [r.to_dict() for r in list_stock_receipts(start=start, end=end, limit=None)]

    if "discounts" in include:
        data["discounts"] = [d.to_dict() for d in db.session.query(Discount).order_by(Discount.name).all()]

    if start or end:
        summary["dateRange"] = {
            "start": to_utc_z(start) if start else "beginning",
            "end": to_utc_z(end) if end else "now",
        }

    settings_service.set_setting(settings_service.KEY_LAST_BACKUP_AT, to_utc_z(now))

    return {
        "version": _config("BACKUP_VERSION", DEFAULT_BACKUP_VERSION),
        "exportDate": to_utc_z(now),
        "exportedBy": exported_by,
        "data": data,
        "summary": summary,
    }


def _query_sales(start: datetime | None, end: datetime | None) -> list[Sale]:
    query = db.session.query(Sale).options(selectinload(Sale.items))
    if start is not None:
        query = query.filter(Sale.created_at >= start)
    if end is not None:
        query = query.filter(Sale.created_at < end)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()


def _csv_rows(entity: str, start: datetime | None, end: datetime | None):
    if entity == "products":
        for p in db.session.query(Product).order_by(Product.category, Product.name).all():
            is_gas = isinstance(p, GasProduct)
            yield [
                p.id, p.name, p.category, p.unit, _baht(p.price_cents), _baht(p.cost_cents),
                f"{p.stock:g}",
                f"{(p.empty_stock or 0):g}" if is_gas else "",
                _baht(p.deposit_amount_cents) if is_gas else "",
                p.barcode or "", f"{p.low_stock_threshold:g}",
                "ใช้งาน" if p.is_active else "ปิดใช้งาน",
            ]
    elif entity == "sales":
        for s in _query_sales(start, end):
            yield [
                s.id, to_utc_z(s.created_at), _baht(s.total_cents), _baht(s.payment_cents),
                _baht(s.change_cents), _baht(s.discount_cents + s.points_discount_cents),
                _baht(s.deposit_total_cents), s.payment_method,
                s.customer.name if s.customer else "", s.user.name if s.user else "",
                len(s.items),
                "; ".join(f"{i.product_name}x{i.quantity:g}" for i in s.items),
            ]
    elif entity == "customers":
        for c in db.session.query(Customer).order_by(Customer.name).all():
            yield [
                c.id, c.name, c.phone or "", c.points, _baht(c.total_spent_cents),
                c.visit_count, to_utc_z(c.created_at),
            ]
    elif entity == "stock_logs":
        for log in list_stock_logs(start=start, end=end, limit=None):
            yield [
                log.id, to_utc_z(log.created_at), log.product.name if log.product else "",
                log.stock_type, f"{log.change_amount:g}",
                "" if log.stock_after is None else f"{log.stock_after:g}",
                log.reason, log.note or "", log.user.name if log.user else "",
            ]


def export_csv(entity: str, start: datetime | None = None, end: datetime | None = None) -> str:
    """
    One entity per file, Thai headers, UTF-8 with a BOM so spreadsheet apps
    detect the encoding. Money columns are in baht.
    """
    if entity not in CSV_ENTITIES:
        raise ValidationError(f"Invalid export entity: {entity}. Must be one of {list(CSV_ENTITIES)}")

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS[entity])
    for row in _csv_rows(entity, start, end):
        writer.writerow(row)
    return "\ufeff" + buffer.getvalue()


def _set_counter(product: Product, target: float, stock_type: str) -> None:
    current = (product.empty_stock or 0) if stock_type == STOCK_EMPTY else product.stock
    if target != current:
        apply_stock_change(product, target - current, REASON_ADJUSTMENT, note=IMPORT_NOTE, stock_type=stock_type)


def _import_product(row: dict) -> None:
    category = row.get("category")
    cls = PRODUCT_CLASSES.get(category)
    if cls is None:
        raise ValidationError(f"Invalid category: {category}")

    product_id = row.get("id")
    product = db.session.get(Product, product_id) if product_id is not None else None
    if product is not None and product.category != category:
        raise ValidationError("Product category cannot be changed")

    fields = coerce_product_fields(cls, row, product.id if product else None)
    if product is None:
        require_text(row, "name")
        product = cls(id=product_id, stock=0, **fields)
        if cls is GasProduct:
            product.empty_stock = 0
        db.session.add(product)
        db.session.flush()
    else:
        for key, value in fields.items():
            setattr(product, key, value)

    if row.get("stock") is not None:
        _set_counter(product, coerce_quantity(row["stock"], "stock"), STOCK_FULL)
    if cls is GasProduct and row.get("empty_stock") is not None:
        _set_counter(product, coerce_quantity(row["empty_stock"], "empty_stock"), STOCK_EMPTY)


def _import_customer(row: dict) -> None:
    customer_id = row.get("id")
    customer = db.session.get(Customer, customer_id) if customer_id is not None else None
    if customer is None:
        customer = Customer(id=customer_id)
        db.session.add(customer)
    customer.name = require_text(row, "name")
    customer.phone = optional_text(row, "phone")
    customer.points = coerce_cents(row.get("points", 0) or 0, "points")
    customer.total_spent_cents = coerce_cents(row.get("total_spent_cents", 0) or 0, "total_spent_cents")
    customer.visit_count = coerce_cents(row.get("visit_count", 0) or 0, "visit_count")


def _import_discount(row: dict) -> None:
    discount_id = row.get("id")
    discount = db.session.get(Discount, discount_id) if discount_id is not None else None
    fields = coerce_discount_fields(row)
    fields["name"] = require_text(row, "name")
    if discount is None:
        discount = Discount(id=discount_id, **fields)
        db.session.add(discount)
    else:
        for key, value in fields.items():
            setattr(discount, key, value)


IMPORTERS = (
    ("products", "products", _import_product),
    ("customers", "customers", _import_customer),
    ("discounts", "discounts", _import_discount),
)


def import_backup(bundle: dict) -> ImportResult:
    """
    Restore catalogue, customers and discounts from a bundle.

    success is True when nothing failed or at least one row was imported.
    """
    result = ImportResult()

    if not isinstance(bundle, dict) or not bundle.get("version"):
        result.errors.append("Invalid backup file: missing version")
        return result

    data = bundle.get("data") or {}
    for section, counter, importer in IMPORTERS:
        for row in data.get(section) or []:
            label = row.get("name") if isinstance(row, dict) else None
            try:
                if not isinstance(row, dict):
                    raise ValidationError("row must be an object")
                importer(row)
                db.session.commit()
                result.imported[counter] += 1
            except (ValidationError, NotFoundError, SQLAlchemyError) as e:
                db.session.rollback()
                result.errors.append(f"{section[:-1].capitalize()} {label or '?'}: {e}")

    result.success = not result.errors or any(result.imported.values())
    return result


def last_backup_at() -> datetime | None:
    return parse_iso_datetime(settings_service.get_setting(settings_service.KEY_LAST_BACKUP_AT))


def should_show_backup_reminder(now: datetime | None = None) -> bool:
    """True when there has never been a backup or the last one is a week or more old."""
    now = now or utcnow()
    last = last_backup_at()
    dismissed = parse_iso_datetime(settings_service.get_setting(settings_service.KEY_BACKUP_REMINDER_DISMISSED_AT))
    if dismissed is not None:
        snoozed = dismissed - timedelta(days=DISMISS_BACKDATE_DAYS)
        last = snoozed if last is None else max(last, snoozed)
    if last is None:
        return True
    return (now - last).days >= int(_config("BACKUP_REMINDER_DAYS", DEFAULT_REMINDER_DAYS))


def dismiss_backup_reminder(now: datetime | None = None) -> None:
    now = now or utcnow()
    settings_service.set_setting(settings_service.KEY_BACKUP_REMINDER_DISMISSED_AT, to_utc_z(now))
