# Overview: Gas cylinder deposit ledger: sale classification, returns, refills, outstanding deposits.

"""
Gas Cylinder Service

SALE TYPES (chosen when a gas product is added to an order):
- exchange (แลกถัง): customer hands over an empty cylinder. Charged the gas
  price only. Full stock -q, empty stock +q. No liability.
- deposit (มัดจำ): customer takes a full cylinder without an empty. Charged gas
  price + deposit. Full stock -q. Creates an OutstandingCylinder liability of
  deposit_amount * q.
- outright (ซื้อขาด): customer buys the cylinder. Charged the outright price, or
  price + deposit + OUTRIGHT_PREMIUM_CENTS when none is configured. Full stock -q.

RETURNS:
A returned deposit cylinder increments empty stock, logs a deposit_return
entry and reports the refund (deposit_amount * q). The cash-drawer side of the
refund belongs to the caller. The stock change is committed before the refund is
returned so a refund is never reported for an update that did not persist.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app, has_app_context

from ..extensions import db
from ..models import GasProduct, OutstandingCylinder, StockLog
from ..models.inventory import (
    STOCK_FULL,
    STOCK_EMPTY,
    OUTSTANDING_PENDING,
    OUTSTANDING_RETURNED,
    REASON_DEPOSIT_RETURN,
    REASON_REFILL,
)
from icepos.time_utils import utcnow
from ..validation import ValidationError, NotFoundError, BusinessRuleError, coerce_quantity
from .concurrency import lock_for_update, retry_on_conflict
from .stock_service import apply_stock_change


SALE_TYPE_EXCHANGE = "exchange"
SALE_TYPE_DEPOSIT = "deposit"
SALE_TYPE_OUTRIGHT = "outright"

GAS_SALE_TYPES = (SALE_TYPE_EXCHANGE, SALE_TYPE_DEPOSIT, SALE_TYPE_OUTRIGHT)

SALE_TYPE_LABELS = {
    SALE_TYPE_EXCHANGE: "แลกถัง",
    SALE_TYPE_DEPOSIT: "มัดจำ",
    SALE_TYPE_OUTRIGHT: "ซื้อขาด",
}

DEFAULT_OUTRIGHT_PREMIUM_CENTS = 50000


@dataclass(frozen=True)
class StockChange:
    stock_type: str
    amount: float


@dataclass(frozen=True)
class GasSaleResult:
    sale_type: str
    unit_price_cents: int
    deposit_per_unit_cents: int
    price_cents: int
    deposit_cents: int
    total_cents: int
    stock_changes: tuple[StockChange, ...] = field(default_factory=tuple)

    @property
    def creates_liability(self) -> bool:
        return self.sale_type == SALE_TYPE_DEPOSIT


@dataclass(frozen=True)
class CylinderReturnResult:
    product_id: int
    quantity: float
    refund_cents: int
    empty_stock: float
    log_id: int | None
    outstanding_id: int | None = None


def _outright_premium_cents() -> int:
    if not has_app_context():
        return DEFAULT_OUTRIGHT_PREMIUM_CENTS
    return int(current_app.config.get("OUTRIGHT_PREMIUM_CENTS", DEFAULT_OUTRIGHT_PREMIUM_CENTS))


def outright_unit_price_cents(product: GasProduct, premium_cents: int | None = None) -> int:
    if product.outright_price_cents:
        return product.outright_price_cents
    if premium_cents is None:
        premium_cents = _outright_premium_cents()
    return product.price_cents + (product.deposit_amount_cents or 0) + premium_cents


def classify_sale(
    product: GasProduct,
    mode: str,
    quantity: float = 1,
    *,
    premium_cents: int | None = None,
) -> GasSaleResult:
    """
    Price a gas line for the given settlement mode.

    Raises:
        ValidationError: unknown mode, or the product is not a gas product
    """
    if not isinstance(product, GasProduct):
        raise ValidationError(f"Product {product.id} is not a gas product")
    if mode not in GAS_SALE_TYPES:
        raise ValidationError(f"Invalid gas sale type: {mode}. Must be one of {list(GAS_SALE_TYPES)}")

    deposit_amount = product.deposit_amount_cents or 0

    if mode == SALE_TYPE_EXCHANGE:
        price = int(round(product.price_cents * quantity))
        return GasSaleResult(
            sale_type=mode,
            unit_price_cents=product.price_cents,
            deposit_per_unit_cents=0,
            price_cents=price,
            deposit_cents=0,
            total_cents=price,
            stock_changes=(
                StockChange(STOCK_FULL, -quantity),
                StockChange(STOCK_EMPTY, quantity),
            ),
        )

    if mode == SALE_TYPE_OUTRIGHT:
        unit = outright_unit_price_cents(product, premium_cents)
        price = int(round(unit * quantity))
        return GasSaleResult(
            sale_type=mode,
            unit_price_cents=unit,
            deposit_per_unit_cents=0,
            price_cents=price,
            deposit_cents=0,
            total_cents=price,
            stock_changes=(StockChange(STOCK_FULL, -quantity),),
        )

    price = int(round(product.price_cents * quantity))
    deposit = int(round(deposit_amount * quantity))
    return GasSaleResult(
        sale_type=mode,
        unit_price_cents=product.price_cents,
        deposit_per_unit_cents=deposit_amount,
        price_cents=price,
        deposit_cents=deposit,
        total_cents=price + deposit,
        stock_changes=(StockChange(STOCK_FULL, -quantity),),
    )


def sale_type_label(mode: str) -> str:
    return SALE_TYPE_LABELS.get(mode, mode)


def _get_gas_product_for_update(product_id: int) -> GasProduct:
    product = lock_for_update(
        db.session.query(GasProduct).filter_by(id=product_id, is_active=True)
    ).first()
    if product is None:
        raise NotFoundError(f"Gas product {product_id} not found")
    return product


@retry_on_conflict()
def process_return(
    product_id: int,
    quantity,
    *,
    user_id: int | None = None,
    note: str | None = None,
    outstanding_id: int | None = None,
) -> CylinderReturnResult:
    """
    Take back deposited cylinders and compute the deposit refund.

    Steps:
    1. NotFoundError if no active gas product matches.
    2. empty_stock += quantity (row locked, retried on conflict).
    3. StockLog reason=deposit_return documenting the refund.
    4. Optionally resolve the OutstandingCylinder it settles.
    5. Persist, then report the refund amount.

    The returned quantity is not checked against total outstanding deposits.
    """
    qty = coerce_quantity(quantity, "quantity", allow_zero=False)
    product = _get_gas_product_for_update(product_id)

    deposit_amount = product.deposit_amount_cents or 0
    outstanding = None

    if outstanding_id is not None:
        outstanding = lock_for_update(
            db.session.query(OutstandingCylinder).filter_by(id=outstanding_id)
        ).first()
        if outstanding is None:
            raise NotFoundError(f"Outstanding cylinder {outstanding_id} not found")
        if outstanding.product_id != product.id:
            raise ValidationError("Outstanding cylinder belongs to a different product")
        if outstanding.status != OUTSTANDING_PENDING:
            raise BusinessRuleError(f"Outstanding cylinder {outstanding_id} is already {outstanding.status}")
        if qty != outstanding.quantity:
            raise ValidationError(
                f"Return quantity {qty:g} does not match outstanding quantity {outstanding.quantity:g}"
            )
        # Refund what was actually charged, even if the product deposit changed since
        deposit_amount = outstanding.deposit_amount_cents

    refund_cents = int(round(deposit_amount * qty))

    log = apply_stock_change(
        product,
        qty,
        REASON_DEPOSIT_RETURN,
        user_id=user_id,
        note=note or f"คืนถังแก๊ส {qty:g} ถัง คืนมัดจำ {refund_cents / 100:,.2f} บาท",
        stock_type=STOCK_EMPTY,
    )

    if outstanding is not None:
        outstanding.status = OUTSTANDING_RETURNED
        outstanding.returned_at = utcnow()
        outstanding.returned_by_user_id = user_id

    db.session.commit()

    return CylinderReturnResult(
        product_id=product.id,
        quantity=qty,
        refund_cents=refund_cents,
        empty_stock=product.empty_stock or 0,
        log_id=log.id,
        outstanding_id=outstanding.id if outstanding is not None else None,
    )


@retry_on_conflict()
def process_refill(
    product_id: int,
    quantity,
    *,
    user_id: int | None = None,
    note: str | None = None,
) -> list[StockLog]:
    """
    Convert empty cylinders to full ones (refilled by the supplier).

    Raises:
        BusinessRuleError: fewer empties on hand than requested
    """
    qty = coerce_quantity(quantity, "quantity", allow_zero=False)
    product = _get_gas_product_for_update(product_id)

    empties = product.empty_stock or 0
    if empties < qty:
        raise BusinessRuleError(f"ถังเปล่าไม่พอ (มี {empties:g} ถัง)")

    text = note or f"เติมแก๊สถังเปล่า {qty:g} ถัง"
    logs = [
        apply_stock_change(product, -qty, REASON_REFILL, user_id=user_id, note=text, stock_type=STOCK_EMPTY),
        apply_stock_change(product, qty, REASON_REFILL, user_id=user_id, note=text, stock_type=STOCK_FULL),
    ]

    db.session.commit()
    return logs


def list_outstanding(
    *,
    status: str | None = OUTSTANDING_PENDING,
    customer_id: int | None = None,
    product_id: int | None = None,
) -> list[OutstandingCylinder]:
    query = db.session.query(OutstandingCylinder)
    if status:
        query = query.filter(OutstandingCylinder.status == status)
    if customer_id is not None:
        query = query.filter(OutstandingCylinder.customer_id == customer_id)
    if product_id is not None:
        query = query.filter(OutstandingCylinder.product_id == product_id)
    return query.order_by(OutstandingCylinder.created_at.asc(), OutstandingCylinder.id.asc()).all()


def outstanding_summary() -> dict:
    """Pending cylinders and deposit liability, per product and overall."""
    rows = list_outstanding(status=OUTSTANDING_PENDING)

    by_product: dict[int, dict] = {}
    for row in rows:
        entry = by_product.setdefault(row.product_id, {
            "product_id": row.product_id,
            "product_name": row.product.name if row.product else None,
            "quantity": 0.0,
            "liability_cents": 0,
        })
        entry["quantity"] += row.quantity
        entry["liability_cents"] += row.liability_cents

    return {
        "pending_count": len(rows),
        "total_quantity": sum(r.quantity for r in rows),
        "total_liability_cents": sum(r.liability_cents for r in rows),
        "products": sorted(by_product.values(), key=lambda e: e["product_name"] or ""),
    }
