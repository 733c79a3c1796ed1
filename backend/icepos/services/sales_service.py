# Overview: Checkout: turns a cart into a recorded sale with stock, deposit and loyalty effects.

"""
Sales Service

complete_sale() is a single unit of work. Everything it writes (the Sale and
its SaleItems, stock decrements and their StockLogs, empty-cylinder increments
for exchanges, OutstandingCylinder rows for deposits, customer loyalty
aggregates) is committed together or not at all.

All checks (products exist, gas sale types, discount, points, tender) run
before the first write, so a rejected sale leaves no trace.
"""

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Customer, OutstandingCylinder, Sale, SaleItem
from ..models.inventory import (
    REASON_SALE,
    REASON_EXCHANGE,
    REASON_DEPOSIT_SALE,
    REASON_OUTRIGHT_SALE,
    OUTSTANDING_PENDING,
)
from ..models.sales import PAYMENT_CASH
from icepos.time_utils import utcnow
from ..validation import (
    ValidationError,
    MissingReferenceError,
    NotFoundError,
    BusinessRuleError,
    coerce_cents,
)
from .cart import Cart
from .concurrency import lock_for_update, get_product_for_update, retry_on_conflict
from .discount_service import get_discount, validate_discount
from .gas_service import SALE_TYPE_EXCHANGE, SALE_TYPE_DEPOSIT, SALE_TYPE_OUTRIGHT
from .loyalty_service import (
    calculate_points_earned,
    points_discount_cents,
    validate_points_usage,
    apply_sale_to_customer,
)
from .payment_service import resolve_payment
from .stock_service import apply_stock_change


GAS_STOCK_REASONS = {
    SALE_TYPE_EXCHANGE: REASON_EXCHANGE,
    SALE_TYPE_DEPOSIT: REASON_DEPOSIT_SALE,
    SALE_TYPE_OUTRIGHT: REASON_OUTRIGHT_SALE,
}


def _load_customer(customer_id: int | None) -> Customer | None:
    if customer_id is None:
        return None
    customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
    if customer is None:
        raise NotFoundError(f"Customer {customer_id} not found")
    return customer


def _post_line(sale: Sale, line, user_id: int | None) -> SaleItem:
    product = get_product_for_update(line.product.id)
    gas = line.gas_result

    item = SaleItem(
        sale_id=sale.id,
        product_id=product.id,
        product_name=product.name,
        quantity=line.quantity,
        unit_price_cents=line.unit_price_cents,
        unit_cost_cents=product.cost_cents or 0,
        subtotal_cents=line.subtotal_cents,
        gas_sale_type=gas.sale_type if gas else None,
        deposit_amount_cents=gas.deposit_per_unit_cents if gas else 0,
    )
    db.session.add(item)
    db.session.flush()

    note = f"ขาย #{sale.id}"
    if gas is None:
        apply_stock_change(product, -line.quantity, REASON_SALE, user_id=user_id, note=note, sale_id=sale.id)
        return item

    reason = GAS_STOCK_REASONS[gas.sale_type]
    for change in gas.stock_changes:
        apply_stock_change(
            product,
            change.amount,
            reason,
            user_id=user_id,
            note=note,
            stock_type=change.stock_type,
            sale_id=sale.id,
        )

    if gas.creates_liability:
        db.session.add(OutstandingCylinder(
            sale_id=sale.id,
            sale_item_id=item.id,
            product_id=product.id,
            customer_id=sale.customer_id,
            quantity=line.quantity,
            deposit_amount_cents=gas.deposit_per_unit_cents,
            status=OUTSTANDING_PENDING,
        ))
    return item


@retry_on_conflict()
def complete_sale(
    items: list[dict],
    payment_method: str = PAYMENT_CASH,
    tendered_cents: int | None = None,
    *,
    customer_id: int | None = None,
    discount_id: int | None = None,
    points_used=0,
    user_id: int | None = None,
    note: str | None = None,
) -> Sale:
    """
    Record a sale.

    total = subtotal + deposits - discount - points discount (never below 0)

    Args:
        items: [{"product_id", "quantity", "gas_sale_type"}]; gas lines need a sale type
        payment_method: cash | transfer | credit
        tendered_cents: cash handed over (ignored for transfer/credit)
        customer_id: required for credit sales and for redeeming points
        discount_id: promotion to apply to the goods subtotal
        points_used: loyalty points to redeem (1 point = 1 baht)

    Returns:
        The committed Sale.

    Raises:
        ValidationError: malformed items or unknown payment method / gas sale type
        MissingReferenceError: credit sale or points redemption without customer
        NotFoundError: product, customer or discount does not exist
        BusinessRuleError: discount not applicable, points over limit, cash short
    """
    cart = Cart.from_payload(items)
    customer = _load_customer(customer_id)

    discount = None
    discount_cents = 0
    if discount_id is not None:
        discount = get_discount(discount_id)
        check = validate_discount(discount, cart)
        if not check.is_valid:
            raise BusinessRuleError(check.error)
        discount_cents = check.discount_cents

    points = coerce_cents(points_used or 0, "points_used")
    if points and customer is None:
        raise MissingReferenceError("A customer is required to redeem points")
    points_check = validate_points_usage(customer, points, cart.subtotal_cents() - discount_cents)
    if not points_check.is_valid:
        raise BusinessRuleError(points_check.error)
    points_discount = points_discount_cents(points)

    total_cents = cart.grand_total_cents(points_discount, discount_cents)
    payment = resolve_payment(payment_method, tendered_cents, total_cents, customer)
    points_earned = calculate_points_earned(total_cents) if customer is not None else 0

    try:
        sale = Sale(
            subtotal_cents=cart.subtotal_cents(),
            deposit_total_cents=cart.deposit_total_cents(),
            discount_cents=discount_cents,
            points_discount_cents=points_discount,
            total_cents=total_cents,
            payment_method=payment.method,
            payment_cents=payment.payment_cents,
            change_cents=payment.change_cents,
            customer_id=customer.id if customer else None,
            discount_id=discount.id if discount else None,
            discount_name=discount.name if discount else None,
            user_id=user_id,
            points_used=points,
            points_earned=points_earned,
            note=note,
        )
        db.session.add(sale)
        db.session.flush()

        for line in cart.lines:
            _post_line(sale, line, user_id)

        if customer is not None:
            apply_sale_to_customer(customer, points, points_earned, total_cents)

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return sale


def quote_cart(items: list[dict], *, discount_id: int | None = None, points_used=0, customer_id: int | None = None) -> dict:
    """Price a cart without recording anything (checkout preview)."""
    cart = Cart.from_payload(items)
    data = cart.to_dict()

    discount_cents = 0
    if discount_id is not None:
        check = validate_discount(get_discount(discount_id), cart)
        data["discount"] = check.to_dict()
        discount_cents = check.discount_cents if check.is_valid else 0

    customer = db.session.get(Customer, customer_id) if customer_id is not None else None
    points = coerce_cents(points_used or 0, "points_used")
    points_check = validate_points_usage(customer, points, cart.subtotal_cents() - discount_cents)
    data["points"] = {
        "is_valid": points_check.is_valid,
        "max_points": points_check.max_points,
        "error": points_check.error,
    }
    points_discount = points_discount_cents(points) if points_check.is_valid else 0

    data["discount_cents"] = discount_cents
    data["points_discount_cents"] = points_discount
    data["grand_total_cents"] = cart.grand_total_cents(points_discount, discount_cents)
    return data


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError(f"Sale {sale_id} not found")
    return sale


def list_sales(
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    customer_id: int | None = None,
    user_id: int | None = None,
    payment_method: str | None = None,
    limit: int | None = 100,
) -> list[Sale]:
    if start and end and start > end:
        raise ValidationError("start must be before end")

    query = db.session.query(Sale)
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
    query = query.order_by(Sale.created_at.desc(), Sale.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def mark_receipt_printed(sale_id: int) -> Sale:
    """The only mutation allowed on a recorded sale."""
    sale = get_sale(sale_id)
    sale.receipt_printed_at = utcnow()
    sale.print_count = (sale.print_count or 0) + 1
    db.session.commit()
    return sale
