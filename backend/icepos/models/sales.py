from __future__ import annotations

from ..extensions import db
from icepos.time_utils import to_utc_z


PAYMENT_CASH = "cash"
PAYMENT_TRANSFER = "transfer"
PAYMENT_CREDIT = "credit"

PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_TRANSFER, PAYMENT_CREDIT)


class Sale(db.Model):
    """
    A completed sale.

    Immutable once recorded, except for receipt/print metadata
    (receipt_printed_at, print_count).

    TOTALS (satang):
    total_cents = subtotal_cents + deposit_total_cents
                  - discount_cents - points_discount_cents
    change_cents = payment_cents - total_cents for cash; 0 otherwise.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_created_at", "created_at"),
        db.Index("ix_sales_customer_created", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    deposit_total_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    points_discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(16), nullable=False, default=PAYMENT_CASH)
    payment_cents = db.Column(db.Integer, nullable=False, default=0)
    change_cents = db.Column(db.Integer, nullable=False, default=0)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)
    discount_id = db.Column(db.Integer, db.ForeignKey("discounts.id"), nullable=True)
    discount_name = db.Column(db.String(255), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    points_used = db.Column(db.Integer, nullable=False, default=0)
    points_earned = db.Column(db.Integer, nullable=False, default=0)

    note = db.Column(db.Text, nullable=True)

    receipt_printed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    print_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    items = db.relationship(
        "SaleItem",
        backref="sale",
        lazy=True,
        order_by="SaleItem.id",
        cascade="all, delete-orphan",
    )
    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    discount = db.relationship("Discount")
    user = db.relationship("User")

    def __repr__(self) -> str:
        return f"<Sale id={self.id} total_cents={self.total_cents} method={self.payment_method}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "subtotal_cents": self.subtotal_cents,
            "deposit_total_cents": self.deposit_total_cents,
            "discount_cents": self.discount_cents,
            "points_discount_cents": self.points_discount_cents,
            "total_cents": self.total_cents,
            "payment_method": self.payment_method,
            "payment_cents": self.payment_cents,
            "change_cents": self.change_cents,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "discount_id": self.discount_id,
            "discount_name": self.discount_name,
            "user_id": self.user_id,
            "user_name": self.user.name if self.user else None,
            "points_used": self.points_used,
            "points_earned": self.points_earned,
            "note": self.note,
            "receipt_printed_at": to_utc_z(self.receipt_printed_at),
            "print_count": self.print_count,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """
    One line of a sale. Prices are snapshotted at sale time.

    For gas products `gas_sale_type` is exchange | deposit | outright and
    `deposit_amount_cents` is the per-unit deposit charged (deposit mode only).
    """
    __tablename__ = "sale_items"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    gas_sale_type = db.Column(db.String(16), nullable=True)
    deposit_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "unit_cost_cents": self.unit_cost_cents,
            "subtotal_cents": self.subtotal_cents,
            "gas_sale_type": self.gas_sale_type,
            "deposit_amount_cents": self.deposit_amount_cents,
        }
