from __future__ import annotations

from ..extensions import db
from icepos.time_utils import to_utc_z


# Stock log reasons
REASON_SALE = "sale"
REASON_RECEIPT = "receipt"
REASON_ADJUSTMENT = "adjustment"
REASON_RETURN = "return"
REASON_EXCHANGE = "exchange"
REASON_DEPOSIT_SALE = "deposit_sale"
REASON_DEPOSIT_RETURN = "deposit_return"
REASON_REFILL = "refill"
REASON_OUTRIGHT_SALE = "outright_sale"
REASON_MELT_LOSS = "melt_loss"

STOCK_LOG_REASONS = (
    REASON_SALE,
    REASON_RECEIPT,
    REASON_ADJUSTMENT,
    REASON_RETURN,
    REASON_EXCHANGE,
    REASON_DEPOSIT_SALE,
    REASON_DEPOSIT_RETURN,
    REASON_REFILL,
    REASON_OUTRIGHT_SALE,
    REASON_MELT_LOSS,
)

# Which stock counter a log row moved
STOCK_FULL = "full"
STOCK_EMPTY = "empty"

OUTSTANDING_PENDING = "pending"
OUTSTANDING_RETURNED = "returned"


class StockLog(db.Model):
    """
    Append-only audit entry for every stock mutation.

    change_amount is the signed delta applied to the counter named by
    stock_type ("full" = product.stock, "empty" = gas empty_stock).
    stock_after records the counter value after the change for reconciliation.
    """
    __tablename__ = "stock_logs"
    __table_args__ = (
        db.Index("ix_stock_logs_product_created", "product_id", "created_at"),
        db.Index("ix_stock_logs_reason_created", "reason", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    change_amount = db.Column(db.Float, nullable=False)
    stock_type = db.Column(db.String(8), nullable=False, default=STOCK_FULL)
    stock_after = db.Column(db.Float, nullable=True)
    reason = db.Column(db.String(32), nullable=False)
    note = db.Column(db.String(255), nullable=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")
    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "change_amount": self.change_amount,
            "stock_type": self.stock_type,
            "stock_after": self.stock_after,
            "reason": self.reason,
            "note": self.note,
            "user_id": self.user_id,
            "user_name": self.user.name if self.user else None,
            "sale_id": self.sale_id,
            "created_at": to_utc_z(self.created_at),
        }


class StockReceipt(db.Model):
    """Goods received from a supplier."""
    __tablename__ = "stock_receipts"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Float, nullable=False)
    cost_per_unit_cents = db.Column(db.Integer, nullable=True)
    total_cost_cents = db.Column(db.Integer, nullable=True)
    note = db.Column(db.String(255), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    received_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "cost_per_unit_cents": self.cost_per_unit_cents,
            "total_cost_cents": self.total_cost_cents,
            "note": self.note,
            "user_id": self.user_id,
            "received_at": to_utc_z(self.received_at),
        }


class DailyStockCount(db.Model):
    """
    End-of-day physical count for an ice product, with the computed melt loss.
    One row per product per count_date.
    """
    __tablename__ = "daily_stock_counts"
    __table_args__ = (
        db.UniqueConstraint("product_id", "count_date", name="uq_daily_counts_product_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    count_date = db.Column(db.Date, nullable=False, index=True)

    system_stock = db.Column(db.Float, nullable=False)
    sold_quantity = db.Column(db.Float, nullable=False, default=0)
    expected_stock = db.Column(db.Float, nullable=False)
    actual_stock = db.Column(db.Float, nullable=False)

    melt_loss = db.Column(db.Float, nullable=False, default=0)
    melt_loss_value_cents = db.Column(db.Integer, nullable=False, default=0)
    melt_percent = db.Column(db.Float, nullable=False, default=0)
    expected_melt_percent = db.Column(db.Float, nullable=False)
    surplus = db.Column(db.Float, nullable=False, default=0)
    is_abnormal = db.Column(db.Boolean, nullable=False, default=False)

    note = db.Column(db.String(255), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "count_date": self.count_date.isoformat() if self.count_date else None,
            "system_stock": self.system_stock,
            "sold_quantity": self.sold_quantity,
            "expected_stock": self.expected_stock,
            "actual_stock": self.actual_stock,
            "melt_loss": self.melt_loss,
            "melt_loss_value_cents": self.melt_loss_value_cents,
            "melt_percent": self.melt_percent,
            "expected_melt_percent": self.expected_melt_percent,
            "surplus": self.surplus,
            "is_abnormal": self.is_abnormal,
            "note": self.note,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
        }


class OutstandingCylinder(db.Model):
    """
    Deposit liability for gas cylinders taken without returning an empty.

    refund due on return = deposit_amount_cents * quantity, which equals the
    deposit charged on the originating sale item.
    """
    __tablename__ = "outstanding_cylinders"
    __table_args__ = (
        db.Index("ix_outstanding_status_product", "status", "product_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    sale_item_id = db.Column(db.Integer, db.ForeignKey("sale_items.id"), nullable=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    quantity = db.Column(db.Float, nullable=False)
    deposit_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=OUTSTANDING_PENDING)

    returned_at = db.Column(db.DateTime(timezone=True), nullable=True)
    returned_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")
    customer = db.relationship("Customer")

    @property
    def liability_cents(self) -> int:
        return int(round(self.deposit_amount_cents * self.quantity))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "sale_item_id": self.sale_item_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "quantity": self.quantity,
            "deposit_amount_cents": self.deposit_amount_cents,
            "liability_cents": self.liability_cents,
            "status": self.status,
            "returned_at": to_utc_z(self.returned_at),
            "returned_by_user_id": self.returned_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
