from __future__ import annotations

from ..extensions import db
from icepos.time_utils import to_utc_z


CATEGORY_ICE = "ice"
CATEGORY_GAS = "gas"
CATEGORY_WATER = "water"

CATEGORIES = (CATEGORY_ICE, CATEGORY_GAS, CATEGORY_WATER)


class Product(db.Model):
    """
    Product master data.

    CATEGORY-SPECIFIC ATTRIBUTES:
    Products are stored in one table and mapped polymorphically on `category`.
    Each subclass owns only the columns that mean something for it:
    - IceProduct: melt_rate_percent (expected daily melt)
    - GasProduct: deposit, outright price, empty cylinder stock
    - WaterProduct: nothing extra

    Callers never branch on nullable columns; they get the subclass back from
    any Product query.

    STOCK:
    `stock` is the current sellable quantity (full cylinders for gas). It may be
    fractional for ice. It is only changed through stock_service.apply_stock_change,
    which writes a StockLog row for every mutation.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category_active", "category", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(16), nullable=False, index=True)
    unit = db.Column(db.String(32), nullable=False, default="ชิ้น")
    barcode = db.Column(db.String(64), nullable=True, unique=True)
    image = db.Column(db.String(512), nullable=True)

    # Authoritative storage in satang
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_cents = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Float, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Float, nullable=False, default=5)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {
        "polymorphic_on": category,
        "version_id_col": version_id,
    }

    @property
    def is_gas(self) -> bool:
        return False

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.low_stock_threshold

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "unit": self.unit,
            "barcode": self.barcode,
            "image": self.image,
            "price_cents": self.price_cents,
            "cost_cents": self.cost_cents,
            "stock": self.stock,
            "low_stock_threshold": self.low_stock_threshold,
            "is_low_stock": self.is_low_stock,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class IceProduct(Product):
    # Expected daily melt as a percentage of opening stock; None means "use default"
    melt_rate_percent = db.Column(db.Float, nullable=True)

    __mapper_args__ = {"polymorphic_identity": CATEGORY_ICE}

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["melt_rate_percent"] = self.melt_rate_percent
        return data


class GasProduct(Product):
    """
    A gas cylinder product. `stock` counts full cylinders; `empty_stock` counts
    empties on hand (received through exchanges and returns, consumed by refills).
    """
    deposit_amount_cents = db.Column(db.Integer, nullable=True, default=0)
    outright_price_cents = db.Column(db.Integer, nullable=True)
    empty_stock = db.Column(db.Float, nullable=True, default=0)

    __mapper_args__ = {"polymorphic_identity": CATEGORY_GAS}

    @property
    def is_gas(self) -> bool:
        return True

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            "deposit_amount_cents": self.deposit_amount_cents or 0,
            "outright_price_cents": self.outright_price_cents,
            "empty_stock": self.empty_stock or 0,
        })
        return data


class WaterProduct(Product):
    __mapper_args__ = {"polymorphic_identity": CATEGORY_WATER}


PRODUCT_CLASSES = {
    CATEGORY_ICE: IceProduct,
    CATEGORY_GAS: GasProduct,
    CATEGORY_WATER: WaterProduct,
}


class Discount(db.Model):
    """
    Promotion applied at checkout.

    TYPES:
    - percent: value is a percentage of the cart subtotal (floored)
    - fixed: value is satang off, capped at the cart subtotal
    - buy_x_get_y: for every buy_quantity + get_quantity eligible units,
      get_quantity of the cheapest are free
    """
    __tablename__ = "discounts"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(16), nullable=False)
    value = db.Column(db.Integer, nullable=False, default=0)
    min_purchase_cents = db.Column(db.Integer, nullable=False, default=0)

    buy_quantity = db.Column(db.Integer, nullable=True)
    get_quantity = db.Column(db.Integer, nullable=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    start_date = db.Column(db.DateTime(timezone=True), nullable=True)
    end_date = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "value": self.value,
            "min_purchase_cents": self.min_purchase_cents,
            "buy_quantity": self.buy_quantity,
            "get_quantity": self.get_quantity,
            "product_id": self.product_id,
            "is_active": self.is_active,
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date),
            "created_at": to_utc_z(self.created_at),
        }
