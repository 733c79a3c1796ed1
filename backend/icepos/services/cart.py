# Overview: In-memory order aggregation (cart lines and derived totals) used by checkout.

from __future__ import annotations

from dataclasses import dataclass, field

from ..extensions import db
from ..models import Product, GasProduct
from ..validation import ValidationError, NotFoundError, coerce_quantity
from .gas_service import classify_sale, GasSaleResult, GAS_SALE_TYPES


@dataclass(frozen=True)
class CartLine:
    product: Product
    quantity: float
    mode: str | None = None

    @property
    def key(self) -> tuple[int, str | None]:
        return (self.product.id, self.mode)

    @property
    def gas_result(self) -> GasSaleResult | None:
        if isinstance(self.product, GasProduct):
            return classify_sale(self.product, self.mode, self.quantity)
        return None

    @property
    def unit_price_cents(self) -> int:
        gas = self.gas_result
        return gas.unit_price_cents if gas else self.product.price_cents

    @property
    def subtotal_cents(self) -> int:
        gas = self.gas_result
        if gas:
            return gas.price_cents
        return int(round(self.product.price_cents * self.quantity))

    @property
    def deposit_cents(self) -> int:
        gas = self.gas_result
        return gas.deposit_cents if gas else 0


@dataclass
class Cart:
    """
    Lines selected before checkout.

    A line is identified by (product, mode): adding the same gas cylinder as
    exchange and as deposit gives two lines. Gas products must name a mode;
    other products ignore it.
    """
    lines: list[CartLine] = field(default_factory=list)

    def add_line(self, product: Product, mode: str | None = None, quantity=1) -> CartLine:
        qty = coerce_quantity(quantity, "quantity", allow_zero=False)
        if isinstance(product, GasProduct):
            if mode is None:
                raise ValidationError(f"Gas product {product.name} requires a sale type")
            if mode not in GAS_SALE_TYPES:
                raise ValidationError(f"Invalid gas sale type: {mode}")
        else:
            mode = None

        for i, line in enumerate(self.lines):
            if line.key == (product.id, mode):
                updated = CartLine(product=line.product, quantity=line.quantity + qty, mode=mode)
                self.lines[i] = updated
                return updated

        line = CartLine(product=product, quantity=qty, mode=mode)
        self.lines.append(line)
        return line

    def remove_line(self, product_id: int, mode: str | None = None) -> None:
        self.lines = [line for line in self.lines if line.key != (product_id, mode)]

    def set_quantity(self, product_id: int, quantity, mode: str | None = None) -> None:
        """Replace a line's quantity; zero or less removes the line."""
        if quantity is not None and not isinstance(quantity, bool) and float(quantity) <= 0:
            self.remove_line(product_id, mode)
            return
        qty = coerce_quantity(quantity, "quantity", allow_zero=False)
        for i, line in enumerate(self.lines):
            if line.key == (product_id, mode):
                self.lines[i] = CartLine(product=line.product, quantity=qty, mode=mode)
                return
        raise NotFoundError(f"Product {product_id} is not in the cart")

    def clear(self) -> None:
        self.lines = []

    def is_empty(self) -> bool:
        return not self.lines

    def items_count(self) -> float:
        return sum(line.quantity for line in self.lines)

    def subtotal_cents(self) -> int:
        return sum(line.subtotal_cents for line in self.lines)

    def deposit_total_cents(self) -> int:
        return sum(line.deposit_cents for line in self.lines)

    def grand_total_cents(self, points_discount_cents: int = 0, promotional_discount_cents: int = 0) -> int:
        total = self.subtotal_cents() + self.deposit_total_cents()
        return max(0, total - points_discount_cents - promotional_discount_cents)

    def to_dict(self) -> dict:
        return {
            "lines": [
                {
                    "product_id": line.product.id,
                    "product_name": line.product.name,
                    "quantity": line.quantity,
                    "mode": line.mode,
                    "unit_price_cents": line.unit_price_cents,
                    "subtotal_cents": line.subtotal_cents,
                    "deposit_cents": line.deposit_cents,
                }
                for line in self.lines
            ],
            "items_count": self.items_count(),
            "subtotal_cents": self.subtotal_cents(),
            "deposit_total_cents": self.deposit_total_cents(),
            "grand_total_cents": self.grand_total_cents(),
        }

    @classmethod
    def from_payload(cls, items: list[dict] | None) -> "Cart":
        """
        Build a cart from request JSON:
        [{"product_id": 1, "quantity": 2, "gas_sale_type": "deposit"}, ...]
        """
        if not items:
            raise ValidationError("items must be a non-empty list")

        cart = cls()
        for raw in items:
            if not isinstance(raw, dict) or raw.get("product_id") is None:
                raise ValidationError("each item requires product_id")
            product = (
                db.session.query(Product)
                .filter_by(id=raw["product_id"], is_active=True)
                .first()
            )
            if product is None:
                raise NotFoundError(f"Product {raw['product_id']} not found")
            cart.add_line(
                product,
                mode=raw.get("gas_sale_type") or raw.get("mode"),
                quantity=raw.get("quantity", 1),
            )
        return cart
