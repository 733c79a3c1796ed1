# Overview: Payment validation and change computation for checkout.

"""
Payment Service

Cash is the only tender that is validated here: tendered must cover the
amount due, and the difference is the change. Transfer and credit bypass the
check and are recorded as tendered == due, change == 0. A credit sale must be
bound to a customer.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..models.sales import PAYMENT_CASH, PAYMENT_TRANSFER, PAYMENT_CREDIT, PAYMENT_METHODS
from ..validation import ValidationError, MissingReferenceError, BusinessRuleError


STATUS_INSUFFICIENT = "insufficient"
STATUS_CHANGE = "change"
STATUS_EXACT = "exact"


@dataclass(frozen=True)
class PaymentValidation:
    is_valid: bool
    change_cents: int
    status: str
    message: str

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "change_cents": self.change_cents,
            "status": self.status,
            "message": self.message,
        }


@dataclass(frozen=True)
class ResolvedPayment:
    method: str
    payment_cents: int
    change_cents: int


def format_baht(cents: int) -> str:
    return f"฿{cents / 100:,.2f}"


def validate_payment(tendered_cents: int, due_cents: int) -> PaymentValidation:
    """Sufficiency and change (negative = shortfall) for a cash tender."""
    change = tendered_cents - due_cents
    if change < 0:
        return PaymentValidation(False, change, STATUS_INSUFFICIENT, f"เงินไม่พอ ขาดอีก {format_baht(-change)}")
    if change == 0:
        return PaymentValidation(True, 0, STATUS_EXACT, "รับเงินพอดี")
    return PaymentValidation(True, change, STATUS_CHANGE, f"เงินทอน {format_baht(change)}")


def add_quick_amount(current_cents: int, increment_cents: int) -> int:
    """Quick-amount buttons on the tender screen; the display never goes below zero."""
    return max(0, current_cents + increment_cents)


def resolve_payment(method: str, tendered_cents: int | None, due_cents: int, customer=None) -> ResolvedPayment:
    """
    Settle the tender for a sale.

    Raises:
        ValidationError: unknown payment method, or cash without an amount
        MissingReferenceError: credit sale without a customer
        BusinessRuleError: cash tendered is less than the amount due
    """
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"Invalid payment method: {method}. Must be one of {list(PAYMENT_METHODS)}")

    if method == PAYMENT_CREDIT and customer is None:
        raise MissingReferenceError("A customer is required for credit sales")

    if method in (PAYMENT_TRANSFER, PAYMENT_CREDIT):
        return ResolvedPayment(method=method, payment_cents=due_cents, change_cents=0)

    if tendered_cents is None:
        raise ValidationError("payment_cents is required for cash sales")

    result = validate_payment(tendered_cents, due_cents)
    if not result.is_valid:
        raise BusinessRuleError(result.message)
    return ResolvedPayment(method=PAYMENT_CASH, payment_cents=tendered_cents, change_cents=result.change_cents)
