# Overview: Customer loyalty points: accrual, redemption limits, and post-sale customer updates.

from __future__ import annotations

from dataclasses import dataclass

from ..models import Customer


# 1 baht spent = 1 point; 1 point redeemed = 1 baht off
POINTS_PER_BAHT = 1
CENTS_PER_POINT = 100


@dataclass(frozen=True)
class PointsValidation:
    is_valid: bool
    max_points: int
    error: str | None = None


def calculate_points_earned(total_cents: int) -> int:
    """floor(total in baht) at one point per baht."""
    if total_cents <= 0:
        return 0
    return (total_cents // 100) * POINTS_PER_BAHT


def points_discount_cents(points: int) -> int:
    if points <= 0:
        return 0
    return points * CENTS_PER_POINT


def max_redeemable_points(customer: Customer | None, purchase_total_cents: int) -> int:
    if customer is None:
        return 0
    return max(0, min(customer.points, purchase_total_cents // CENTS_PER_POINT))


def validate_points_usage(
    customer: Customer | None,
    points_to_use: int,
    purchase_total_cents: int,
) -> PointsValidation:
    max_points = max_redeemable_points(customer, purchase_total_cents)

    if customer is None:
        if points_to_use:
            return PointsValidation(False, 0, "กรุณาเลือกลูกค้าก่อนใช้แต้ม")
        return PointsValidation(True, 0)

    if points_to_use < 0:
        return PointsValidation(False, max_points, "จำนวนแต้มต้องไม่ติดลบ")

    if points_to_use > customer.points:
        return PointsValidation(False, max_points, f"แต้มไม่เพียงพอ (มี {customer.points} แต้ม)")

    if points_to_use * CENTS_PER_POINT > purchase_total_cents:
        return PointsValidation(
            False,
            max_points,
            f"ใช้แต้มได้ไม่เกินยอดซื้อ ({purchase_total_cents // CENTS_PER_POINT} แต้ม)",
        )

    return PointsValidation(True, max_points)


def new_points_balance(current: int, used: int, earned: int) -> int:
    return max(0, current - used + earned)


def apply_sale_to_customer(customer: Customer, points_used: int, points_earned: int, total_cents: int) -> Customer:
    """Update the denormalized loyalty aggregates; the caller commits."""
    customer.points = new_points_balance(customer.points, points_used, points_earned)
    customer.total_spent_cents = (customer.total_spent_cents or 0) + total_cents
    customer.visit_count = (customer.visit_count or 0) + 1
    return customer
