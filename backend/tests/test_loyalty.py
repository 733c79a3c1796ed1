"""
Loyalty point tests.
"""

from icepos.models import Customer
from icepos.services import loyalty_service


def _customer(points=500):
    return Customer(name="ป้าแดง", points=points, total_spent_cents=0, visit_count=0)


class TestLoyalty:

    def test_points_are_floored(self):
        assert loyalty_service.calculate_points_earned(24570) == 245

    def test_no_points_on_zero(self):
        assert loyalty_service.calculate_points_earned(0) == 0

    def test_redeeming_100_points_takes_100_baht(self):
        assert loyalty_service.points_discount_cents(100) == 10000

    def test_max_redeemable_is_limited_by_purchase(self):
        assert loyalty_service.max_redeemable_points(_customer(500), 30000) == 300
        assert loyalty_service.max_redeemable_points(_customer(50), 30000) == 50
        assert loyalty_service.max_redeemable_points(None, 30000) == 0

    def test_valid_usage(self):
        result = loyalty_service.validate_points_usage(_customer(), 100, 30000)
        assert result.is_valid
        assert result.max_points == 300

    def test_more_than_balance(self):
        result = loyalty_service.validate_points_usage(_customer(50), 100, 30000)
        assert not result.is_valid
        assert "50" in result.error

    def test_more_than_purchase(self):
        result = loyalty_service.validate_points_usage(_customer(), 400, 30000)
        assert not result.is_valid

    def test_points_need_customer(self):
        assert not loyalty_service.validate_points_usage(None, 10, 30000).is_valid
        assert loyalty_service.validate_points_usage(None, 0, 30000).is_valid

    def test_apply_sale_updates_aggregates(self):
        customer = _customer(500)
        loyalty_service.apply_sale_to_customer(customer, 100, 200, 20000)
        assert customer.points == 600
        assert customer.total_spent_cents == 20000
        assert customer.visit_count == 1
