"""
Payment tests: cash sufficiency, change, and non-cash tenders.
"""

import pytest

from icepos.models import Customer
from icepos.services import payment_service
from icepos.services.payment_service import STATUS_CHANGE, STATUS_EXACT, STATUS_INSUFFICIENT
from icepos.validation import ValidationError, MissingReferenceError, BusinessRuleError


class TestValidatePayment:

    def test_change_due(self):
        result = payment_service.validate_payment(100000, 85000)
        assert result.is_valid
        assert result.change_cents == 15000
        assert result.status == STATUS_CHANGE

    def test_shortfall(self):
        result = payment_service.validate_payment(50000, 85000)
        assert not result.is_valid
        assert result.change_cents == -35000
        assert result.status == STATUS_INSUFFICIENT
        assert "350.00" in result.message

    def test_exact(self):
        result = payment_service.validate_payment(85000, 85000)
        assert result.is_valid
        assert result.change_cents == 0
        assert result.status == STATUS_EXACT

    def test_quick_amount_never_negative(self):
        assert payment_service.add_quick_amount(10000, 50000) == 60000
        assert payment_service.add_quick_amount(10000, -50000) == 0

    def test_format_baht(self):
        assert payment_service.format_baht(123450) == "฿1,234.50"


class TestResolvePayment:

    def test_cash(self):
        resolved = payment_service.resolve_payment("cash", 100000, 85000)
        assert resolved.payment_cents == 100000
        assert resolved.change_cents == 15000

    def test_cash_short_is_rejected(self):
        with pytest.raises(BusinessRuleError):
            payment_service.resolve_payment("cash", 50000, 85000)

    def test_cash_needs_amount(self):
        with pytest.raises(ValidationError):
            payment_service.resolve_payment("cash", None, 85000)

    def test_transfer_records_due(self):
        resolved = payment_service.resolve_payment("transfer", None, 85000)
        assert resolved.payment_cents == 85000
        assert resolved.change_cents == 0

    def test_credit_requires_customer(self):
        with pytest.raises(MissingReferenceError):
            payment_service.resolve_payment("credit", None, 85000)

    def test_credit_with_customer(self):
        resolved = payment_service.resolve_payment("credit", None, 85000, Customer(name="ลุงหมี"))
        assert resolved.payment_cents == 85000

    def test_unknown_method(self):
        with pytest.raises(ValidationError):
            payment_service.resolve_payment("bitcoin", 100, 100)
