"""
Gas cylinder tests.

Verifies:
- Sale-type pricing (exchange / deposit / outright)
- Stock movements for each sale type
- Deposit returns: refund amount, empty stock, deposit_return log
- Refills and the outstanding-deposit ledger
"""

import pytest

from icepos.models import GasProduct, IceProduct, StockLog, OutstandingCylinder
from icepos.models.inventory import (
    STOCK_FULL,
    STOCK_EMPTY,
    REASON_DEPOSIT_RETURN,
    REASON_REFILL,
    OUTSTANDING_PENDING,
    OUTSTANDING_RETURNED,
)
from icepos.services import gas_service, sales_service
from icepos.services.gas_service import SALE_TYPE_EXCHANGE, SALE_TYPE_DEPOSIT, SALE_TYPE_OUTRIGHT
from icepos.validation import ValidationError, NotFoundError, BusinessRuleError


def _cylinder(**overrides):
    fields = dict(id=7, name="แก๊ส 15 กก.", price_cents=35000, deposit_amount_cents=20000, outright_price_cents=None)
    fields.update(overrides)
    return GasProduct(**fields)


# =============================================================================
# CLASSIFICATION
# =============================================================================


class TestClassifySale:

    def test_exchange_charges_gas_only(self):
        result = gas_service.classify_sale(_cylinder(), SALE_TYPE_EXCHANGE)
        assert result.total_cents == 35000
        assert result.deposit_cents == 0
        assert not result.creates_liability

    def test_deposit_adds_deposit(self):
        result = gas_service.classify_sale(_cylinder(), SALE_TYPE_DEPOSIT)
        assert result.price_cents == 35000
        assert result.deposit_cents == 20000
        assert result.total_cents == 55000
        assert result.creates_liability

    def test_outright_uses_configured_price(self):
        result = gas_service.classify_sale(_cylinder(outright_price_cents=190000), SALE_TYPE_OUTRIGHT)
        assert result.total_cents == 190000
        assert result.deposit_cents == 0

    def test_outright_without_price_adds_premium(self):
        result = gas_service.classify_sale(_cylinder(), SALE_TYPE_OUTRIGHT, premium_cents=50000)
        assert result.total_cents == 35000 + 20000 + 50000

    def test_outright_default_premium_is_500_baht(self):
        assert gas_service.outright_unit_price_cents(_cylinder()) == 105000

    def test_quantity_scales_price_and_deposit(self):
        result = gas_service.classify_sale(_cylinder(), SALE_TYPE_DEPOSIT, 2)
        assert result.price_cents == 70000
        assert result.deposit_cents == 40000

    def test_exchange_moves_full_and_empty(self):
        result = gas_service.classify_sale(_cylinder(), SALE_TYPE_EXCHANGE, 2)
        changes = {c.stock_type: c.amount for c in result.stock_changes}
        assert changes == {STOCK_FULL: -2, STOCK_EMPTY: 2}

    @pytest.mark.parametrize("mode", [SALE_TYPE_DEPOSIT, SALE_TYPE_OUTRIGHT])
    def test_deposit_and_outright_only_take_full(self, mode):
        result = gas_service.classify_sale(_cylinder(), mode)
        assert [(c.stock_type, c.amount) for c in result.stock_changes] == [(STOCK_FULL, -1)]

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValidationError):
            gas_service.classify_sale(_cylinder(), "borrow")

    def test_non_gas_product_rejected(self):
        with pytest.raises(ValidationError):
            gas_service.classify_sale(IceProduct(id=1, name="น้ำแข็ง", price_cents=4000), SALE_TYPE_EXCHANGE)

    def test_labels(self):
        assert gas_service.sale_type_label(SALE_TYPE_EXCHANGE) == "แลกถัง"
        assert gas_service.sale_type_label(SALE_TYPE_DEPOSIT) == "มัดจำ"
        assert gas_service.sale_type_label(SALE_TYPE_OUTRIGHT) == "ซื้อขาด"


# =============================================================================
# RETURNS
# =============================================================================


class TestProcessReturn:

    def test_return_three_cylinders(self, db_session, gas, cashier):
        result = gas_service.process_return(gas.id, 3, user_id=cashier.id)

        assert result.refund_cents == 60000
        assert result.empty_stock == 8

        log = db_session.get(StockLog, result.log_id)
        assert log.reason == REASON_DEPOSIT_RETURN
        assert log.stock_type == STOCK_EMPTY
        assert log.change_amount == 3
        assert log.stock_after == 8

    def test_return_does_not_touch_full_stock(self, db_session, gas):
        gas_service.process_return(gas.id, 1)
        db_session.refresh(gas)
        assert gas.stock == 20

    def test_return_resolves_outstanding(self, db_session, gas, customer):
        sale = sales_service.complete_sale(
            [{"product_id": gas.id, "quantity": 2, "gas_sale_type": SALE_TYPE_DEPOSIT}],
            "transfer",
            customer_id=customer.id,
        )
        outstanding = db_session.query(OutstandingCylinder).filter_by(sale_id=sale.id).one()

        result = gas_service.process_return(gas.id, 2, outstanding_id=outstanding.id)

        db_session.refresh(outstanding)
        assert result.refund_cents == 40000
        assert result.outstanding_id == outstanding.id
        assert outstanding.status == OUTSTANDING_RETURNED
        assert outstanding.returned_at is not None

    def test_refund_uses_deposit_charged_at_sale(self, db_session, gas):
        sale = sales_service.complete_sale(
            [{"product_id": gas.id, "quantity": 1, "gas_sale_type": SALE_TYPE_DEPOSIT}],
            "transfer",
        )
        outstanding = db_session.query(OutstandingCylinder).filter_by(sale_id=sale.id).one()
        gas.deposit_amount_cents = 25000
        db_session.commit()

        result = gas_service.process_return(gas.id, 1, outstanding_id=outstanding.id)
        assert result.refund_cents == 20000

    def test_outstanding_cannot_be_returned_twice(self, db_session, gas):
        sale = sales_service.complete_sale(
            [{"product_id": gas.id, "quantity": 1, "gas_sale_type": SALE_TYPE_DEPOSIT}],
            "transfer",
        )
        outstanding = db_session.query(OutstandingCylinder).filter_by(sale_id=sale.id).one()
        gas_service.process_return(gas.id, 1, outstanding_id=outstanding.id)

        with pytest.raises(BusinessRuleError):
            gas_service.process_return(gas.id, 1, outstanding_id=outstanding.id)

    def test_quantity_must_match_outstanding(self, db_session, gas):
        sale = sales_service.complete_sale(
            [{"product_id": gas.id, "quantity": 2, "gas_sale_type": SALE_TYPE_DEPOSIT}],
            "transfer",
        )
        outstanding = db_session.query(OutstandingCylinder).filter_by(sale_id=sale.id).one()
        with pytest.raises(ValidationError):
            gas_service.process_return(gas.id, 1, outstanding_id=outstanding.id)

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFoundError):
            gas_service.process_return(9999, 1)

    def test_non_gas_product_is_not_found(self, db_session, ice):
        with pytest.raises(NotFoundError):
            gas_service.process_return(ice.id, 1)

    @pytest.mark.parametrize("qty", [0, -1, "abc"])
    def test_invalid_quantity(self, db_session, gas, qty):
        with pytest.raises(ValidationError):
            gas_service.process_return(gas.id, qty)


# =============================================================================
# REFILLS AND OUTSTANDING LEDGER
# =============================================================================


class TestRefillAndOutstanding:

    def test_refill_moves_empties_to_full(self, db_session, gas):
        logs = gas_service.process_refill(gas.id, 4)
        db_session.refresh(gas)

        assert gas.empty_stock == 1
        assert gas.stock == 24
        assert [log.reason for log in logs] == [REASON_REFILL, REASON_REFILL]
        assert sorted(log.change_amount for log in logs) == [-4, 4]

    def test_refill_needs_enough_empties(self, db_session, gas):
        with pytest.raises(BusinessRuleError):
            gas_service.process_refill(gas.id, 6)

    def test_outstanding_summary(self, db_session, gas, customer):
        sales_service.complete_sale(
            [{"product_id": gas.id, "quantity": 2, "gas_sale_type": SALE_TYPE_DEPOSIT}],
            "credit",
            customer_id=customer.id,
        )
        sales_service.complete_sale(
            [{"product_id": gas.id, "quantity": 1, "gas_sale_type": SALE_TYPE_DEPOSIT}],
            "transfer",
        )

        summary = gas_service.outstanding_summary()
        assert summary["pending_count"] == 2
        assert summary["total_quantity"] == 3
        assert summary["total_liability_cents"] == 60000
        assert summary["products"][0]["product_id"] == gas.id

        by_customer = gas_service.list_outstanding(customer_id=customer.id)
        assert len(by_customer) == 1
        assert by_customer[0].status == OUTSTANDING_PENDING
