"""
Stock tests.

Every change to a stock counter must leave a StockLog row whose
change_amount is the delta actually applied.
"""

import pytest

from icepos.models import StockLog, StockReceipt, GasProduct
from icepos.models.inventory import REASON_RECEIPT, REASON_ADJUSTMENT, STOCK_EMPTY
from icepos.services import stock_service, product_service
from icepos.validation import ValidationError, NotFoundError


class TestStockChanges:

    def test_receive_stock(self, db_session, ice, cashier):
        receipt = stock_service.receive_stock(ice.id, 50, cost_per_unit_cents=2400, user_id=cashier.id)
        db_session.refresh(ice)

        assert ice.stock == 150
        assert receipt.total_cost_cents == 120000
        log = db_session.query(StockLog).filter_by(product_id=ice.id).one()
        assert log.reason == REASON_RECEIPT
        assert log.change_amount == 50
        assert log.stock_after == 150

    def test_receive_fractional(self, db_session, ice):
        stock_service.receive_stock(ice.id, 2.5)
        db_session.refresh(ice)
        assert ice.stock == 102.5

    @pytest.mark.parametrize("qty", [0, -5, None, "ten"])
    def test_receive_rejects_bad_quantity(self, db_session, ice, qty):
        with pytest.raises(ValidationError):
            stock_service.receive_stock(ice.id, qty)
        assert db_session.query(StockReceipt).count() == 0

    def test_receive_unknown_product(self, db_session):
        with pytest.raises(NotFoundError):
            stock_service.receive_stock(404, 1)

    def test_adjust_sets_absolute_value(self, db_session, water):
        log = stock_service.adjust_stock(water.id, 40, note="นับใหม่")
        db_session.refresh(water)

        assert water.stock == 40
        assert log.change_amount == -8
        assert log.reason == REASON_ADJUSTMENT
        assert log.note == "นับใหม่"

    def test_adjust_empty_cylinders(self, db_session, gas):
        stock_service.adjust_stock(gas.id, 9, stock_type=STOCK_EMPTY)
        db_session.refresh(gas)
        assert gas.empty_stock == 9
        assert gas.stock == 20

    def test_empty_stock_only_for_gas(self, db_session, water):
        with pytest.raises(ValidationError):
            stock_service.adjust_stock(water.id, 3, stock_type=STOCK_EMPTY)
        assert db_session.query(StockLog).count() == 0

    def test_writes_are_committed(self, db_session, ice):
        stock_service.receive_stock(ice.id, 5)
        stock_service.adjust_stock(ice.id, 90)
        db_session.rollback()

        db_session.refresh(ice)
        assert ice.stock == 90
        assert db_session.query(StockLog).filter_by(product_id=ice.id).count() == 2

    def test_low_stock(self, db_session, ice, gas, water):
        stock_service.adjust_stock(gas.id, 2)
        low = stock_service.low_stock_products()
        assert [p.id for p in low] == [gas.id]

    def test_log_filters(self, db_session, ice, water):
        stock_service.receive_stock(ice.id, 5)
        stock_service.receive_stock(water.id, 5)
        stock_service.adjust_stock(water.id, 1)

        assert len(stock_service.list_stock_logs(product_id=water.id)) == 2
        assert len(stock_service.list_stock_logs(reason=REASON_RECEIPT)) == 2
        assert len(stock_service.list_stock_logs(limit=1)) == 1


class TestProductCatalogue:

    def test_create_gas_with_opening_stock(self, db_session, admin):
        product = product_service.create_product({
            "category": "gas",
            "name": "แก๊ส 48 กก.",
            "price_cents": 120000,
            "deposit_amount_cents": 300000,
            "stock": 4,
            "empty_stock": 2,
        }, user_id=admin.id)

        assert isinstance(product, GasProduct)
        assert product.stock == 4
        assert product.empty_stock == 2
        logs = db_session.query(StockLog).filter_by(product_id=product.id).all()
        assert sorted(log.change_amount for log in logs) == [2, 4]
        assert {log.note for log in logs} == {product_service.OPENING_STOCK_NOTE}

    def test_category_specific_fields_are_ignored_elsewhere(self, db_session):
        product = product_service.create_product({
            "category": "water",
            "name": "น้ำดื่มถัง",
            "price_cents": 1500,
            "deposit_amount_cents": 9999,
        })
        assert not hasattr(product, "deposit_amount_cents")

    def test_invalid_category(self, db_session):
        with pytest.raises(ValidationError):
            product_service.create_product({"category": "beer", "name": "x"})

    def test_name_required(self, db_session):
        with pytest.raises(ValidationError):
            product_service.create_product({"category": "ice", "name": "  "})

    def test_stock_is_not_editable(self, db_session, water):
        product_service.update_product(water.id, {"stock": 999, "price_cents": 1200})
        assert water.stock == 48
        assert water.price_cents == 1200

    def test_category_cannot_change(self, db_session, water):
        with pytest.raises(ValidationError):
            product_service.update_product(water.id, {"category": "ice"})

    def test_duplicate_barcode(self, db_session, gas):
        with pytest.raises(ValidationError):
            product_service.create_product({"category": "water", "name": "x", "barcode": "GAS15"})

    def test_search_and_barcode(self, db_session, ice, gas, water):
        assert product_service.find_by_barcode("GAS15").id == gas.id
        assert [p.id for p in product_service.list_products(category="ice")] == [ice.id]
        with pytest.raises(NotFoundError):
            product_service.find_by_barcode("NOPE")

    def test_delete_is_soft(self, db_session, water):
        product_service.delete_product(water.id)
        assert water.is_active is False
        assert product_service.list_products() == []
        assert len(product_service.list_products(include_inactive=True)) == 1
