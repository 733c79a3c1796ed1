"""
Ice melt-loss tests: the calculator, daily counts and the report.
"""

from datetime import date, datetime

import pytest

from icepos.models import StockLog, DailyStockCount
from icepos.models.inventory import REASON_MELT_LOSS, REASON_ADJUSTMENT
from icepos.services import melt_loss_service, sales_service
from icepos.services.melt_loss_service import (
    OUTCOME_LOSS,
    OUTCOME_ABNORMAL_LOSS,
    OUTCOME_SURPLUS,
    OUTCOME_EXACT,
)
from icepos.validation import ValidationError, NotFoundError


class TestComputeLoss:

    def test_normal_loss(self):
        result = melt_loss_service.compute_loss(100, 60, 38, 5, 2500)
        assert result.expected_stock == 40
        assert result.melt_loss == 2
        assert result.melt_loss_value_cents == 5000
        assert result.melt_percent == 2.0
        assert not result.is_abnormal
        assert result.outcome == OUTCOME_LOSS

    def test_abnormal_loss(self):
        result = melt_loss_service.compute_loss(100, 60, 30, 5, 2500)
        assert result.melt_loss == 10
        assert result.melt_percent == 10.0
        assert result.is_abnormal
        assert result.outcome == OUTCOME_ABNORMAL_LOSS

    def test_boundary_is_not_abnormal(self):
        result = melt_loss_service.compute_loss(100, 0, 95, 5, 2500)
        assert result.melt_percent == 5.0
        assert result.is_abnormal is False

    def test_just_above_boundary_is_abnormal(self):
        result = melt_loss_service.compute_loss(100000, 0, 94996, 5, 1)
        assert result.melt_percent == 5.0
        assert result.is_abnormal is True
        assert result.outcome == OUTCOME_ABNORMAL_LOSS

    @pytest.mark.parametrize("actual", [40, 41, 55])
    def test_count_at_or_above_expected_has_no_loss(self, actual):
        result = melt_loss_service.compute_loss(100, 60, actual, 0, 2500)
        assert result.melt_loss == 0
        assert result.is_abnormal is False
        assert result.outcome in (OUTCOME_EXACT, OUTCOME_SURPLUS)

    def test_surplus_is_reported(self):
        result = melt_loss_service.compute_loss(100, 60, 43, 5, 2500)
        assert result.surplus == 3
        assert result.outcome == OUTCOME_SURPLUS

    def test_zero_start_stock(self):
        result = melt_loss_service.compute_loss(0, 0, 0, 5, 2500)
        assert result.melt_percent == 0
        assert result.outcome == OUTCOME_EXACT

    def test_sold_more_than_start_floors_expected(self):
        result = melt_loss_service.compute_loss(10, 12, 0, 5, 2500)
        assert result.expected_stock == 0
        assert result.melt_loss == 0

    def test_percent_rounded_to_two_places(self):
        result = melt_loss_service.compute_loss(30, 0, 29, 5, 100)
        assert result.melt_percent == 3.33

    def test_negative_input_rejected(self):
        with pytest.raises(ValidationError):
            melt_loss_service.compute_loss(100, -1, 50, 5, 2500)


class TestDailyCount:

    def test_count_books_melt_loss(self, db_session, ice, cashier):
        row = melt_loss_service.record_daily_count(ice.id, 97, user_id=cashier.id, sold_quantity=0)
        db_session.refresh(ice)

        assert ice.stock == 97
        assert row.melt_loss == 3
        assert row.melt_loss_value_cents == 7500
        assert row.is_abnormal is False

        log = db_session.query(StockLog).filter_by(product_id=ice.id, reason=REASON_MELT_LOSS).one()
        assert log.change_amount == -3
        assert log.user_id == cashier.id

    def test_todays_sales_are_added_back(self, db_session, ice):
        sales_service.complete_sale([{"product_id": ice.id, "quantity": 20}], "transfer")
        row = melt_loss_service.record_daily_count(ice.id, 78)

        assert row.sold_quantity == 20
        assert row.system_stock == 100
        assert row.expected_stock == 80
        assert row.melt_loss == 2

    def test_surplus_count_is_an_adjustment(self, db_session, ice):
        row = melt_loss_service.record_daily_count(ice.id, 104, sold_quantity=0)
        db_session.refresh(ice)

        assert ice.stock == 104
        assert row.surplus == 4
        assert row.is_abnormal is False
        assert db_session.query(StockLog).filter_by(product_id=ice.id, reason=REASON_ADJUSTMENT).count() == 1

    def test_recount_replaces_the_day(self, db_session, ice):
        day = date(2026, 10, 1)
        melt_loss_service.record_daily_count(ice.id, 95, count_date=day, sold_quantity=0)
        melt_loss_service.record_daily_count(ice.id, 94, count_date=day, sold_quantity=0)

        rows = db_session.query(DailyStockCount).filter_by(product_id=ice.id).all()
        assert len(rows) == 1
        assert rows[0].actual_stock == 94
        assert rows[0].system_stock == 100
        assert rows[0].melt_loss == 6
        assert rows[0].melt_loss_value_cents == 15000
        assert rows[0].is_abnormal is True
        db_session.refresh(ice)
        assert ice.stock == 94

    def test_recount_keeps_recorded_sales(self, db_session, ice):
        sales_service.complete_sale([{"product_id": ice.id, "quantity": 20}], "transfer")
        first = melt_loss_service.record_daily_count(ice.id, 79)
        sales_service.complete_sale([{"product_id": ice.id, "quantity": 5}], "transfer")
        second = melt_loss_service.record_daily_count(ice.id, 70, sold_quantity=25)

        assert second.id == first.id
        assert second.system_stock == 100
        assert second.expected_stock == 75
        assert second.melt_loss == 5

    def test_sales_day_follows_shop_time(self, db_session, ice):
        sale = sales_service.complete_sale([{"product_id": ice.id, "quantity": 4}], "transfer")
        sale.created_at = datetime(2026, 10, 15, 18, 0)
        db_session.commit()

        assert melt_loss_service.sold_quantity_on(ice.id, date(2026, 10, 16)) == 4
        assert melt_loss_service.sold_quantity_on(ice.id, date(2026, 10, 15)) == 0

    def test_gas_products_are_not_counted(self, db_session, gas):
        with pytest.raises(NotFoundError):
            melt_loss_service.record_daily_count(gas.id, 10)

    def test_report(self, db_session, ice):
        melt_loss_service.record_daily_count(ice.id, 90, count_date=date(2026, 10, 1), sold_quantity=0)
        melt_loss_service.record_daily_count(ice.id, 89, count_date=date(2026, 10, 2), sold_quantity=0)

        report = melt_loss_service.melt_loss_report(date(2026, 10, 1), date(2026, 10, 2))
        assert report["count_records"] == 2
        assert report["total_melt_loss"] == 11
        assert report["abnormal_count"] == 1
        assert report["products"][0]["days"] == 2

    def test_report_rejects_inverted_range(self, db_session):
        with pytest.raises(ValidationError):
            melt_loss_service.melt_loss_report(date(2026, 10, 2), date(2026, 10, 1))
