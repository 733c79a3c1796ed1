"""
Reporting tests: profit, sales summary, top products, daily trend.
"""

from datetime import date, datetime

import pytest

from icepos.services import reporting_service, sales_service
from icepos.validation import ValidationError


def _sale(db_session, items, method="transfer", when=None, **kwargs):
    sale = sales_service.complete_sale(items, method, **kwargs)
    if when is not None:
        sale.created_at = when
        db_session.commit()
    return sale


class TestProfitReport:

    def test_deposits_are_not_revenue(self, db_session, ice, gas):
        _sale(db_session, [
            {"product_id": ice.id, "quantity": 2},
            {"product_id": gas.id, "quantity": 1, "gas_sale_type": "deposit"},
        ])

        report = reporting_service.profit_report()

        assert report["total_revenue_cents"] == 43000
        assert report["total_cost_cents"] == 2 * 2500 + 30000
        assert report["total_profit_cents"] == 8000
        assert report["profit_margin"] == round(8000 / 43000 * 100, 2)
        assert report["transaction_count"] == 1
        assert report["category_breakdown"]["gas"]["profit_cents"] == 5000
        assert report["category_breakdown"]["ice"]["quantity"] == 2

    def test_cost_uses_snapshot(self, db_session, water):
        _sale(db_session, [{"product_id": water.id, "quantity": 10}])
        water.cost_cents = 900
        db_session.commit()

        report = reporting_service.profit_report()
        assert report["total_cost_cents"] == 6000

    def test_range(self, db_session, water):
        _sale(db_session, [{"product_id": water.id}], when=datetime(2026, 9, 30, 23, 0))
        _sale(db_session, [{"product_id": water.id}], when=datetime(2026, 10, 1, 8, 0))

        report = reporting_service.profit_report(datetime(2026, 10, 1), datetime(2026, 10, 2))
        assert report["transaction_count"] == 1
        assert report["period"]["start"] == "2026-10-01T00:00:00Z"

    def test_top_profitable(self, db_session, ice, water):
        _sale(db_session, [{"product_id": ice.id, "quantity": 1}, {"product_id": water.id, "quantity": 1}])
        report = reporting_service.profit_report()
        assert [p["product_id"] for p in report["top_profitable_products"]] == [ice.id, water.id]

    def test_inverted_range(self, db_session):
        with pytest.raises(ValidationError):
            reporting_service.profit_report(datetime(2026, 10, 2), datetime(2026, 10, 1))


class TestSalesReport:

    def test_summary_and_filters(self, db_session, ice, water, customer):
        _sale(db_session, [{"product_id": ice.id, "quantity": 1}])
        _sale(db_session, [{"product_id": water.id, "quantity": 2}], "credit", customer_id=customer.id)

        report = reporting_service.sales_report()
        summary = report["summary"]
        assert summary["transaction_count"] == 2
        assert summary["total_sales_cents"] == 6000
        assert summary["average_transaction_cents"] == 3000
        assert summary["payment_method_breakdown"]["credit"] == {"count": 1, "total_cents": 2000}

        assert reporting_service.sales_report(product_id=ice.id)["summary"]["transaction_count"] == 1
        assert reporting_service.sales_report(customer_id=customer.id)["sales"][0]["customer_name"] == customer.name

    def test_top_selling(self, db_session, ice, water):
        _sale(db_session, [{"product_id": water.id, "quantity": 3}])
        _sale(db_session, [{"product_id": ice.id, "quantity": 1}, {"product_id": water.id, "quantity": 2}])

        top = reporting_service.top_selling_products()
        assert [row["product_id"] for row in top] == [water.id, ice.id]
        assert top[0]["total_quantity"] == 5
        assert top[0]["total_revenue_cents"] == 5000
        assert top[0]["category"] == "water"

        assert len(reporting_service.top_selling_products(limit=1)) == 1


class TestTrend:

    def test_zero_filled_days(self, db_session, water):
        _sale(db_session, [{"product_id": water.id, "quantity": 2}], when=datetime(2026, 10, 14, 10, 0))
        _sale(db_session, [{"product_id": water.id, "quantity": 1}], when=datetime(2026, 10, 16, 10, 0))

        trend = reporting_service.sales_trend(7, today=date(2026, 10, 16))

        assert len(trend) == 7
        assert trend[0]["date"] == "2026-10-10"
        assert trend[-1] == {"date": "2026-10-16", "total_cents": 1000, "count": 1, "profit_cents": 400}
        assert trend[4]["total_cents"] == 2000
        assert trend[5]["count"] == 0

    def test_days_must_be_positive(self, db_session):
        with pytest.raises(ValidationError):
            reporting_service.sales_trend(0)

    def test_today(self, db_session, water):
        _sale(db_session, [{"product_id": water.id}], when=datetime(2026, 10, 16, 12, 0))
        summary = reporting_service.today_summary(date(2026, 10, 16))
        assert summary["revenue_cents"] == 1000
        assert summary["profit_cents"] == 400
        assert summary["transaction_count"] == 1
