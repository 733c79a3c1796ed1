"""
Backup tests: bundle export, CSV export, import with partial failure, reminder.
"""

import csv
import io
from datetime import datetime, timedelta

import pytest

from icepos.models import Product, Customer, Discount, StockLog
from icepos.services import backup_service, sales_service, settings_service
from icepos.validation import ValidationError


NOW = datetime(2026, 10, 15, 9, 0)


class TestCreateBackup:

    def test_bundle_shape(self, db_session, ice, gas, customer, admin):
        sales_service.complete_sale([{"product_id": ice.id, "quantity": 2}], "transfer", customer_id=customer.id)

        bundle = backup_service.create_backup(exported_by_user_id=admin.id, now=NOW)

        assert bundle["version"] == "2.0"
        assert bundle["exportDate"] == "2026-10-15T09:00:00Z"
        assert bundle["exportedBy"] == admin.name
        assert set(bundle["data"]) == {"products", "sales", "customers", "stockLogs", "stockReceipts", "discounts"}
        assert bundle["summary"]["productsCount"] == 2
        assert bundle["summary"]["salesCount"] == 1
        assert bundle["summary"]["customersCount"] == 1
        assert bundle["summary"]["totalRevenueCents"] == 8000
        assert "dateRange" not in bundle["summary"]

    def test_records_backup_time(self, db_session):
        backup_service.create_backup(now=NOW)
        assert backup_service.last_backup_at() == NOW

    def test_include_and_range(self, db_session, ice):
        bundle = backup_service.create_backup(
            include=("products",),
            start=datetime(2026, 10, 1),
            now=NOW,
        )
        assert list(bundle["data"]) == ["products"]
        assert bundle["summary"]["dateRange"] == {"start": "2026-10-01T00:00:00Z", "end": "now"}


class TestCsvExport:

    def test_starts_with_bom(self, db_session, ice):
        body = backup_service.export_csv("products")
        assert body.startswith("\ufeff")

    def test_products_in_baht(self, db_session, gas):
        rows = list(csv.reader(io.StringIO(backup_service.export_csv("products")[1:])))
        assert rows[0] == backup_service.CSV_HEADERS["products"]
        assert rows[1][1] == gas.name
        assert rows[1][4] == "350.00"
        assert rows[1][8] == "200.00"

    def test_sales_and_logs(self, db_session, water, cashier):
        sales_service.complete_sale([{"product_id": water.id, "quantity": 3}], "transfer", user_id=cashier.id)

        sales = list(csv.reader(io.StringIO(backup_service.export_csv("sales")[1:])))
        assert len(sales) == 2
        assert sales[1][9] == cashier.name
        assert sales[1][11] == f"{water.name}x3"

        logs = list(csv.reader(io.StringIO(backup_service.export_csv("stock_logs")[1:])))
        assert logs[1][4] == "-3"

    def test_unknown_entity(self, db_session):
        with pytest.raises(ValidationError):
            backup_service.export_csv("passwords")


class TestImport:

    def test_round_trip(self, db_session, ice, gas, customer):
        bundle = backup_service.create_backup(now=NOW)
        gas_id, customer_id = gas.id, customer.id
        for model in (StockLog, Product, Customer):
            db_session.query(model).delete()
        db_session.commit()
        db_session.expunge_all()

        result = backup_service.import_backup(bundle)

        assert result.success
        assert result.errors == []
        assert result.imported == {"products": 2, "customers": 1, "discounts": 0}
        restored = db_session.get(Product, gas_id)
        assert restored.empty_stock == 5
        assert restored.deposit_amount_cents == 20000
        assert db_session.get(Customer, customer_id).points == 500

    def test_partial_failure(self, db_session):
        bundle = {
            "version": "2.0",
            "data": {
                "products": [
                    {"category": "ice", "name": "น้ำแข็งก้อน", "price_cents": 3000, "stock": 10},
                    {"category": "ice", "name": "", "price_cents": 3000},
                    {"category": "beer", "name": "เบียร์"},
                ],
                "customers": [{"name": "ลุงมา", "points": 20}],
                "discounts": [{"name": "ลด 5%", "type": "percent", "value": 5}],
            },
        }

        result = backup_service.import_backup(bundle)

        assert result.success
        assert result.imported == {"products": 1, "customers": 1, "discounts": 1}
        assert len(result.errors) == 2
        product = db_session.query(Product).one()
        assert product.stock == 10
        assert db_session.query(StockLog).filter_by(note=backup_service.IMPORT_NOTE).count() == 1
        assert db_session.query(Discount).count() == 1

    def test_missing_version(self, db_session):
        result = backup_service.import_backup({"data": {}})
        assert not result.success
        assert result.errors

    def test_nothing_imported_is_failure(self, db_session):
        result = backup_service.import_backup({"version": "2.0", "data": {"customers": [{"name": ""}]}})
        assert not result.success
        assert result.to_dict()["imported"]["customers"] == 0


class TestReminder:

    def test_no_backup_yet(self, db_session):
        assert backup_service.should_show_backup_reminder(NOW)

    def test_recent_backup(self, db_session):
        backup_service.create_backup(now=NOW - timedelta(days=6))
        assert not backup_service.should_show_backup_reminder(NOW)

    def test_week_old_backup(self, db_session):
        backup_service.create_backup(now=NOW - timedelta(days=7))
        assert backup_service.should_show_backup_reminder(NOW)

    def test_dismiss_snoozes_for_four_days(self, db_session):
        backup_service.dismiss_backup_reminder(NOW)
        assert not backup_service.should_show_backup_reminder(NOW + timedelta(days=3))
        assert backup_service.should_show_backup_reminder(NOW + timedelta(days=4))

    def test_settings_are_stored(self, db_session):
        backup_service.dismiss_backup_reminder(NOW)
        assert settings_service.get_setting(settings_service.KEY_BACKUP_REMINDER_DISMISSED_AT) == "2026-10-15T09:00:00Z"
