"""
Flask CLI command tests (system, users, backup, queue groups).
"""

import json

from icepos.cli import STARTER_PRODUCTS
from icepos.models import Product, User
from icepos.services import offline_queue_service


class TestSystemInit:

    def test_creates_admin_and_catalogue(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "init", "--admin-name", "เจ้าของร้าน"])

        assert result.exit_code == 0, result.output
        assert "PASS Created admin user: เจ้าของร้าน" in result.output
        assert db_session.query(User).filter_by(role="admin").count() == 1
        assert db_session.query(Product).count() == len(STARTER_PRODUCTS)

    def test_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()
        runner.invoke(args=["system", "init"])
        result = runner.invoke(args=["system", "init"])

        assert result.exit_code == 0, result.output
        assert "Using existing admin user" in result.output
        assert "SKIP Products already exist" in result.output
        assert db_session.query(Product).count() == len(STARTER_PRODUCTS)

    def test_no_products(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["system", "init", "--no-products"])
        assert result.exit_code == 0, result.output
        assert db_session.query(Product).count() == 0


class TestUsersList:

    def test_lists_users(self, app, cashier):
        result = app.test_cli_runner().invoke(args=["users", "list"])
        assert result.exit_code == 0
        assert "สมชาย" in result.output

    def test_empty(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["users", "list"])
        assert "No users found." in result.output


class TestBackupCommands:

    def test_export(self, app, ice, tmp_path):
        out = tmp_path / "backup.json"
        result = app.test_cli_runner().invoke(args=["backup", "export", "--out", str(out)])

        assert result.exit_code == 0, result.output
        bundle = json.loads(out.read_text(encoding="utf-8"))
        assert bundle["version"] == "2.0"
        assert bundle["data"]["products"][0]["name"] == "น้ำแข็งหลอด"

    def test_import(self, app, db_session, tmp_path):
        path = tmp_path / "restore.json"
        path.write_text(json.dumps({
            "version": "2.0",
            "data": {"customers": [{"name": "ลุงมา"}]},
        }), encoding="utf-8")

        result = app.test_cli_runner().invoke(args=["backup", "import", str(path)])
        assert result.exit_code == 0, result.output
        assert "1 customers" in result.output

    def test_import_rejects_garbage(self, app, db_session, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        result = app.test_cli_runner().invoke(args=["backup", "import", str(path)])
        assert result.exit_code != 0
        assert "Not a backup file" in result.output


class TestQueueCommands:

    def test_status_and_replay(self, app, water):
        offline_queue_service.enqueue("sale", {
            "items": [{"product_id": water.id}],
            "payment_method": "transfer",
        })
        runner = app.test_cli_runner()

        assert "Pending: 1" in runner.invoke(args=["queue", "status"]).output
        result = runner.invoke(args=["queue", "replay"])
        assert result.exit_code == 0, result.output
        assert "Pending: 0" in runner.invoke(args=["queue", "status"]).output
