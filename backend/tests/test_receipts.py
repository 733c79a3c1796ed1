"""
Receipt rendering tests (HTML template and 32-column text).
"""

from datetime import datetime

from icepos.services import receipt_service, sales_service
from icepos.services.receipt_service import ShopInfo, TEXT_WIDTH


SHOP = ShopInfo(name="ร้านเจ๊หงส์", address="12 ตลาดสด", phone="081-111-2222")


def _deposit_sale(db_session, ice, gas, customer):
    sale = sales_service.complete_sale(
        [
            {"product_id": ice.id, "quantity": 2},
            {"product_id": gas.id, "quantity": 1, "gas_sale_type": "deposit"},
        ],
        "cash",
        100000,
        customer_id=customer.id,
        points_used=30,
    )
    sale.created_at = datetime(2026, 10, 16, 3, 30)
    db_session.commit()
    return sale


class TestReceipts:

    def test_receipt_number(self, db_session, ice, gas, customer):
        sale = _deposit_sale(db_session, ice, gas, customer)
        assert receipt_service.receipt_number(sale) == f"{sale.id:06d}"

    def test_text_receipt(self, db_session, ice, gas, customer):
        sale = _deposit_sale(db_session, ice, gas, customer)
        text = receipt_service.render_receipt_text(sale, SHOP)

        assert f"ใบเสร็จ #{sale.id:06d}" in text
        assert "16/10/2026 10:30" in text
        assert "(มัดจำ +฿200.00)" in text
        assert "ค่ามัดจำถัง" in text
        assert "ใช้แต้ม 30" in text
        assert "฿600.00" in text
        assert "ลูกค้า: ป้าแดง" in text
        assert text.splitlines()[-1].strip() == "ขอบคุณที่ใช้บริการ"
        assert all(len(line) <= TEXT_WIDTH for line in text.splitlines() if line.isascii())

    def test_html_receipt(self, db_session, ice, gas, customer):
        sale = _deposit_sale(db_session, ice, gas, customer)
        html = receipt_service.render_receipt_html(sale, SHOP)

        assert "80mm" in html
        assert SHOP.name in html
        assert "window.print()" in html
        assert "รวมทั้งสิ้น" in html
        assert "฿600.00" in html

    def test_html_without_auto_print(self, db_session, water):
        sale = sales_service.complete_sale([{"product_id": water.id}], "transfer")
        html = receipt_service.render_receipt_html(sale, SHOP, auto_print=False)
        assert "window.print()" not in html
        assert "โอนเงิน" in html

    def test_shop_from_config(self, app):
        shop = receipt_service.shop_from_config()
        assert shop.name == "ร้านทดสอบ"
        assert shop.phone == "02-000-0000"
