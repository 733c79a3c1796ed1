# Overview: Receipt rendering: 80mm printable HTML (Jinja2 template) and a 32-column text fallback.

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from flask import current_app, render_template

from ..models import Sale
from ..models.sales import PAYMENT_CASH, PAYMENT_TRANSFER, PAYMENT_CREDIT
from .gas_service import SALE_TYPE_DEPOSIT, sale_type_label
from .payment_service import format_baht


TEXT_WIDTH = 32

PAYMENT_METHOD_LABELS = {
    PAYMENT_CASH: "เงินสด",
    PAYMENT_TRANSFER: "โอนเงิน",
    PAYMENT_CREDIT: "วางบิล",
}


@dataclass(frozen=True)
class ShopInfo:
    name: str
    address: str = ""
    phone: str = ""


def shop_from_config() -> ShopInfo:
    cfg = current_app.config
    return ShopInfo(
        name=cfg.get("SHOP_NAME", ""),
        address=cfg.get("SHOP_ADDRESS", ""),
        phone=cfg.get("SHOP_PHONE", ""),
    )


def receipt_number(sale: Sale) -> str:
    return f"{sale.id:06d}"


def _local_time(sale: Sale) -> str:
    if sale.created_at is None:
        return ""
    offset = current_app.config.get("RECEIPT_UTC_OFFSET_HOURS", 7)
    return (sale.created_at.replace(tzinfo=None) + timedelta(hours=offset)).strftime("%d/%m/%Y %H:%M")


def _gas_label(item) -> str | None:
    if not item.gas_sale_type:
        return None
    label = sale_type_label(item.gas_sale_type)
    if item.gas_sale_type == SALE_TYPE_DEPOSIT:
        return f"{label} +{format_baht(item.deposit_amount_cents)}"
    return label


def _receipt_context(sale: Sale, shop: ShopInfo) -> dict:
    return {
        "shop": shop,
        "receipt_no": receipt_number(sale),
        "printed_at": _local_time(sale),
        "items": [
            {
                "product_name": item.product_name,
                "quantity": f"{item.quantity:g}",
                "unit_price": format_baht(item.unit_price_cents),
                "subtotal": format_baht(item.subtotal_cents),
                "gas_label": _gas_label(item),
            }
            for item in sale.items
        ],
        "deposit": format_baht(sale.deposit_total_cents) if sale.deposit_total_cents else None,
        "discount": format_baht(sale.discount_cents) if sale.discount_cents else None,
        "discount_label": f"ส่วนลด ({sale.discount_name})" if sale.discount_name else "ส่วนลด",
        "points_used": sale.points_used,
        "points_discount": format_baht(sale.points_discount_cents),
        "total": format_baht(sale.total_cents),
        "payment": format_baht(sale.payment_cents),
        "change": format_baht(sale.change_cents),
        "payment_method": PAYMENT_METHOD_LABELS.get(sale.payment_method, sale.payment_method),
        "customer_name": sale.customer.name if sale.customer else None,
        "points_earned": sale.points_earned,
    }


def render_receipt_html(sale: Sale, shop: ShopInfo | None = None, *, auto_print: bool = True) -> str:
    """Full HTML document sized for 80mm thermal paper; prints itself on load."""
    context = _receipt_context(sale, shop or shop_from_config())
    return render_template("receipt.html", auto_print=auto_print, **context)


def _two_columns(left: str, right: str, width: int = TEXT_WIDTH) -> str:
    space = width - len(left) - len(right)
    if space < 1:
        return f"{left}\n{right.rjust(width)}"
    return left + " " * space + right


def render_receipt_text(sale: Sale, shop: ShopInfo | None = None) -> str:
    ctx = _receipt_context(sale, shop or shop_from_config())
    rule = "=" * TEXT_WIDTH
    thin = "-" * TEXT_WIDTH

    lines = [ctx["shop"].name.center(TEXT_WIDTH).rstrip()]
    if ctx["shop"].address:
        lines.append(ctx["shop"].address)
    if ctx["shop"].phone:
        lines.append(f"โทร {ctx['shop'].phone}")
    lines += [rule, f"ใบเสร็จ #{ctx['receipt_no']}", ctx["printed_at"], rule]

    for item in ctx["items"]:
        lines.append(item["product_name"])
        lines.append(_two_columns(f"  {item['quantity']} x {item['unit_price']}", item["subtotal"]))
        if item["gas_label"]:
            lines.append(f"  ({item['gas_label']})")

    lines.append(thin)
    if ctx["deposit"]:
        lines.append(_two_columns("ค่ามัดจำถัง", f"+{ctx['deposit']}"))
    if ctx["discount"]:
        lines.append(_two_columns(ctx["discount_label"], f"-{ctx['discount']}"))
    if ctx["points_used"]:
        lines.append(_two_columns(f"ใช้แต้ม {ctx['points_used']}", f"-{ctx['points_discount']}"))
    lines += [
        _two_columns("รวมทั้งสิ้น", ctx["total"]),
        _two_columns("รับเงิน", ctx["payment"]),
        _two_columns("ทอน", ctx["change"]),
        f"ชำระโดย: {ctx['payment_method']}",
    ]
    if ctx["customer_name"]:
        lines.append(f"ลูกค้า: {ctx['customer_name']}")
        if ctx["points_earned"]:
            lines.append(f"ได้รับแต้ม: +{ctx['points_earned']} แต้ม")
    lines += [rule, "ขอบคุณที่ใช้บริการ".center(TEXT_WIDTH).rstrip()]
    return "\n".join(lines)
