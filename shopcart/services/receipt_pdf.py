from __future__ import annotations

import os
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from shopcart.cart import Cart
from shopcart.config import settings
from shopcart.constants import DISCOUNT_TYPES
from shopcart.utils.formatters import money, number_format


def discount_lines(cart: Cart) -> List[Tuple[str, Decimal]]:
    """One negative line per price rule that took something off the cart."""
    return [
        (rule.name or DISCOUNT_TYPES[rule.discount_type], -rule.discount_amount)
        for rule in cart.price_rules
        if rule.discount_amount
    ]


def generate_receipt_pdf(cart: Cart, path: Optional[str] = None) -> str:
    if path is None:
        os.makedirs(settings.export_dir, exist_ok=True)
        path = os.path.join(settings.export_dir, f"receipt_{cart.instance}.pdf")

    c = canvas.Canvas(path, pagesize=A4)
    w, h = A4

    y = h - 50
    c.setFont("Helvetica-Bold", 14)
    c.drawString(40, y, f"RECEIPT {cart.instance}")
    y -= 20

    c.setFont("Helvetica", 11)
    c.drawString(40, y, f"Date: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    y -= 16
    c.drawString(40, y, f"Currency: {settings.currency}")
    y -= 24

    # header
    c.setFont("Helvetica-Bold", 10)
    c.drawString(40, y, "Item")
    c.drawString(310, y, "Qty")
    c.drawString(360, y, "Price")
    c.drawString(440, y, "Total")
    y -= 10
    c.line(40, y, 550, y)
    y -= 16

    c.setFont("Helvetica", 10)
    for it in cart.items:
        c.drawString(40, y, it.name[:45])
        c.drawRightString(340, y, number_format(it.quantity))
        c.drawRightString(420, y, number_format(it.unit_price))
        c.drawRightString(550, y, number_format(it.total))
        y -= 14
        if y < 120:
            c.showPage()
            y = h - 50
            c.setFont("Helvetica", 10)

    y -= 10
    c.line(40, y, 550, y)
    y -= 18

    lines = [("Subtotal", cart.subtotal)]
    lines.extend(discount_lines(cart))
    for tax in cart.tax_summary().values():
        lines.append((f"{tax.name or tax.id} ({number_format(tax.rate)}%)", tax.amount))
    if cart.has_shipping:
        lines.append(("Shipping", cart.shipping_total))

    for label, amount in lines:
        c.drawString(360, y, label)
        c.drawRightString(550, y, money(amount))
        y -= 14

    y -= 6
    c.setFont("Helvetica-Bold", 12)
    c.drawRightString(550, y, f"TOTAL: {money(cart.total + cart.shipping_total)}")

    c.save()
    return path
