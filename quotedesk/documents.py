"""
quotedesk/documents.py

Outgoing documents.

- quote_document(): customer-facing. Sell prices and totals only; never buy prices or margins.
- purchase_order_document(): supplier-facing. Buy prices, totals and delivery details;
  never sell prices or margins.
- render_pdf(): plain reportlab rendering of either payload.

Payloads are built field by field from an allow-list, never by filtering a full item dict.
"""

from __future__ import annotations

from io import BytesIO
from typing import Any, Dict, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .models import CompanySettings, DeliveryMethod, PurchaseOrder, Quote


def _money(value) -> str:
    return f"{value:.2f}" if value is not None else "0.00"


def _company(settings: Optional[CompanySettings]) -> Dict[str, Any]:
    if settings is None:
        return {"company_name": None, "abn": None, "address": None, "phone": None, "email": None}
    return {
        "company_name": settings.company_name,
        "abn": settings.abn,
        "address": settings.address,
        "phone": settings.phone,
        "email": settings.email,
    }


def quote_document(quote: Quote, settings: Optional[CompanySettings] = None) -> Dict[str, Any]:
    customer = quote.customer
    return {
        "kind": "quote",
        "title": "QUOTE",
        "number": quote.quote_number,
        "date": quote.created_at.date().isoformat() if quote.created_at else None,
        "status": quote.status.value,
        "company": _company(settings),
        "recipient": {
            "label": "Quote for",
            "company_name": customer.company_name if customer else None,
            "contact_name": customer.contact_name if customer else None,
            "email": customer.email if customer else None,
            "address": customer.billing_address if customer else None,
        },
        "columns": ["Item", "Qty", "Unit Price", "Total"],
        "items": [
            {
                "item_name": item.item_name,
                "quantity": _money(item.quantity),
                "sell_price": _money(item.sell_price),
                "line_total": _money(item.line_total),
            }
            for item in quote.items
        ],
        "total_amount": _money(quote.total_amount),
        "notes": quote.notes,
    }


def purchase_order_document(po: PurchaseOrder, settings: Optional[CompanySettings] = None) -> Dict[str, Any]:
    supplier = po.supplier
    return {
        "kind": "purchase_order",
        "title": "PURCHASE ORDER",
        "number": po.po_number,
        "date": po.created_at.date().isoformat() if po.created_at else None,
        "status": po.status.value,
        "company": _company(settings),
        "recipient": {
            "label": "Supplier",
            "company_name": supplier.company_name if supplier else None,
            "contact_name": supplier.key_contact_name if supplier else None,
            "email": supplier.po_email if supplier else None,
            "address": supplier.billing_address if supplier else None,
        },
        "delivery": {
            "method": po.delivery_method.value,
            "shipping_address": po.shipping_address if po.delivery_method == DeliveryMethod.in_store_delivery else None,
        },
        "columns": ["Item", "Qty", "Unit Price", "Total"],
        "items": [
            {
                "item_name": item.item_name,
                "quantity": _money(item.quantity),
                "buy_price": _money(item.buy_price),
                "line_total": _money(item.line_total),
            }
            for item in po.items
        ],
        "total_amount": _money(po.total_amount),
        "notes": po.notes,
    }


def render_pdf(document: Dict[str, Any]) -> tuple[bytes, str]:
    """Render a document payload to PDF bytes. Returns (bytes, filename)."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, rightMargin=36, leftMargin=36, topMargin=36, bottomMargin=36)
    styles = getSampleStyleSheet()
    elements = []

    company = document["company"]
    elements.append(Paragraph(f"<b>{document['title']}</b> &nbsp;&nbsp; {document['number']}", styles["Title"]))
    elements.append(Paragraph(escape(company.get("company_name") or ""), styles["Heading3"]))
    if company.get("abn"):
        elements.append(Paragraph(f"ABN: {escape(company['abn'])}", styles["Normal"]))
    if company.get("address"):
        elements.append(Paragraph(escape(company["address"]).replace("\n", "<br/>"), styles["Normal"]))
    elements.append(Paragraph(f"Date: {document['date'] or '-'} | Status: {document['status'].upper()}", styles["Normal"]))
    elements.append(Spacer(1, 10))

    recipient = document["recipient"]
    lines = [recipient.get(key) for key in ("company_name", "contact_name", "email", "address")]
    elements.append(Paragraph(f"<b>{recipient['label']}</b>", styles["Normal"]))
    elements.append(Paragraph("<br/>".join(escape(line) for line in lines if line), styles["Normal"]))

    delivery = document.get("delivery")
    if delivery:
        method = "In-store delivery" if delivery["method"] == DeliveryMethod.in_store_delivery.value else "Pickup from supplier"
        elements.append(Spacer(1, 6))
        elements.append(Paragraph(f"<b>Delivery:</b> {method}", styles["Normal"]))
        if delivery.get("shipping_address"):
            elements.append(Paragraph(f"Ship to: {escape(delivery['shipping_address'])}", styles["Normal"]))
    elements.append(Spacer(1, 10))

    price_key = "sell_price" if document["kind"] == "quote" else "buy_price"
    rows = [document["columns"]]
    for item in document["items"]:
        rows.append([item["item_name"], item["quantity"], f"${item[price_key]}", f"${item['line_total']}"])
    rows.append(["", "", "Total", f"${document['total_amount']}"])

    table = Table(rows, repeatRows=1, colWidths=[260, 60, 90, 90])
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                ("GRID", (0, 0), (-1, -2), 0.5, colors.grey),
                ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
                ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
            ]
        )
    )
    elements.append(table)

    if document.get("notes"):
        elements.append(Spacer(1, 10))
        elements.append(Paragraph(f"Notes: {escape(document['notes'])}", styles["Italic"]))

    doc.build(elements)
    return buffer.getvalue(), f"{document['number']}.pdf"
