"""
quotedesk/services/documents.py

Quotes, purchase orders and their line items.

Every item mutation runs in the caller's transaction:
    mutate item -> flush -> re-read ALL items of the document -> recalc_totals -> audit
The route commits. Totals are never adjusted incrementally.

Line items have no organization column; they are reached through their
organization-scoped parent document.
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from ..audit import log_action, serialize_model
from ..errors import NotFound, ValidationError
from ..models import (
    Customer,
    DeliveryMethod,
    PricelistItem,
    PurchaseOrder,
    PurchaseOrderItem,
    Quote,
    QuoteItem,
    Supplier,
)
from ..pricing import (
    PricingAttributes,
    compute_line_total,
    compute_margin,
    money,
    select_unit_buy_price,
)
from ..schemas import (
    ManualPurchaseOrderItemInput,
    ManualQuoteItemInput,
    PricedItemInput,
    PurchaseOrderInput,
    PurchaseOrderItemUpdate,
    QuoteInput,
    QuoteItemUpdate,
)
from . import require_organization, scoped_get, scoped_query

_DIGITS = re.compile(r"(\d+)$")


def _next_number(session: Session, column, organization_id: int, prefix: str) -> str:
    """
    Next document number of the organization: Q00001, Q00002, ...

    Based on the highest existing number, so gaps left by deleted documents are never refilled.
    """
    model = column.class_
    highest = 0
    for (number,) in session.query(column).filter(model.organization_id == organization_id):
        match = _DIGITS.search(number or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}{highest + 1:05d}"


def _pricelist_item(session: Session, organization_id: int, item_id: Optional[int]) -> Optional[PricelistItem]:
    if item_id is None:
        return None
    return scoped_get(session, PricelistItem, item_id, organization_id, "Pricelist item")


def _quantity(value: Decimal) -> Decimal:
    quantity = money(value)
    if quantity != value:
        raise ValidationError("quantity must have at most 2 decimal places.")
    if quantity <= 0:
        raise ValidationError("quantity must be greater than 0.")
    return quantity


# ---------------------------------------------------------------------
# Quotes
# ---------------------------------------------------------------------
def list_quotes(session: Session, organization_id: Optional[int]) -> List[Quote]:
    return scoped_query(session, Quote, organization_id).order_by(Quote.created_at.desc(), Quote.id.desc()).all()


def get_quote(session: Session, organization_id: Optional[int], quote_id: int) -> Quote:
    return scoped_get(session, Quote, quote_id, organization_id, "Quote")


def create_quote(session: Session, organization_id: Optional[int], data: QuoteInput) -> Quote:
    organization_id = require_organization(organization_id)
    customer = scoped_get(session, Customer, data.customer_id, organization_id, "Customer")

    quote = Quote(
        organization_id=organization_id,
        customer_id=customer.id,
        quote_number=_next_number(session, Quote.quote_number, organization_id, "Q"),
        notes=data.notes,
    )
    session.add(quote)
    session.flush()
    log_action(session, quote, "CREATE", after=serialize_model(quote))
    return quote


def update_quote(session: Session, organization_id: Optional[int], quote_id: int, data: QuoteInput) -> Quote:
    quote = get_quote(session, organization_id, quote_id)
    changes = data.changes()
    if "status" in changes and changes["status"] is None:
        raise ValidationError("status cannot be empty.")

    before = serialize_model(quote)
    for key, value in changes.items():
        setattr(quote, key, value)
    session.flush()
    log_action(session, quote, "UPDATE", before=before, after=serialize_model(quote))
    return quote


def set_quote_pdf_url(session: Session, quote: Quote, pdf_url: str) -> Quote:
    quote.pdf_url = pdf_url
    session.flush()
    return quote


def delete_quote(session: Session, organization_id: Optional[int], quote_id: int) -> None:
    quote = get_quote(session, organization_id, quote_id)
    before = serialize_model(quote)
    session.delete(quote)
    session.flush()
    log_action(session, quote, "DELETE", before=before)


def _refresh_quote_totals(session: Session, quote: Quote):
    session.flush()
    items = session.query(QuoteItem).filter(QuoteItem.quote_id == quote.id).order_by(QuoteItem.id).all()
    return quote.recalc_totals(items)


def recalculate_quote(session: Session, organization_id: Optional[int], quote_id: int) -> Quote:
    quote = get_quote(session, organization_id, quote_id)
    before = serialize_model(quote)
    _refresh_quote_totals(session, quote)
    session.flush()
    log_action(session, quote, "UPDATE", before=before, after=serialize_model(quote))
    return quote


def _price_quote_item(item: QuoteItem) -> None:
    item.line_total = money(compute_line_total(item.quantity, item.sell_price))
    item.margin = money(compute_margin(item.sell_price, item.buy_price, item.quantity))


def _save_new_quote_item(session: Session, quote: Quote, item: QuoteItem) -> QuoteItem:
    _price_quote_item(item)
    quote.items.append(item)
    _refresh_quote_totals(session, quote)
    session.flush()
    log_action(session, item, "CREATE", after=serialize_model(item))
    return item


def add_quote_item_from_pricelist(
    session: Session, organization_id: Optional[int], quote_id: int, data: PricedItemInput
) -> QuoteItem:
    """Sell price is the item's sell price (RRP ex GST if unset); buy price is the loose price."""
    quote = get_quote(session, organization_id, quote_id)
    source = _pricelist_item(session, quote.organization_id, data.pricelist_item_id)

    item = QuoteItem(
        pricelist_item_id=source.id,
        item_name=source.item_name,
        quantity=_quantity(data.quantity),
        sell_price=money(Decimal(str(source.sell_price or source.rrp_ex_gst))),
        buy_price=money(Decimal(str(source.loose_buy_price))),
    )
    return _save_new_quote_item(session, quote, item)


def add_manual_quote_item(
    session: Session, organization_id: Optional[int], quote_id: int, data: ManualQuoteItemInput
) -> QuoteItem:
    quote = get_quote(session, organization_id, quote_id)
    source = _pricelist_item(session, quote.organization_id, data.pricelist_item_id)

    item = QuoteItem(
        pricelist_item_id=source.id if source else None,
        item_name=data.item_name,
        quantity=_quantity(data.quantity),
        sell_price=money(data.sell_price),
        buy_price=money(data.buy_price),
    )
    return _save_new_quote_item(session, quote, item)


def get_quote_item(session: Session, organization_id: Optional[int], item_id: int) -> QuoteItem:
    query = session.query(QuoteItem).join(Quote, QuoteItem.quote_id == Quote.id).filter(QuoteItem.id == item_id)
    if organization_id is not None:
        query = query.filter(Quote.organization_id == organization_id)
    item = query.first()
    if item is None:
        raise NotFound("Quote item not found.")
    return item


def update_quote_item(
    session: Session, organization_id: Optional[int], item_id: int, data: QuoteItemUpdate
) -> QuoteItem:
    """Change quantity and/or sell price. The stored buy price is kept."""
    item = get_quote_item(session, organization_id, item_id)
    before = serialize_model(item)

    if data.quantity is not None:
        item.quantity = _quantity(data.quantity)
    if data.sell_price is not None:
        item.sell_price = money(data.sell_price)
    _price_quote_item(item)

    _refresh_quote_totals(session, item.quote)
    session.flush()
    log_action(session, item, "UPDATE", before=before, after=serialize_model(item))
    return item


def delete_quote_item(session: Session, organization_id: Optional[int], item_id: int) -> Quote:
    item = get_quote_item(session, organization_id, item_id)
    quote = item.quote
    before = serialize_model(item)

    quote.items.remove(item)
    _refresh_quote_totals(session, quote)
    session.flush()
    log_action(session, item, "DELETE", before=before)
    return quote


# ---------------------------------------------------------------------
# Purchase orders
# ---------------------------------------------------------------------
def list_purchase_orders(
    session: Session, organization_id: Optional[int], supplier_id: Optional[int] = None
) -> List[PurchaseOrder]:
    query = scoped_query(session, PurchaseOrder, organization_id)
    if supplier_id is not None:
        query = query.filter(PurchaseOrder.supplier_id == supplier_id)
    return query.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc()).all()


def list_purchase_orders_by_supplier(session: Session, organization_id: Optional[int], supplier_id: int) -> List[PurchaseOrder]:
    scoped_get(session, Supplier, supplier_id, organization_id, "Supplier")
    return list_purchase_orders(session, organization_id, supplier_id=supplier_id)


def get_purchase_order(session: Session, organization_id: Optional[int], po_id: int) -> PurchaseOrder:
    return scoped_get(session, PurchaseOrder, po_id, organization_id, "Purchase order")


def create_purchase_order(session: Session, organization_id: Optional[int], data: PurchaseOrderInput) -> PurchaseOrder:
    organization_id = require_organization(organization_id)
    supplier = scoped_get(session, Supplier, data.supplier_id, organization_id, "Supplier")

    po = PurchaseOrder(
        organization_id=organization_id,
        supplier_id=supplier.id,
        po_number=_next_number(session, PurchaseOrder.po_number, organization_id, "PO"),
        notes=data.notes,
    )
    session.add(po)
    session.flush()
    log_action(session, po, "CREATE", after=serialize_model(po))
    return po


def update_purchase_order(
    session: Session, organization_id: Optional[int], po_id: int, data: PurchaseOrderInput
) -> PurchaseOrder:
    po = get_purchase_order(session, organization_id, po_id)
    changes = data.changes()
    for key in ("status", "delivery_method"):
        if key in changes and changes[key] is None:
            raise ValidationError(f"{key} cannot be empty.")

    before = serialize_model(po)
    for key, value in changes.items():
        setattr(po, key, value)
    if po.delivery_method == DeliveryMethod.pickup_from_supplier:
        # address only applies to delivery
        po.shipping_address = None
    session.flush()
    log_action(session, po, "UPDATE", before=before, after=serialize_model(po))
    return po


def set_purchase_order_pdf_url(session: Session, po: PurchaseOrder, pdf_url: str) -> PurchaseOrder:
    po.pdf_url = pdf_url
    session.flush()
    return po


def delete_purchase_order(session: Session, organization_id: Optional[int], po_id: int) -> None:
    po = get_purchase_order(session, organization_id, po_id)
    before = serialize_model(po)
    session.delete(po)
    session.flush()
    log_action(session, po, "DELETE", before=before)


def _refresh_po_totals(session: Session, po: PurchaseOrder):
    session.flush()
    items = (
        session.query(PurchaseOrderItem)
        .filter(PurchaseOrderItem.purchase_order_id == po.id)
        .order_by(PurchaseOrderItem.id)
        .all()
    )
    return po.recalc_totals(items)


def recalculate_purchase_order(session: Session, organization_id: Optional[int], po_id: int) -> PurchaseOrder:
    po = get_purchase_order(session, organization_id, po_id)
    before = serialize_model(po)
    _refresh_po_totals(session, po)
    session.flush()
    log_action(session, po, "UPDATE", before=before, after=serialize_model(po))
    return po


def _save_new_po_item(session: Session, po: PurchaseOrder, item: PurchaseOrderItem) -> PurchaseOrderItem:
    item.line_total = money(compute_line_total(item.quantity, item.buy_price))
    po.items.append(item)
    _refresh_po_totals(session, po)
    session.flush()
    log_action(session, item, "CREATE", after=serialize_model(item))
    return item


def add_purchase_order_item_from_pricelist(
    session: Session, organization_id: Optional[int], po_id: int, data: PricedItemInput
) -> PurchaseOrderItem:
    """Buy price follows pack pricing for the requested quantity."""
    po = get_purchase_order(session, organization_id, po_id)
    source = _pricelist_item(session, po.organization_id, data.pricelist_item_id)
    quantity = _quantity(data.quantity)

    item = PurchaseOrderItem(
        pricelist_item_id=source.id,
        item_name=source.item_name,
        quantity=quantity,
        buy_price=money(select_unit_buy_price(quantity, PricingAttributes.from_item(source))),
    )
    return _save_new_po_item(session, po, item)


def add_manual_purchase_order_item(
    session: Session, organization_id: Optional[int], po_id: int, data: ManualPurchaseOrderItemInput
) -> PurchaseOrderItem:
    po = get_purchase_order(session, organization_id, po_id)
    source = _pricelist_item(session, po.organization_id, data.pricelist_item_id)

    item = PurchaseOrderItem(
        pricelist_item_id=source.id if source else None,
        item_name=data.item_name,
        quantity=_quantity(data.quantity),
        buy_price=money(data.buy_price),
    )
    return _save_new_po_item(session, po, item)


def get_purchase_order_item(session: Session, organization_id: Optional[int], item_id: int) -> PurchaseOrderItem:
    query = (
        session.query(PurchaseOrderItem)
        .join(PurchaseOrder, PurchaseOrderItem.purchase_order_id == PurchaseOrder.id)
        .filter(PurchaseOrderItem.id == item_id)
    )
    if organization_id is not None:
        query = query.filter(PurchaseOrder.organization_id == organization_id)
    item = query.first()
    if item is None:
        raise NotFound("Purchase order item not found.")
    return item


def update_purchase_order_item(
    session: Session, organization_id: Optional[int], item_id: int, data: PurchaseOrderItemUpdate
) -> PurchaseOrderItem:
    """
    Change quantity.

    When the item came from a pricelist, the buy price is re-selected for the new
    quantity (crossing the pack size switches between loose and pack price).
    """
    item = get_purchase_order_item(session, organization_id, item_id)
    before = serialize_model(item)

    if data.quantity is not None:
        item.quantity = _quantity(data.quantity)

    if item.pricelist_item is not None:
        pricing = PricingAttributes.from_item(item.pricelist_item)
        item.buy_price = money(select_unit_buy_price(item.quantity, pricing))

    item.line_total = money(compute_line_total(item.quantity, item.buy_price))

    _refresh_po_totals(session, item.purchase_order)
    session.flush()
    log_action(session, item, "UPDATE", before=before, after=serialize_model(item))
    return item


def delete_purchase_order_item(session: Session, organization_id: Optional[int], item_id: int) -> PurchaseOrder:
    item = get_purchase_order_item(session, organization_id, item_id)
    po = item.purchase_order
    before = serialize_model(item)

    po.items.remove(item)
    _refresh_po_totals(session, po)
    session.flush()
    log_action(session, item, "DELETE", before=before)
    return po
