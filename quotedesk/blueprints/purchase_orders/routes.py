"""
quotedesk/blueprints/purchase_orders/routes.py

Purchase order routes.

Includes:
- PO CRUD, list by supplier, explicit recalculation
- Line items: add from a pricelist item (pack pricing applies), add manual, update quantity, delete
- Supplier-facing document (JSON), PDF and email to the supplier's PO address
"""

from __future__ import annotations

from io import BytesIO

from flask import Blueprint, current_app, jsonify, request, send_file, url_for

from ...documents import purchase_order_document, render_pdf
from ...errors import ValidationError
from ...extensions import db
from ...mailer import send_purchase_order_email
from ...schemas import (
    ManualPurchaseOrderItemInput,
    PricedItemInput,
    PurchaseOrderInput,
    PurchaseOrderItemUpdate,
)
from ...security import current_organization_id, tenant_required
from ...services import documents, partners
from ...utils import created, json_body

purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/purchase-orders")


def _item_response(item, po, status: int = 200):
    return jsonify({"item": item.to_dict(), "purchase_order": po.to_dict()}), status


# ---------------------------------------------------------------------
# Purchase orders
# ---------------------------------------------------------------------
@purchase_orders_bp.route("", methods=["GET"])
@tenant_required
def list_purchase_orders():
    supplier_id = request.args.get("supplier_id", type=int)
    if supplier_id is not None:
        orders = documents.list_purchase_orders_by_supplier(db.session, current_organization_id(), supplier_id)
    else:
        orders = documents.list_purchase_orders(db.session, current_organization_id())
    return jsonify([po.to_dict() for po in orders])


@purchase_orders_bp.route("", methods=["POST"])
@tenant_required
def create_purchase_order():
    data = PurchaseOrderInput.from_payload(json_body())
    po = documents.create_purchase_order(db.session, current_organization_id(), data)
    db.session.commit()
    return created(po.to_dict(include_items=True))


@purchase_orders_bp.route("/<int:po_id>", methods=["GET"])
@tenant_required
def get_purchase_order(po_id: int):
    po = documents.get_purchase_order(db.session, current_organization_id(), po_id)
    return jsonify(po.to_dict(include_items=True))


@purchase_orders_bp.route("/<int:po_id>", methods=["PATCH"])
@tenant_required
def update_purchase_order(po_id: int):
    data = PurchaseOrderInput.from_payload(json_body(), partial=True)
    po = documents.update_purchase_order(db.session, current_organization_id(), po_id, data)
    db.session.commit()
    return jsonify(po.to_dict(include_items=True))


@purchase_orders_bp.route("/<int:po_id>", methods=["DELETE"])
@tenant_required
def delete_purchase_order(po_id: int):
    documents.delete_purchase_order(db.session, current_organization_id(), po_id)
    db.session.commit()
    return jsonify({"success": True})


@purchase_orders_bp.route("/<int:po_id>/recalculate", methods=["POST"])
@tenant_required
def recalculate_purchase_order(po_id: int):
    po = documents.recalculate_purchase_order(db.session, current_organization_id(), po_id)
    db.session.commit()
    return jsonify(po.to_dict(include_items=True))


# ---------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------
@purchase_orders_bp.route("/<int:po_id>/items", methods=["POST"])
@tenant_required
def add_item(po_id: int):
    """Add a pricelist item: {"pricelist_item_id": 1, "quantity": "60"}."""
    data = PricedItemInput.from_payload(json_body())
    item = documents.add_purchase_order_item_from_pricelist(db.session, current_organization_id(), po_id, data)
    db.session.commit()
    return _item_response(item, item.purchase_order, 201)


@purchase_orders_bp.route("/<int:po_id>/items/manual", methods=["POST"])
@tenant_required
def add_manual_item(po_id: int):
    data = ManualPurchaseOrderItemInput.from_payload(json_body())
    item = documents.add_manual_purchase_order_item(db.session, current_organization_id(), po_id, data)
    db.session.commit()
    return _item_response(item, item.purchase_order, 201)


@purchase_orders_bp.route("/items/<int:item_id>", methods=["PATCH"])
@tenant_required
def update_item(item_id: int):
    data = PurchaseOrderItemUpdate.from_payload(json_body())
    item = documents.update_purchase_order_item(db.session, current_organization_id(), item_id, data)
    db.session.commit()
    return _item_response(item, item.purchase_order)


@purchase_orders_bp.route("/items/<int:item_id>", methods=["DELETE"])
@tenant_required
def delete_item(item_id: int):
    po = documents.delete_purchase_order_item(db.session, current_organization_id(), item_id)
    db.session.commit()
    return jsonify({"success": True, "purchase_order": po.to_dict()})


# ---------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------
@purchase_orders_bp.route("/<int:po_id>/document", methods=["GET"])
@tenant_required
def purchase_order_payload(po_id: int):
    """Supplier-facing data: no sell prices, no margins."""
    po = documents.get_purchase_order(db.session, current_organization_id(), po_id)
    settings = partners.get_company_settings(db.session, po.organization_id)
    return jsonify(purchase_order_document(po, settings))


@purchase_orders_bp.route("/<int:po_id>/pdf", methods=["GET"])
@tenant_required
def purchase_order_pdf(po_id: int):
    po = documents.get_purchase_order(db.session, current_organization_id(), po_id)
    settings = partners.get_company_settings(db.session, po.organization_id)
    content, filename = render_pdf(purchase_order_document(po, settings))

    pdf_url = url_for("purchase_orders.purchase_order_pdf", po_id=po.id, _external=True)
    documents.set_purchase_order_pdf_url(db.session, po, pdf_url)
    db.session.commit()

    return send_file(BytesIO(content), mimetype="application/pdf", as_attachment=True, download_name=filename)


@purchase_orders_bp.route("/<int:po_id>/send-email", methods=["POST"])
@tenant_required
def send_email(po_id: int):
    """Email the PO link to the supplier. The PDF must have been generated first."""
    po = documents.get_purchase_order(db.session, current_organization_id(), po_id)
    if not po.pdf_url:
        raise ValidationError("PDF not generated yet. Please generate the PDF first.")
    supplier = po.supplier
    if supplier is None or not supplier.po_email:
        raise ValidationError("Supplier PO email not configured.")

    if not send_purchase_order_email(po, supplier, po.pdf_url):
        return jsonify({"error": "mail_failed", "message": "Failed to send purchase order email."}), 502

    current_app.logger.info("PO emailed: po=%s supplier=%s", po.id, supplier.id)
    return jsonify({"success": True})
