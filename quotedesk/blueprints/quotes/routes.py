"""
quotedesk/blueprints/quotes/routes.py

Quote routes.

Includes:
- Quote CRUD and explicit recalculation
- Line items: add from a pricelist item, add manual, update, delete
- Customer-facing document (JSON) and PDF

Item mutations answer with the item AND the refreshed quote totals.
"""

from __future__ import annotations

from io import BytesIO

from flask import Blueprint, jsonify, send_file, url_for

from ...documents import quote_document, render_pdf
from ...extensions import db
from ...schemas import ManualQuoteItemInput, PricedItemInput, QuoteInput, QuoteItemUpdate
from ...security import current_organization_id, tenant_required
from ...services import documents, partners
from ...utils import created, json_body

quotes_bp = Blueprint("quotes", __name__, url_prefix="/quotes")


def _item_response(item, quote, status: int = 200):
    return jsonify({"item": item.to_dict(), "quote": quote.to_dict()}), status


# ---------------------------------------------------------------------
# Quotes
# ---------------------------------------------------------------------
@quotes_bp.route("", methods=["GET"])
@tenant_required
def list_quotes():
    return jsonify([q.to_dict() for q in documents.list_quotes(db.session, current_organization_id())])


@quotes_bp.route("", methods=["POST"])
@tenant_required
def create_quote():
    data = QuoteInput.from_payload(json_body())
    quote = documents.create_quote(db.session, current_organization_id(), data)
    db.session.commit()
    return created(quote.to_dict(include_items=True))


@quotes_bp.route("/<int:quote_id>", methods=["GET"])
@tenant_required
def get_quote(quote_id: int):
    quote = documents.get_quote(db.session, current_organization_id(), quote_id)
    return jsonify(quote.to_dict(include_items=True))


@quotes_bp.route("/<int:quote_id>", methods=["PATCH"])
@tenant_required
def update_quote(quote_id: int):
    data = QuoteInput.from_payload(json_body(), partial=True)
    quote = documents.update_quote(db.session, current_organization_id(), quote_id, data)
    db.session.commit()
    return jsonify(quote.to_dict(include_items=True))


@quotes_bp.route("/<int:quote_id>", methods=["DELETE"])
@tenant_required
def delete_quote(quote_id: int):
    documents.delete_quote(db.session, current_organization_id(), quote_id)
    db.session.commit()
    return jsonify({"success": True})


@quotes_bp.route("/<int:quote_id>/recalculate", methods=["POST"])
@tenant_required
def recalculate_quote(quote_id: int):
    quote = documents.recalculate_quote(db.session, current_organization_id(), quote_id)
    db.session.commit()
    return jsonify(quote.to_dict(include_items=True))


# ---------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------
@quotes_bp.route("/<int:quote_id>/items", methods=["POST"])
@tenant_required
def add_item(quote_id: int):
    """Add a pricelist item: {"pricelist_item_id": 1, "quantity": "10"}."""
    data = PricedItemInput.from_payload(json_body())
    item = documents.add_quote_item_from_pricelist(db.session, current_organization_id(), quote_id, data)
    db.session.commit()
    return _item_response(item, item.quote, 201)


@quotes_bp.route("/<int:quote_id>/items/manual", methods=["POST"])
@tenant_required
def add_manual_item(quote_id: int):
    data = ManualQuoteItemInput.from_payload(json_body())
    item = documents.add_manual_quote_item(db.session, current_organization_id(), quote_id, data)
    db.session.commit()
    return _item_response(item, item.quote, 201)


@quotes_bp.route("/items/<int:item_id>", methods=["PATCH"])
@tenant_required
def update_item(item_id: int):
    data = QuoteItemUpdate.from_payload(json_body())
    item = documents.update_quote_item(db.session, current_organization_id(), item_id, data)
    db.session.commit()
    return _item_response(item, item.quote)


@quotes_bp.route("/items/<int:item_id>", methods=["DELETE"])
@tenant_required
def delete_item(item_id: int):
    quote = documents.delete_quote_item(db.session, current_organization_id(), item_id)
    db.session.commit()
    return jsonify({"success": True, "quote": quote.to_dict()})


# ---------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------
@quotes_bp.route("/<int:quote_id>/document", methods=["GET"])
@tenant_required
def quote_payload(quote_id: int):
    """Customer-facing data: no buy prices, no margins."""
    quote = documents.get_quote(db.session, current_organization_id(), quote_id)
    settings = partners.get_company_settings(db.session, quote.organization_id)
    return jsonify(quote_document(quote, settings))


@quotes_bp.route("/<int:quote_id>/pdf", methods=["GET"])
@tenant_required
def quote_pdf(quote_id: int):
    quote = documents.get_quote(db.session, current_organization_id(), quote_id)
    settings = partners.get_company_settings(db.session, quote.organization_id)
    content, filename = render_pdf(quote_document(quote, settings))

    documents.set_quote_pdf_url(db.session, quote, url_for("quotes.quote_pdf", quote_id=quote.id, _external=True))
    db.session.commit()

    return send_file(BytesIO(content), mimetype="application/pdf", as_attachment=True, download_name=filename)
