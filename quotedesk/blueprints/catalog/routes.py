"""
quotedesk/blueprints/catalog/routes.py

Pricelists and pricelist items.

Includes:
- Pricelist CRUD
- Item list (per pricelist / across the organization), bulk create, update, delete
- Bulk sell-price update
- CSV import (multipart file upload or JSON rows), all-or-nothing

IMPORTANT:
- Every route is tenant-scoped; ids from another organization answer 404.
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from ...errors import ValidationError
from ...extensions import db
from ...schemas import PricelistInput, PricelistItemInput, SellPriceUpdate
from ...security import current_organization_id, tenant_required
from ...services import catalog
from ...utils import created, json_body, json_list

catalog_bp = Blueprint("catalog", __name__, url_prefix="/pricelists")


# ---------------------------------------------------------------------
# Pricelists
# ---------------------------------------------------------------------
@catalog_bp.route("", methods=["GET"])
@tenant_required
def list_pricelists():
    pricelists = catalog.list_pricelists(db.session, current_organization_id())
    return jsonify([p.to_dict() for p in pricelists])


@catalog_bp.route("", methods=["POST"])
@tenant_required
def create_pricelist():
    data = PricelistInput.from_payload(json_body())
    pricelist = catalog.create_pricelist(db.session, current_organization_id(), data)
    db.session.commit()
    return created(pricelist.to_dict())


@catalog_bp.route("/<int:pricelist_id>", methods=["GET"])
@tenant_required
def get_pricelist(pricelist_id: int):
    pricelist = catalog.get_pricelist(db.session, current_organization_id(), pricelist_id)
    return jsonify(pricelist.to_dict())


@catalog_bp.route("/<int:pricelist_id>", methods=["PATCH"])
@tenant_required
def rename_pricelist(pricelist_id: int):
    data = PricelistInput.from_payload(json_body())
    pricelist = catalog.rename_pricelist(db.session, current_organization_id(), pricelist_id, data)
    db.session.commit()
    return jsonify(pricelist.to_dict())


@catalog_bp.route("/<int:pricelist_id>", methods=["DELETE"])
@tenant_required
def delete_pricelist(pricelist_id: int):
    catalog.delete_pricelist(db.session, current_organization_id(), pricelist_id)
    db.session.commit()
    return jsonify({"success": True})


# ---------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------
@catalog_bp.route("/items", methods=["GET"])
@tenant_required
def list_all_items():
    items = catalog.list_all_items(db.session, current_organization_id(), request.args.get("q"))
    return jsonify([item.to_dict() for item in items])


@catalog_bp.route("/<int:pricelist_id>/items", methods=["GET"])
@tenant_required
def list_items(pricelist_id: int):
    items = catalog.list_items(db.session, current_organization_id(), pricelist_id)
    return jsonify([item.to_dict() for item in items])


@catalog_bp.route("/<int:pricelist_id>/items", methods=["POST"])
@tenant_required
def create_items(pricelist_id: int):
    """Body: one item object, or {"items": [...]}."""
    payload = json_body()
    rows = payload["items"] if isinstance(payload, dict) and "items" in payload else [payload]
    if not isinstance(rows, list):
        raise ValidationError("items must be a list.")

    inputs = [PricelistItemInput.from_payload(row) for row in rows]
    items = catalog.create_items(db.session, current_organization_id(), pricelist_id, inputs)
    db.session.commit()
    return created([item.to_dict() for item in items])


@catalog_bp.route("/items/<int:item_id>", methods=["GET"])
@tenant_required
def get_item(item_id: int):
    return jsonify(catalog.get_item(db.session, current_organization_id(), item_id).to_dict())


@catalog_bp.route("/items/<int:item_id>", methods=["PATCH"])
@tenant_required
def update_item(item_id: int):
    data = PricelistItemInput.from_payload(json_body(), partial=True)
    item = catalog.update_item(db.session, current_organization_id(), item_id, data)
    db.session.commit()
    return jsonify(item.to_dict())


@catalog_bp.route("/items/<int:item_id>", methods=["DELETE"])
@tenant_required
def delete_item(item_id: int):
    catalog.delete_item(db.session, current_organization_id(), item_id)
    db.session.commit()
    return jsonify({"success": True})


@catalog_bp.route("/items/sell-prices", methods=["POST"])
@tenant_required
def bulk_update_sell_prices():
    """Body: {"updates": [{"id": 1, "sell_price": "12.50"}, ...]}."""
    updates = [SellPriceUpdate.from_payload(row) for row in json_list("updates")]
    items = catalog.bulk_update_sell_prices(db.session, current_organization_id(), updates)
    db.session.commit()
    return jsonify([item.to_dict() for item in items])


# ---------------------------------------------------------------------
# CSV import
# ---------------------------------------------------------------------
@catalog_bp.route("/<int:pricelist_id>/import", methods=["POST"])
@tenant_required
def import_csv(pricelist_id: int):
    """
    Import items from CSV.

    Accepts a multipart upload (field "file") or JSON {"rows": [{"Item Name": ..., ...}]}.
    """
    upload = request.files.get("file")
    if upload is not None:
        try:
            text = upload.read().decode("utf-8-sig")
        except UnicodeDecodeError:
            raise ValidationError("CSV file must be UTF-8 encoded.") from None
        rows = catalog.read_csv_rows(text)
    else:
        rows = json_list("rows")

    items = catalog.import_csv(db.session, current_organization_id(), pricelist_id, rows)
    db.session.commit()
    return created({"success": True, "items_created": len(items)})
