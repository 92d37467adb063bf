"""
quotedesk/blueprints/partners/routes.py

Customers, suppliers, shipping addresses and company settings.
"""

from __future__ import annotations

from flask import Blueprint, jsonify

from ...extensions import db
from ...schemas import CompanySettingsInput, CustomerInput, ShippingAddressInput, SupplierInput
from ...security import current_organization_id, tenant_required
from ...services import documents, partners
from ...utils import created, json_body

partners_bp = Blueprint("partners", __name__)


# ---------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------
@partners_bp.route("/customers", methods=["GET"])
@tenant_required
def list_customers():
    return jsonify([c.to_dict() for c in partners.list_customers(db.session, current_organization_id())])


@partners_bp.route("/customers", methods=["POST"])
@tenant_required
def create_customer():
    data = CustomerInput.from_payload(json_body())
    customer = partners.create_customer(db.session, current_organization_id(), data)
    db.session.commit()
    return created(customer.to_dict())


@partners_bp.route("/customers/<int:customer_id>", methods=["GET"])
@tenant_required
def get_customer(customer_id: int):
    return jsonify(partners.get_customer(db.session, current_organization_id(), customer_id).to_dict())


@partners_bp.route("/customers/<int:customer_id>", methods=["PATCH"])
@tenant_required
def update_customer(customer_id: int):
    data = CustomerInput.from_payload(json_body(), partial=True)
    customer = partners.update_customer(db.session, current_organization_id(), customer_id, data)
    db.session.commit()
    return jsonify(customer.to_dict())


@partners_bp.route("/customers/<int:customer_id>", methods=["DELETE"])
@tenant_required
def delete_customer(customer_id: int):
    partners.delete_customer(db.session, current_organization_id(), customer_id)
    db.session.commit()
    return jsonify({"success": True})


# ---------------------------------------------------------------------
# Suppliers
# ---------------------------------------------------------------------
@partners_bp.route("/suppliers", methods=["GET"])
@tenant_required
def list_suppliers():
    return jsonify([s.to_dict() for s in partners.list_suppliers(db.session, current_organization_id())])


@partners_bp.route("/suppliers", methods=["POST"])
@tenant_required
def create_supplier():
    data = SupplierInput.from_payload(json_body())
    supplier = partners.create_supplier(db.session, current_organization_id(), data)
    db.session.commit()
    return created(supplier.to_dict())


@partners_bp.route("/suppliers/<int:supplier_id>", methods=["GET"])
@tenant_required
def get_supplier(supplier_id: int):
    return jsonify(partners.get_supplier(db.session, current_organization_id(), supplier_id).to_dict())


@partners_bp.route("/suppliers/<int:supplier_id>", methods=["PATCH"])
@tenant_required
def update_supplier(supplier_id: int):
    data = SupplierInput.from_payload(json_body(), partial=True)
    supplier = partners.update_supplier(db.session, current_organization_id(), supplier_id, data)
    db.session.commit()
    return jsonify(supplier.to_dict())


@partners_bp.route("/suppliers/<int:supplier_id>", methods=["DELETE"])
@tenant_required
def delete_supplier(supplier_id: int):
    partners.delete_supplier(db.session, current_organization_id(), supplier_id)
    db.session.commit()
    return jsonify({"success": True})


@partners_bp.route("/suppliers/<int:supplier_id>/purchase-orders", methods=["GET"])
@tenant_required
def supplier_purchase_orders(supplier_id: int):
    orders = documents.list_purchase_orders_by_supplier(db.session, current_organization_id(), supplier_id)
    return jsonify([po.to_dict() for po in orders])


# ---------------------------------------------------------------------
# Shipping addresses
# ---------------------------------------------------------------------
@partners_bp.route("/shipping-addresses", methods=["GET"])
@tenant_required
def list_shipping_addresses():
    addresses = partners.list_shipping_addresses(db.session, current_organization_id())
    return jsonify([a.to_dict() for a in addresses])


@partners_bp.route("/shipping-addresses", methods=["POST"])
@tenant_required
def create_shipping_address():
    data = ShippingAddressInput.from_payload(json_body())
    address = partners.create_shipping_address(db.session, current_organization_id(), data)
    db.session.commit()
    return created(address.to_dict())


@partners_bp.route("/shipping-addresses/<int:address_id>", methods=["PATCH"])
@tenant_required
def update_shipping_address(address_id: int):
    data = ShippingAddressInput.from_payload(json_body(), partial=True)
    address = partners.update_shipping_address(db.session, current_organization_id(), address_id, data)
    db.session.commit()
    return jsonify(address.to_dict())


@partners_bp.route("/shipping-addresses/<int:address_id>", methods=["DELETE"])
@tenant_required
def delete_shipping_address(address_id: int):
    partners.delete_shipping_address(db.session, current_organization_id(), address_id)
    db.session.commit()
    return jsonify({"success": True})


# ---------------------------------------------------------------------
# Company settings
# ---------------------------------------------------------------------
@partners_bp.route("/company-settings", methods=["GET"])
@tenant_required
def get_company_settings():
    settings = partners.get_company_settings(db.session, current_organization_id())
    return jsonify(settings.to_dict() if settings else None)


@partners_bp.route("/company-settings", methods=["PUT"])
@tenant_required
def save_company_settings():
    data = CompanySettingsInput.from_payload(json_body())
    settings = partners.upsert_company_settings(db.session, current_organization_id(), data)
    db.session.commit()
    return jsonify(settings.to_dict())
