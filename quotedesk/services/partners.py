"""
quotedesk/services/partners.py

Customers, suppliers, shipping addresses and per-organization company settings.
"""

from __future__ import annotations

from typing import List, Optional, Type

from sqlalchemy.orm import Session

from ..audit import log_action, serialize_model
from ..errors import ValidationError
from ..models import CompanySettings, Customer, ShippingAddress, Supplier
from ..schemas import CompanySettingsInput, CustomerInput, ShippingAddressInput, SupplierInput
from . import require_organization, scoped_get, scoped_query


# ---------------------------------------------------------------------
# Generic CRUD for organization-owned records
# ---------------------------------------------------------------------
def _list(session: Session, model: Type, organization_id: Optional[int], order_by) -> list:
    return scoped_query(session, model, organization_id).order_by(order_by).all()


def _create(session: Session, model: Type, organization_id: Optional[int], data) -> object:
    entity = model(organization_id=require_organization(organization_id), **data.changes())
    session.add(entity)
    session.flush()
    log_action(session, entity, "CREATE", after=serialize_model(entity))
    return entity


def _update(session: Session, entity, data, required: tuple = ()) -> object:
    changes = data.changes()
    for key in required:
        if key in changes and changes[key] is None:
            raise ValidationError(f"{key} cannot be empty.")

    before = serialize_model(entity)
    for key, value in changes.items():
        setattr(entity, key, value)
    session.flush()
    log_action(session, entity, "UPDATE", before=before, after=serialize_model(entity))
    return entity


def _delete(session: Session, entity) -> None:
    before = serialize_model(entity)
    session.delete(entity)
    session.flush()
    log_action(session, entity, "DELETE", before=before)


# ---------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------
def list_customers(session: Session, organization_id: Optional[int]) -> List[Customer]:
    return _list(session, Customer, organization_id, Customer.company_name.asc())


def get_customer(session: Session, organization_id: Optional[int], customer_id: int) -> Customer:
    return scoped_get(session, Customer, customer_id, organization_id, "Customer")


def create_customer(session: Session, organization_id: Optional[int], data: CustomerInput) -> Customer:
    return _create(session, Customer, organization_id, data)


def update_customer(session: Session, organization_id: Optional[int], customer_id: int, data: CustomerInput) -> Customer:
    return _update(session, get_customer(session, organization_id, customer_id), data, required=("company_name",))


def delete_customer(session: Session, organization_id: Optional[int], customer_id: int) -> None:
    _delete(session, get_customer(session, organization_id, customer_id))


# ---------------------------------------------------------------------
# Suppliers
# ---------------------------------------------------------------------
def list_suppliers(session: Session, organization_id: Optional[int]) -> List[Supplier]:
    return _list(session, Supplier, organization_id, Supplier.company_name.asc())


def get_supplier(session: Session, organization_id: Optional[int], supplier_id: int) -> Supplier:
    return scoped_get(session, Supplier, supplier_id, organization_id, "Supplier")


def create_supplier(session: Session, organization_id: Optional[int], data: SupplierInput) -> Supplier:
    return _create(session, Supplier, organization_id, data)


def update_supplier(session: Session, organization_id: Optional[int], supplier_id: int, data: SupplierInput) -> Supplier:
    return _update(
        session,
        get_supplier(session, organization_id, supplier_id),
        data,
        required=("company_name", "po_email"),
    )


def delete_supplier(session: Session, organization_id: Optional[int], supplier_id: int) -> None:
    _delete(session, get_supplier(session, organization_id, supplier_id))


# ---------------------------------------------------------------------
# Shipping addresses
# ---------------------------------------------------------------------
def list_shipping_addresses(session: Session, organization_id: Optional[int]) -> List[ShippingAddress]:
    return _list(session, ShippingAddress, organization_id, ShippingAddress.created_at.desc())


def get_shipping_address(session: Session, organization_id: Optional[int], address_id: int) -> ShippingAddress:
    return scoped_get(session, ShippingAddress, address_id, organization_id, "Shipping address")


def create_shipping_address(session: Session, organization_id: Optional[int], data: ShippingAddressInput) -> ShippingAddress:
    return _create(session, ShippingAddress, organization_id, data)


def update_shipping_address(
    session: Session, organization_id: Optional[int], address_id: int, data: ShippingAddressInput
) -> ShippingAddress:
    address = get_shipping_address(session, organization_id, address_id)
    return _update(session, address, data, required=("street_address",))


def delete_shipping_address(session: Session, organization_id: Optional[int], address_id: int) -> None:
    _delete(session, get_shipping_address(session, organization_id, address_id))


# ---------------------------------------------------------------------
# Company settings
# ---------------------------------------------------------------------
def get_company_settings(session: Session, organization_id: Optional[int]) -> Optional[CompanySettings]:
    if organization_id is None:
        return None
    return session.query(CompanySettings).filter(CompanySettings.organization_id == organization_id).first()


def upsert_company_settings(session: Session, organization_id: Optional[int], data: CompanySettingsInput) -> CompanySettings:
    """Create the organization's settings row on first save, update it afterwards."""
    organization_id = require_organization(organization_id)
    settings = get_company_settings(session, organization_id)
    if settings is None:
        return _create(session, CompanySettings, organization_id, data)
    return _update(session, settings, data)
