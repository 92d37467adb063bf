"""
QuoteDesk – Domain Models

Multi-tenant wholesale distribution:
- Organization is the tenancy boundary; every business entity carries organization_id.
- Users authenticate by email/password or by an externally-issued identity token (open_id).
- Pricelists hold the buy/sell pricing of products.
- Quotes (customer-facing) and Purchase Orders (supplier-facing) hold line items.

IMPORTANT:
- Money columns are Numeric(12, 2); arithmetic uses Decimal via quotedesk.pricing.
- Document totals are recomputed from ALL current items on every item mutation
  (see Quote.recalc_totals / PurchaseOrder.recalc_totals).
- Sell-side fields (sell_price, margin) and buy-side fields (buy_price) are separate columns,
  so customer/supplier documents can omit either side.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from .extensions import db
from .pricing import money, recompute_document_aggregate


def utcnow() -> datetime:
    """Naive UTC timestamp (all DateTime columns are stored as UTC)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ---------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------
class Role(enum.Enum):
    """Ordered roles: user < org_owner < admin < super_admin."""

    user = "user"
    org_owner = "org_owner"
    admin = "admin"
    super_admin = "super_admin"

    @property
    def rank(self) -> int:
        return _ROLE_ORDER.index(self)

    @classmethod
    def parse(cls, value: "str | Role") -> "Role":
        if isinstance(value, Role):
            return value
        return cls((value or "").strip().lower())


_ROLE_ORDER = (Role.user, Role.org_owner, Role.admin, Role.super_admin)


class UserStatus(enum.Enum):
    active = "active"
    inactive = "inactive"
    pending = "pending"


class SubscriptionType(enum.Enum):
    monthly = "monthly"
    annual = "annual"
    indefinite = "indefinite"


class SubscriptionStatus(enum.Enum):
    active = "active"
    expired = "expired"
    cancelled = "cancelled"


class QuoteStatus(enum.Enum):
    draft = "draft"
    sent = "sent"
    accepted = "accepted"
    declined = "declined"


class PurchaseOrderStatus(enum.Enum):
    draft = "draft"
    sent = "sent"
    received = "received"
    cancelled = "cancelled"


class DeliveryMethod(enum.Enum):
    in_store_delivery = "in_store_delivery"
    pickup_from_supplier = "pickup_from_supplier"


class InquiryStatus(enum.Enum):
    new = "new"
    contacted = "contacted"
    converted = "converted"
    archived = "archived"


def _enum_column(enum_cls, **kwargs):
    return db.Column(db.Enum(enum_cls, name=enum_cls.__name__.lower(), native_enum=False), **kwargs)


# ---------------------------------------------------------------------
# Tenancy & users
# ---------------------------------------------------------------------
class Organization(db.Model):
    """Tenancy boundary. Subscription is held at organization level."""

    __tablename__ = "organizations"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    subscription_type = _enum_column(SubscriptionType, nullable=True)
    subscription_status = _enum_column(
        SubscriptionStatus, nullable=False, default=SubscriptionStatus.active
    )
    subscription_end_date = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    users = db.relationship("User", back_populates="organization", lazy=True)

    def is_subscription_active(self, now: datetime | None = None) -> bool:
        """
        Active unless cancelled/expired, or non-indefinite with an end date in the past.

        A missing end date on a non-indefinite subscription means no expiry has been set.
        """
        if self.subscription_status in (SubscriptionStatus.cancelled, SubscriptionStatus.expired):
            return False
        if self.subscription_type == SubscriptionType.indefinite:
            return True
        if self.subscription_end_date is None:
            return True
        return (now or utcnow()) <= self.subscription_end_date

    def days_remaining(self, now: datetime | None = None) -> int | None:
        if self.subscription_type == SubscriptionType.indefinite or self.subscription_end_date is None:
            return None
        delta = self.subscription_end_date - (now or utcnow())
        return max(delta.days, 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "subscription_type": self.subscription_type.value if self.subscription_type else None,
            "subscription_status": self.subscription_status.value,
            "subscription_end_date": _iso(self.subscription_end_date),
            "subscription_active": self.is_subscription_active(),
            "days_remaining": self.days_remaining(),
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<Organization {self.name}>"


class User(UserMixin, db.Model):
    """
    Login user.

    - Password users: email + password_hash.
    - Identity-token users: open_id (password_hash stays NULL).
    """

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    open_id = db.Column(db.String(64), unique=True, nullable=True, index=True)
    email = db.Column(db.String(320), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=True)
    name = db.Column(db.String(255), nullable=True)
    login_method = db.Column(db.String(64), nullable=True)

    role = _enum_column(Role, nullable=False, default=Role.user, index=True)
    status = _enum_column(UserStatus, nullable=False, default=UserStatus.active)

    organization_id = db.Column(
        db.Integer,
        db.ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Bumped on password change/reset; embedded in the session id so older sessions stop loading.
    session_version = db.Column(db.Integer, nullable=False, default=1)

    last_signed_in = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    organization = db.relationship("Organization", back_populates="users")

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def rotate_session(self):
        """Invalidate every session issued before this call."""
        self.session_version = (self.session_version or 1) + 1

    def get_id(self):
        return f"{self.id}:{self.session_version or 1}"

    @property
    def is_active(self):
        return self.status == UserStatus.active

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.super_admin

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role.value,
            "status": self.status.value,
            "login_method": self.login_method,
            "organization_id": self.organization_id,
            "last_signed_in": _iso(self.last_signed_in),
        }

    def __repr__(self):
        return f"<User {self.email}>"


class PasswordResetToken(db.Model):
    """Single-use, time-boxed password reset token."""

    __tablename__ = "password_reset_tokens"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token = db.Column(db.String(255), nullable=False, unique=True, index=True)
    expires_at = db.Column(db.DateTime, nullable=False)
    used = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    user = db.relationship("User", backref=db.backref("reset_tokens", lazy=True, cascade="all, delete-orphan"))


class CompanySettings(db.Model):
    """Branding and business details (one row per organization)."""

    __tablename__ = "company_settings"

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(
        db.Integer,
        db.ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    company_name = db.Column(db.String(255))
    abn = db.Column(db.String(50))
    address = db.Column(db.Text)
    phone = db.Column(db.String(50))
    email = db.Column(db.String(320))
    logo_url = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "company_name": self.company_name,
            "abn": self.abn,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "logo_url": self.logo_url,
        }


# ---------------------------------------------------------------------
# Pricelists
# ---------------------------------------------------------------------
class Pricelist(db.Model):
    __tablename__ = "pricelists"

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "PricelistItem",
        back_populates="pricelist",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "created_at": _iso(self.created_at),
        }


class PricelistItem(db.Model):
    """
    Product with pricing.

    Required: item_name, loose_buy_price, rrp_ex_gst.
    sell_price defaults to rrp_ex_gst and is editable.
    """

    __tablename__ = "pricelist_items"

    id = db.Column(db.Integer, primary_key=True)
    pricelist_id = db.Column(
        db.Integer,
        db.ForeignKey("pricelists.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    item_name = db.Column(db.String(500), nullable=False)
    sku_code = db.Column(db.String(100))
    pack_size = db.Column(db.Numeric(12, 2), nullable=True)
    pack_buy_price = db.Column(db.Numeric(12, 2), nullable=True)
    loose_buy_price = db.Column(db.Numeric(12, 2), nullable=False)
    rrp_ex_gst = db.Column(db.Numeric(12, 2), nullable=False)
    rrp_inc_gst = db.Column(db.Numeric(12, 2), nullable=True)
    sell_price = db.Column(db.Numeric(12, 2), nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    pricelist = db.relationship("Pricelist", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pricelist_id": self.pricelist_id,
            "item_name": self.item_name,
            "sku_code": self.sku_code,
            "pack_size": _str(self.pack_size),
            "pack_buy_price": _str(self.pack_buy_price),
            "loose_buy_price": _str(self.loose_buy_price),
            "rrp_ex_gst": _str(self.rrp_ex_gst),
            "rrp_inc_gst": _str(self.rrp_inc_gst),
            "sell_price": _str(self.sell_price),
        }


# ---------------------------------------------------------------------
# Customers, suppliers, addresses
# ---------------------------------------------------------------------
class Customer(db.Model):
    """Company that receives quotes."""

    __tablename__ = "customers"

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    company_name = db.Column(db.String(255), nullable=False)
    contact_name = db.Column(db.String(255))
    email = db.Column(db.String(320))
    phone = db.Column(db.String(50))
    billing_address = db.Column(db.Text)
    notes = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_name": self.company_name,
            "contact_name": self.contact_name,
            "email": self.email,
            "phone": self.phone,
            "billing_address": self.billing_address,
            "notes": self.notes,
        }


class Supplier(db.Model):
    """Company that receives purchase orders."""

    __tablename__ = "suppliers"

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    company_name = db.Column(db.String(255), nullable=False)
    billing_address = db.Column(db.Text)
    key_contact_name = db.Column(db.String(255))
    key_contact_email = db.Column(db.String(320))
    po_email = db.Column(db.String(320), nullable=False)
    notes = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_name": self.company_name,
            "billing_address": self.billing_address,
            "key_contact_name": self.key_contact_name,
            "key_contact_email": self.key_contact_email,
            "po_email": self.po_email,
            "notes": self.notes,
        }

    def __repr__(self):
        return f"<Supplier {self.company_name}>"


class ShippingAddress(db.Model):
    """Saved delivery address for purchase orders."""

    __tablename__ = "shipping_addresses"

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    attention_to = db.Column(db.String(255))
    street_address = db.Column(db.Text, nullable=False)
    state = db.Column(db.String(100))
    postcode = db.Column(db.String(20))
    country = db.Column(db.String(100), nullable=False, default="Australia")
    phone_number = db.Column(db.String(50))

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def one_line(self) -> str:
        parts = [self.attention_to, self.street_address, self.state, self.postcode, self.country]
        return ", ".join(p for p in parts if p)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "attention_to": self.attention_to,
            "street_address": self.street_address,
            "state": self.state,
            "postcode": self.postcode,
            "country": self.country,
            "phone_number": self.phone_number,
        }


# ---------------------------------------------------------------------
# Quotes
# ---------------------------------------------------------------------
class Quote(db.Model):
    """Customer-facing price proposal with internal margin tracking."""

    __tablename__ = "quotes"

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    quote_number = db.Column(db.String(50), nullable=False)
    status = _enum_column(QuoteStatus, nullable=False, default=QuoteStatus.draft)

    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    total_margin = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    margin_percentage = db.Column(db.Numeric(7, 2), nullable=False, default=Decimal("0.00"))

    notes = db.Column(db.Text)
    pdf_url = db.Column(db.String(500))

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    customer = db.relationship("Customer")
    items = db.relationship(
        "QuoteItem",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteItem.id",
    )

    __table_args__ = (
        db.UniqueConstraint("organization_id", "quote_number", name="uq_quote_org_number"),
    )

    def recalc_totals(self, items: Iterable["QuoteItem"]):
        """Set totals from the full, current item set."""
        aggregate = recompute_document_aggregate(items, with_margin=True)
        self.total_amount = money(aggregate.total_amount)
        self.total_margin = money(aggregate.total_margin)
        self.margin_percentage = money(aggregate.margin_percentage)
        return aggregate

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "customer_id": self.customer_id,
            "quote_number": self.quote_number,
            "status": self.status.value,
            "total_amount": _str(self.total_amount),
            "total_margin": _str(self.total_margin),
            "margin_percentage": _str(self.margin_percentage),
            "notes": self.notes,
            "pdf_url": self.pdf_url,
            "created_at": _iso(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class QuoteItem(db.Model):
    __tablename__ = "quote_items"

    id = db.Column(db.Integer, primary_key=True)
    quote_id = db.Column(
        db.Integer,
        db.ForeignKey("quotes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    pricelist_item_id = db.Column(
        db.Integer,
        db.ForeignKey("pricelist_items.id", ondelete="SET NULL"),
        nullable=True,
    )

    item_name = db.Column(db.String(500), nullable=False)
    quantity = db.Column(db.Numeric(12, 2), nullable=False)
    sell_price = db.Column(db.Numeric(12, 2), nullable=False)
    buy_price = db.Column(db.Numeric(12, 2), nullable=False)
    margin = db.Column(db.Numeric(12, 2), nullable=False)  # (sell - buy) * qty
    line_total = db.Column(db.Numeric(12, 2), nullable=False)  # sell * qty

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    quote = db.relationship("Quote", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "quote_id": self.quote_id,
            "pricelist_item_id": self.pricelist_item_id,
            "item_name": self.item_name,
            "quantity": _str(self.quantity),
            "sell_price": _str(self.sell_price),
            "buy_price": _str(self.buy_price),
            "margin": _str(self.margin),
            "line_total": _str(self.line_total),
        }


# ---------------------------------------------------------------------
# Purchase orders
# ---------------------------------------------------------------------
class PurchaseOrder(db.Model):
    """Supplier-facing order. Carries buy prices only."""

    __tablename__ = "purchase_orders"

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    po_number = db.Column(db.String(50), nullable=False)
    status = _enum_column(PurchaseOrderStatus, nullable=False, default=PurchaseOrderStatus.draft)
    delivery_method = _enum_column(
        DeliveryMethod, nullable=False, default=DeliveryMethod.pickup_from_supplier
    )
    shipping_address = db.Column(db.Text)  # only used for in_store_delivery

    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    notes = db.Column(db.Text)
    pdf_url = db.Column(db.String(500))

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    supplier = db.relationship("Supplier")
    items = db.relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.id",
    )

    __table_args__ = (
        db.UniqueConstraint("organization_id", "po_number", name="uq_po_org_number"),
    )

    def recalc_totals(self, items: Iterable["PurchaseOrderItem"]):
        aggregate = recompute_document_aggregate(items, with_margin=False)
        self.total_amount = money(aggregate.total_amount)
        return aggregate

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "po_number": self.po_number,
            "status": self.status.value,
            "delivery_method": self.delivery_method.value,
            "shipping_address": self.shipping_address,
            "total_amount": _str(self.total_amount),
            "notes": self.notes,
            "pdf_url": self.pdf_url,
            "created_at": _iso(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseOrderItem(db.Model):
    __tablename__ = "purchase_order_items"

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(
        db.Integer,
        db.ForeignKey("purchase_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    pricelist_item_id = db.Column(
        db.Integer,
        db.ForeignKey("pricelist_items.id", ondelete="SET NULL"),
        nullable=True,
    )

    item_name = db.Column(db.String(500), nullable=False)
    quantity = db.Column(db.Numeric(12, 2), nullable=False)
    buy_price = db.Column(db.Numeric(12, 2), nullable=False)
    line_total = db.Column(db.Numeric(12, 2), nullable=False)  # buy * qty

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    purchase_order = db.relationship("PurchaseOrder", back_populates="items")
    pricelist_item = db.relationship("PricelistItem")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "pricelist_item_id": self.pricelist_item_id,
            "item_name": self.item_name,
            "quantity": _str(self.quantity),
            "buy_price": _str(self.buy_price),
            "line_total": _str(self.line_total),
        }


# ---------------------------------------------------------------------
# Contact inquiries & audit
# ---------------------------------------------------------------------
class ContactInquiry(db.Model):
    __tablename__ = "contact_inquiries"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(320), nullable=False)
    company = db.Column(db.String(255))
    message = db.Column(db.Text, nullable=False)
    status = _enum_column(InquiryStatus, nullable=False, default=InquiryStatus.new)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "company": self.company,
            "message": self.message,
            "status": self.status.value,
            "created_at": _iso(self.created_at),
        }


class AuditLog(db.Model):
    """Who did what to which entity, with before/after snapshots."""

    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    email_snapshot = db.Column(db.String(320), nullable=True)
    organization_id = db.Column(db.Integer, nullable=True, index=True)

    entity_type = db.Column(db.String(50), nullable=False, index=True)
    entity_id = db.Column(db.Integer, nullable=False, index=True)

    action = db.Column(db.String(20), nullable=False, index=True)

    before_data = db.Column(db.Text, nullable=True)
    after_data = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)


# ---------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------
def _str(value) -> str | None:
    if value is None:
        return None
    return str(money(Decimal(str(value))))


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
