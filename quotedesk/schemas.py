"""
quotedesk/schemas.py

Typed input structs validated at the HTTP boundary.

Each struct is built with from_payload(payload, partial=...):
- partial=False (create): required fields must be present and valid.
- partial=True (update): only supplied fields are validated; changes() returns them.

Empty strings for optional text fields are stored as NULL.
Services and the pricing engine only ever receive these structs (clean Decimals, ints, enums).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, FrozenSet, List, Optional

from .errors import ValidationError
from .models import (
    DeliveryMethod,
    InquiryStatus,
    PurchaseOrderStatus,
    QuoteStatus,
    Role,
    SubscriptionStatus,
    SubscriptionType,
)
from .pricing import optional_decimal, to_decimal

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class _Reader:
    """Collects validated values and remembers which keys were supplied."""

    def __init__(self, payload: Any, partial: bool):
        if not isinstance(payload, dict):
            raise ValidationError("Expected a JSON object.")
        self.payload = payload
        self.partial = partial
        self.values: Dict[str, Any] = {}
        self.errors: List[str] = []

    def _skip(self, key: str, required: bool) -> bool:
        if key in self.payload:
            return False
        if required and not self.partial:
            self.errors.append(f"{key} is required.")
        return True

    def text(self, key: str, *, required: bool = False, max_length: int | None = None) -> None:
        if self._skip(key, required):
            return
        raw = self.payload.get(key)
        value = "" if raw is None else str(raw).strip()
        if not value:
            if required:
                self.errors.append(f"{key} is required.")
                return
            self.values[key] = None
            return
        if max_length and len(value) > max_length:
            self.errors.append(f"{key} must be at most {max_length} characters.")
            return
        self.values[key] = value

    def email(self, key: str, *, required: bool = False) -> None:
        self.text(key, required=required, max_length=320)
        value = self.values.get(key)
        if value is not None and not EMAIL_RE.match(value):
            self.errors.append(f"{key} must be a valid email address.")
            self.values.pop(key, None)
        elif value is not None:
            self.values[key] = value.lower()

    def decimal(self, key: str, *, required: bool = False, positive: bool = False, minimum: Decimal | None = None) -> None:
        if self._skip(key, required):
            return
        try:
            value = optional_decimal(self.payload.get(key), key) if not required else to_decimal(self.payload.get(key), key)
        except ValidationError as exc:
            self.errors.append(exc.message)
            return
        if value is not None:
            if positive and value <= 0:
                self.errors.append(f"{key} must be greater than 0.")
                return
            if minimum is not None and value < minimum:
                self.errors.append(f"{key} must be at least {minimum}.")
                return
        self.values[key] = value

    def integer(self, key: str, *, required: bool = False) -> None:
        if self._skip(key, required):
            return
        raw = self.payload.get(key)
        if raw is None or raw == "":
            if required:
                self.errors.append(f"{key} is required.")
                return
            self.values[key] = None
            return
        if isinstance(raw, bool):
            self.errors.append(f"{key} must be an integer.")
            return
        try:
            self.values[key] = int(raw)
        except (TypeError, ValueError):
            self.errors.append(f"{key} must be an integer.")

    def choice(self, key: str, enum_cls, *, required: bool = False, allowed: tuple | None = None) -> None:
        if self._skip(key, required):
            return
        raw = self.payload.get(key)
        try:
            value = enum_cls((raw or "").strip().lower()) if isinstance(raw, str) else enum_cls(raw)
        except ValueError:
            options = ", ".join(e.value for e in (allowed or tuple(enum_cls)))
            self.errors.append(f"{key} must be one of: {options}.")
            return
        if allowed and value not in allowed:
            options = ", ".join(e.value for e in allowed)
            self.errors.append(f"{key} must be one of: {options}.")
            return
        self.values[key] = value

    def timestamp(self, key: str, *, required: bool = False) -> None:
        if self._skip(key, required):
            return
        raw = self.payload.get(key)
        if raw in (None, ""):
            self.values[key] = None
            return
        try:
            parsed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
            if parsed.tzinfo is not None:
                parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
            self.values[key] = parsed
        except ValueError:
            self.errors.append(f"{key} must be an ISO-8601 date.")

    def build(self, cls):
        if self.errors:
            raise ValidationError("Invalid input.", details=self.errors)
        return cls(**self.values, provided=frozenset(self.values))


@dataclass(frozen=True)
class _Input:
    provided: FrozenSet[str] = field(default_factory=frozenset)

    def changes(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name in self.provided}


# ---------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class LoginInput(_Input):
    email: Optional[str] = None
    password: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "LoginInput":
        reader = _Reader(payload, partial=False)
        reader.email("email", required=True)
        if not isinstance(payload.get("password"), str) or not payload.get("password"):
            reader.errors.append("password is required.")
        else:
            reader.values["password"] = payload["password"]
        return reader.build(cls)


def read_password(payload: Any, key: str, min_length: int) -> str:
    """Passwords are not stripped; only length is enforced."""
    if not isinstance(payload, dict):
        raise ValidationError("Expected a JSON object.")
    value = payload.get(key)
    if not isinstance(value, str) or len(value) < min_length:
        raise ValidationError(f"{key} must be at least {min_length} characters.")
    return value


# ---------------------------------------------------------------------
# Pricelists
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class PricelistInput(_Input):
    name: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any, *, partial: bool = False) -> "PricelistInput":
        reader = _Reader(payload, partial)
        reader.text("name", required=True, max_length=255)
        return reader.build(cls)


@dataclass(frozen=True)
class PricelistItemInput(_Input):
    item_name: Optional[str] = None
    sku_code: Optional[str] = None
    pack_size: Optional[Decimal] = None
    pack_buy_price: Optional[Decimal] = None
    loose_buy_price: Optional[Decimal] = None
    rrp_ex_gst: Optional[Decimal] = None
    rrp_inc_gst: Optional[Decimal] = None
    sell_price: Optional[Decimal] = None

    @classmethod
    def from_payload(cls, payload: Any, *, partial: bool = False) -> "PricelistItemInput":
        reader = _Reader(payload, partial)
        reader.text("item_name", required=True, max_length=500)
        reader.text("sku_code", max_length=100)
        reader.decimal("pack_size", positive=True)
        reader.decimal("pack_buy_price", minimum=Decimal("0"))
        reader.decimal("loose_buy_price", required=True, minimum=Decimal("0"))
        reader.decimal("rrp_ex_gst", required=True, minimum=Decimal("0"))
        reader.decimal("rrp_inc_gst", minimum=Decimal("0"))
        reader.decimal("sell_price", minimum=Decimal("0"))
        return reader.build(cls)


@dataclass(frozen=True)
class SellPriceUpdate(_Input):
    id: Optional[int] = None
    sell_price: Optional[Decimal] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "SellPriceUpdate":
        reader = _Reader(payload, partial=False)
        reader.integer("id", required=True)
        reader.decimal("sell_price", required=True, minimum=Decimal("0"))
        return reader.build(cls)


# ---------------------------------------------------------------------
# Customers / suppliers / addresses / company
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class CustomerInput(_Input):
    company_name: Optional[str] = None
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    billing_address: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any, *, partial: bool = False) -> "CustomerInput":
        reader = _Reader(payload, partial)
        reader.text("company_name", required=True, max_length=255)
        reader.text("contact_name", max_length=255)
        reader.email("email")
        reader.text("phone", max_length=50)
        reader.text("billing_address")
        reader.text("notes")
        return reader.build(cls)


@dataclass(frozen=True)
class SupplierInput(_Input):
    company_name: Optional[str] = None
    billing_address: Optional[str] = None
    key_contact_name: Optional[str] = None
    key_contact_email: Optional[str] = None
    po_email: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any, *, partial: bool = False) -> "SupplierInput":
        reader = _Reader(payload, partial)
        reader.text("company_name", required=True, max_length=255)
        reader.text("billing_address")
        reader.text("key_contact_name", max_length=255)
        reader.email("key_contact_email")
        reader.email("po_email", required=True)
        reader.text("notes")
        return reader.build(cls)


@dataclass(frozen=True)
class ShippingAddressInput(_Input):
    attention_to: Optional[str] = None
    street_address: Optional[str] = None
    state: Optional[str] = None
    postcode: Optional[str] = None
    country: Optional[str] = None
    phone_number: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any, *, partial: bool = False) -> "ShippingAddressInput":
        reader = _Reader(payload, partial)
        reader.text("attention_to", max_length=255)
        reader.text("street_address", required=True)
        reader.text("state", max_length=100)
        reader.text("postcode", max_length=20)
        reader.text("country", max_length=100)
        reader.text("phone_number", max_length=50)
        if reader.values.get("country") is None and "country" in reader.values:
            reader.values["country"] = "Australia"
        return reader.build(cls)


@dataclass(frozen=True)
class CompanySettingsInput(_Input):
    company_name: Optional[str] = None
    abn: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    logo_url: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "CompanySettingsInput":
        reader = _Reader(payload, partial=True)
        reader.text("company_name", max_length=255)
        reader.text("abn", max_length=50)
        reader.text("address")
        reader.text("phone", max_length=50)
        reader.email("email")
        reader.text("logo_url")
        return reader.build(cls)


# ---------------------------------------------------------------------
# Quotes / purchase orders
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class QuoteInput(_Input):
    customer_id: Optional[int] = None
    status: Optional[QuoteStatus] = None
    notes: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any, *, partial: bool = False) -> "QuoteInput":
        reader = _Reader(payload, partial)
        if not partial:
            reader.integer("customer_id", required=True)
        else:
            reader.choice("status", QuoteStatus)
        reader.text("notes")
        return reader.build(cls)


@dataclass(frozen=True)
class PurchaseOrderInput(_Input):
    supplier_id: Optional[int] = None
    status: Optional[PurchaseOrderStatus] = None
    delivery_method: Optional[DeliveryMethod] = None
    shipping_address: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any, *, partial: bool = False) -> "PurchaseOrderInput":
        reader = _Reader(payload, partial)
        if not partial:
            reader.integer("supplier_id", required=True)
        else:
            reader.choice("status", PurchaseOrderStatus)
            reader.choice("delivery_method", DeliveryMethod)
            reader.text("shipping_address")
        reader.text("notes")
        return reader.build(cls)


@dataclass(frozen=True)
class PricedItemInput(_Input):
    """Add an item from a pricelist item."""

    pricelist_item_id: Optional[int] = None
    quantity: Optional[Decimal] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "PricedItemInput":
        reader = _Reader(payload, partial=False)
        reader.integer("pricelist_item_id", required=True)
        reader.decimal("quantity", required=True, positive=True)
        return reader.build(cls)


@dataclass(frozen=True)
class ManualQuoteItemInput(_Input):
    pricelist_item_id: Optional[int] = None
    item_name: Optional[str] = None
    quantity: Optional[Decimal] = None
    sell_price: Optional[Decimal] = None
    buy_price: Optional[Decimal] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ManualQuoteItemInput":
        reader = _Reader(payload, partial=False)
        reader.integer("pricelist_item_id")
        reader.text("item_name", required=True, max_length=500)
        reader.decimal("quantity", required=True, positive=True)
        reader.decimal("sell_price", required=True, minimum=Decimal("0"))
        reader.decimal("buy_price", required=True, minimum=Decimal("0"))
        return reader.build(cls)


@dataclass(frozen=True)
class ManualPurchaseOrderItemInput(_Input):
    pricelist_item_id: Optional[int] = None
    item_name: Optional[str] = None
    quantity: Optional[Decimal] = None
    buy_price: Optional[Decimal] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ManualPurchaseOrderItemInput":
        reader = _Reader(payload, partial=False)
        reader.integer("pricelist_item_id")
        reader.text("item_name", required=True, max_length=500)
        reader.decimal("quantity", required=True, positive=True)
        reader.decimal("buy_price", required=True, minimum=Decimal("0"))
        return reader.build(cls)


@dataclass(frozen=True)
class QuoteItemUpdate(_Input):
    quantity: Optional[Decimal] = None
    sell_price: Optional[Decimal] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "QuoteItemUpdate":
        reader = _Reader(payload, partial=True)
        reader.decimal("quantity", positive=True)
        reader.decimal("sell_price", minimum=Decimal("0"))
        for key in ("quantity", "sell_price"):
            if key in reader.values and reader.values[key] is None:
                reader.errors.append(f"{key} cannot be empty.")
        return reader.build(cls)


@dataclass(frozen=True)
class PurchaseOrderItemUpdate(_Input):
    quantity: Optional[Decimal] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "PurchaseOrderItemUpdate":
        reader = _Reader(payload, partial=True)
        reader.decimal("quantity", positive=True)
        if "quantity" in reader.values and reader.values["quantity"] is None:
            reader.errors.append("quantity cannot be empty.")
        return reader.build(cls)


# ---------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class InviteInput(_Input):
    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[Role] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "InviteInput":
        reader = _Reader(payload, partial=False)
        reader.email("email", required=True)
        reader.text("name", required=True, max_length=255)
        reader.choice("role", Role, required=True, allowed=(Role.user, Role.org_owner))
        return reader.build(cls)


@dataclass(frozen=True)
class SubscriptionInput(_Input):
    subscription_type: Optional[SubscriptionType] = None
    subscription_status: Optional[SubscriptionStatus] = None
    subscription_end_date: Optional[datetime] = None
    extend_days: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "SubscriptionInput":
        reader = _Reader(payload, partial=True)
        reader.choice("subscription_type", SubscriptionType)
        reader.choice("subscription_status", SubscriptionStatus)
        reader.timestamp("subscription_end_date")
        reader.integer("extend_days")
        days = reader.values.get("extend_days")
        if days is not None and days < 1:
            reader.errors.append("extend_days must be at least 1.")
        return reader.build(cls)


@dataclass(frozen=True)
class ContactInput(_Input):
    name: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ContactInput":
        reader = _Reader(payload, partial=False)
        reader.text("name", required=True, max_length=255)
        reader.email("email", required=True)
        reader.text("company", max_length=255)
        reader.text("message", required=True)
        message = reader.values.get("message")
        if message is not None and len(message) < 10:
            reader.errors.append("message must be at least 10 characters.")
        return reader.build(cls)


@dataclass(frozen=True)
class _StatusHolder(_Input):
    status: Any = None


def read_inquiry_status(payload: Any) -> InquiryStatus:
    reader = _Reader(payload, partial=False)
    reader.choice("status", InquiryStatus, required=True)
    return reader.build(_StatusHolder).status

