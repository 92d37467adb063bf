"""
quotedesk/pricing.py

Buy-price selection and document arithmetic for quotes and purchase orders.

Rules:
- All money is Decimal. Floats are converted through str() so binary noise never enters a sum.
- Nothing here rounds. Rounding to cents happens only when a value is stored (see money()).
- Document aggregates are always a full re-sum of the current items.

Pack pricing:
- Default to the loose buy price.
- If quantity >= pack size AND a pack buy price exists, use the pack buy price.
- If either pack field is missing, always use the loose buy price.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Optional

from .errors import ValidationError

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


# ---------------------------------------------------------------------
# Decimal helpers
# ---------------------------------------------------------------------
def to_decimal(value: Any, field: str = "value") -> Decimal:
    """
    Convert a clean numeric value to Decimal.

    Accepts Decimal, int, float (via str) and numeric strings (comma or dot).
    Raises ValidationError for anything else, including NaN/Infinity.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number.")
    if isinstance(value, Decimal):
        result = value
    else:
        raw = str(value).strip().replace(",", ".")
        if raw == "":
            raise ValidationError(f"{field} is required.")
        try:
            result = Decimal(raw)
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{field} must be a number.") from None
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number.")
    return result


def optional_decimal(value: Any, field: str = "value") -> Optional[Decimal]:
    """Like to_decimal(), but None / empty string mean 'absent'."""
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return None
    return to_decimal(value, field)


def money(value: Decimal) -> Decimal:
    """Quantize to cents for storage/display."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class PricingAttributes:
    """Pricing columns of a pricelist item, already validated."""

    loose_buy_price: Decimal
    pack_buy_price: Optional[Decimal] = None
    pack_size: Optional[Decimal] = None

    @property
    def has_pack_pricing(self) -> bool:
        # a zero pack size or pack price counts as absent
        return bool(self.pack_size) and bool(self.pack_buy_price)

    @classmethod
    def from_item(cls, item: Any) -> "PricingAttributes":
        """Build from any object exposing loose_buy_price / pack_buy_price / pack_size."""
        return cls(
            loose_buy_price=to_decimal(item.loose_buy_price, "loose_buy_price"),
            pack_buy_price=optional_decimal(getattr(item, "pack_buy_price", None), "pack_buy_price"),
            pack_size=optional_decimal(getattr(item, "pack_size", None), "pack_size"),
        )


@dataclass(frozen=True)
class DocumentAggregate:
    """
    Document-level totals.

    total_margin / margin_percentage are None for purchase orders, which never carry sell-side data.
    """

    total_amount: Decimal
    total_margin: Optional[Decimal] = None
    margin_percentage: Optional[Decimal] = None


# ---------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------
def select_unit_buy_price(quantity: Decimal, pricing: PricingAttributes) -> Decimal:
    """Return the unit buy price that applies to `quantity`."""
    if not pricing.has_pack_pricing:
        return pricing.loose_buy_price

    # inclusive: buying exactly one pack gets the pack price
    if quantity >= pricing.pack_size:
        return pricing.pack_buy_price

    return pricing.loose_buy_price


def compute_line_total(quantity: Decimal, unit_price: Decimal) -> Decimal:
    return quantity * unit_price


def compute_margin(sell_price: Decimal, buy_price: Decimal, quantity: Decimal) -> Decimal:
    """Margin may be negative (selling below cost is allowed)."""
    return (sell_price - buy_price) * quantity


def margin_percentage(total_margin: Decimal, total_amount: Decimal) -> Decimal:
    if total_amount == ZERO:
        return ZERO
    return total_margin / total_amount * HUNDRED


def recompute_document_aggregate(items: Iterable[Any], *, with_margin: bool = True) -> DocumentAggregate:
    """
    Re-sum all current items of a document.

    Items expose `line_total` and, for quotes, `margin`.
    """
    total_amount = ZERO
    total_margin = ZERO

    for item in items:
        total_amount += to_decimal(item.line_total, "line_total")
        if with_margin:
            total_margin += to_decimal(item.margin, "margin")

    if not with_margin:
        return DocumentAggregate(total_amount=total_amount)

    return DocumentAggregate(
        total_amount=total_amount,
        total_margin=total_margin,
        margin_percentage=margin_percentage(total_margin, total_amount),
    )
