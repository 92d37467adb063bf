"""
quotedesk/services/catalog.py

Pricelists and pricelist items.

CSV import:
- Headers are matched case/whitespace-insensitively, with short aliases
  ("pack buy price", "loose buy price").
- Required columns: Item Name, Loose buy price ex gst, RRP ex gst.
- Numbers are parsed after stripping currency symbols and units ("$1,200.50", "70pcs").
- Every row is validated first; any error rejects the whole file.
- sell_price defaults to RRP ex GST.
"""

from __future__ import annotations

import csv
import io
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from flask import current_app
from sqlalchemy.orm import Session

from ..audit import log_action, serialize_model
from ..errors import ValidationError
from ..models import Pricelist, PricelistItem
from ..pricing import money
from ..schemas import PricelistInput, PricelistItemInput, SellPriceUpdate
from . import require_organization, scoped_get, scoped_query


# ---------------------------------------------------------------------
# Pricelists
# ---------------------------------------------------------------------
def list_pricelists(session: Session, organization_id: Optional[int]) -> List[Pricelist]:
    return (
        scoped_query(session, Pricelist, organization_id)
        .order_by(Pricelist.created_at.desc(), Pricelist.id.desc())
        .all()
    )


def get_pricelist(session: Session, organization_id: Optional[int], pricelist_id: int) -> Pricelist:
    return scoped_get(session, Pricelist, pricelist_id, organization_id, "Pricelist")


def create_pricelist(session: Session, organization_id: Optional[int], data: PricelistInput) -> Pricelist:
    pricelist = Pricelist(organization_id=require_organization(organization_id), name=data.name)
    session.add(pricelist)
    session.flush()
    log_action(session, pricelist, "CREATE", after=serialize_model(pricelist))
    return pricelist


def rename_pricelist(session: Session, organization_id: Optional[int], pricelist_id: int, data: PricelistInput) -> Pricelist:
    pricelist = get_pricelist(session, organization_id, pricelist_id)
    before = serialize_model(pricelist)
    pricelist.name = data.name
    session.flush()
    log_action(session, pricelist, "UPDATE", before=before, after=serialize_model(pricelist))
    return pricelist


def delete_pricelist(session: Session, organization_id: Optional[int], pricelist_id: int) -> None:
    """Delete a pricelist and all of its items."""
    pricelist = get_pricelist(session, organization_id, pricelist_id)
    before = serialize_model(pricelist)
    session.delete(pricelist)
    session.flush()
    log_action(session, pricelist, "DELETE", before=before)


# ---------------------------------------------------------------------
# Pricelist items
# ---------------------------------------------------------------------
def list_items(session: Session, organization_id: Optional[int], pricelist_id: int) -> List[PricelistItem]:
    get_pricelist(session, organization_id, pricelist_id)
    return (
        scoped_query(session, PricelistItem, organization_id)
        .filter(PricelistItem.pricelist_id == pricelist_id)
        .order_by(PricelistItem.item_name.asc(), PricelistItem.id.asc())
        .all()
    )


def list_all_items(session: Session, organization_id: Optional[int], search: str | None = None) -> List[PricelistItem]:
    """Items of every pricelist of the organization (item pickers)."""
    query = scoped_query(session, PricelistItem, organization_id)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(PricelistItem.item_name.ilike(like) | PricelistItem.sku_code.ilike(like))
    return query.order_by(PricelistItem.item_name.asc(), PricelistItem.id.asc()).all()


def get_item(session: Session, organization_id: Optional[int], item_id: int) -> PricelistItem:
    return scoped_get(session, PricelistItem, item_id, organization_id, "Pricelist item")


def _new_item(pricelist: Pricelist, data: PricelistItemInput) -> PricelistItem:
    return PricelistItem(
        pricelist_id=pricelist.id,
        organization_id=pricelist.organization_id,
        item_name=data.item_name,
        sku_code=data.sku_code,
        pack_size=data.pack_size,
        pack_buy_price=data.pack_buy_price,
        loose_buy_price=data.loose_buy_price,
        rrp_ex_gst=data.rrp_ex_gst,
        rrp_inc_gst=data.rrp_inc_gst,
        sell_price=data.sell_price if data.sell_price is not None else data.rrp_ex_gst,
    )


def create_items(
    session: Session,
    organization_id: Optional[int],
    pricelist_id: int,
    items: Iterable[PricelistItemInput],
) -> List[PricelistItem]:
    """Bulk create items in one pricelist."""
    pricelist = get_pricelist(session, organization_id, pricelist_id)
    created = [_new_item(pricelist, data) for data in items]
    session.add_all(created)
    session.flush()
    for item in created:
        log_action(session, item, "CREATE", after=serialize_model(item))
    return created


def update_item(session: Session, organization_id: Optional[int], item_id: int, data: PricelistItemInput) -> PricelistItem:
    """Partial update. Required columns cannot be cleared."""
    item = get_item(session, organization_id, item_id)
    changes = data.changes()
    for key in ("loose_buy_price", "rrp_ex_gst", "sell_price"):
        if key in changes and changes[key] is None:
            raise ValidationError(f"{key} cannot be empty.")

    before = serialize_model(item)
    for key, value in changes.items():
        setattr(item, key, value)
    session.flush()
    log_action(session, item, "UPDATE", before=before, after=serialize_model(item))
    return item


def bulk_update_sell_prices(session: Session, organization_id: Optional[int], updates: Iterable[SellPriceUpdate]) -> List[PricelistItem]:
    """Set sell_price on several items. Any unknown id aborts the whole batch."""
    updated = []
    for change in updates:
        item = get_item(session, organization_id, change.id)
        before = serialize_model(item)
        item.sell_price = change.sell_price
        updated.append((item, before))

    session.flush()
    for item, before in updated:
        log_action(session, item, "UPDATE", before=before, after=serialize_model(item))
    return [item for item, _ in updated]


def delete_item(session: Session, organization_id: Optional[int], item_id: int) -> None:
    item = get_item(session, organization_id, item_id)
    before = serialize_model(item)
    session.delete(item)
    session.flush()
    log_action(session, item, "DELETE", before=before)


# ---------------------------------------------------------------------
# CSV import
# ---------------------------------------------------------------------
CSV_COLUMNS = {
    "item name": "item_name",
    "sku code": "sku_code",
    "pack size": "pack_size",
    "pack buy price": "pack_buy_price",
    "pack buy price ex gst": "pack_buy_price",
    "loose buy price": "loose_buy_price",
    "loose buy price ex gst": "loose_buy_price",
    "rrp ex gst": "rrp_ex_gst",
    "rrp inc gst": "rrp_inc_gst",
}

CSV_LABELS = {
    "item_name": "Item Name",
    "loose_buy_price": "Loose buy price ex gst",
    "rrp_ex_gst": "RRP ex gst",
}

_NON_NUMERIC = re.compile(r"[^0-9.\-]")


def normalize_header(name: str) -> str:
    return " ".join(str(name or "").strip().lower().split())


def normalize_row(row: Dict[str, Any]) -> Dict[str, str]:
    """Map raw CSV headers to field names; unknown columns are dropped."""
    normalized: Dict[str, str] = {}
    for key, value in row.items():
        field = CSV_COLUMNS.get(normalize_header(key))
        if field:
            normalized[field] = "" if value is None else str(value).strip()
    return normalized


def parse_csv_decimal(value: str | None) -> Optional[Decimal]:
    """'$1,200.50' -> 1200.50, '70pcs' -> 70. Empty or unparseable -> None."""
    if not value or not value.strip():
        return None
    raw = _NON_NUMERIC.sub("", value)
    try:
        parsed = Decimal(raw)
    except InvalidOperation:
        return None
    if not parsed.is_finite():
        return None
    return money(parsed)


def _validate_row(row: Dict[str, str], line: int, errors: List[str]) -> Optional[PricelistItemInput]:
    missing = [CSV_LABELS[f] for f in CSV_LABELS if not row.get(f)]
    if missing:
        errors.append(f"Row {line}: " + ", ".join(f"{label} is required" for label in missing))
        return None

    loose = parse_csv_decimal(row["loose_buy_price"])
    if not loose:
        errors.append(f"Row {line}: Invalid Loose buy price ex gst")
        return None
    rrp = parse_csv_decimal(row["rrp_ex_gst"])
    if not rrp:
        errors.append(f"Row {line}: Invalid RRP ex gst")
        return None

    values = {
        "item_name": row["item_name"][:500],
        "sku_code": row.get("sku_code") or None,
        "pack_size": parse_csv_decimal(row.get("pack_size")),
        "pack_buy_price": parse_csv_decimal(row.get("pack_buy_price")),
        "loose_buy_price": loose,
        "rrp_ex_gst": rrp,
        "rrp_inc_gst": parse_csv_decimal(row.get("rrp_inc_gst")),
        "sell_price": rrp,
    }
    return PricelistItemInput(**values, provided=frozenset(values))


def read_csv_rows(text: str) -> List[Dict[str, str]]:
    """Parse CSV text with a header row into dicts."""
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    return [row for row in reader if any((v or "").strip() for v in row.values() if isinstance(v, str))]


def import_csv(
    session: Session,
    organization_id: Optional[int],
    pricelist_id: int,
    rows: List[Dict[str, Any]],
) -> List[PricelistItem]:
    """Validate every row, then insert all of them or none."""
    pricelist = get_pricelist(session, organization_id, pricelist_id)
    if not rows:
        raise ValidationError("CSV file must contain a header row and at least one data row.")

    errors: List[str] = []
    valid: List[PricelistItemInput] = []
    for index, row in enumerate(rows, start=1):
        if not isinstance(row, dict):
            errors.append(f"Row {index}: expected an object")
            continue
        data = _validate_row(normalize_row(row), index, errors)
        if data is not None:
            valid.append(data)

    if errors:
        current_app.logger.info("CSV import rejected: pricelist=%s errors=%d", pricelist.id, len(errors))
        raise ValidationError("CSV validation failed.", details=errors)

    created = create_items(session, organization_id, pricelist.id, valid)
    current_app.logger.info("CSV import: pricelist=%s items=%d", pricelist.id, len(created))
    return created

